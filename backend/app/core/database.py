import json
import logging
from pathlib import Path

from sqlmodel import SQLModel, create_engine, Session

from app.core.config import settings

logger = logging.getLogger(__name__)

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False},
)


def init_db() -> None:
    import app.models  # noqa: F401 - ensure models are registered
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session


def seed_presets(path: Path) -> int:
    """Upsert the presets listed in a JSON file. Returns how many were written."""
    from app.models.preset import Preset

    entries = json.loads(path.read_text())
    with Session(engine) as session:
        for entry in entries:
            session.merge(Preset(**entry))
        session.commit()
    logger.info(f"Seeded {len(entries)} presets from {path}")
    return len(entries)
