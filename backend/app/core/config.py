from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Chat Relay"
    debug: bool = False

    # Paths
    data_dir: Path = Path(__file__).resolve().parent.parent.parent / "data"
    db_path: Path = Path(__file__).resolve().parent.parent.parent / "relay.db"
    presets_file: Optional[Path] = None  # JSON list of presets upserted on startup

    # Upstream
    upstream_completions_path: str = "/v1/chat/completions"
    upstream_connect_timeout: float = 10.0
    upstream_read_timeout: float = 120.0
    upstream_temperature: Optional[float] = 0.7

    # Context
    context_timezone: str = "UTC"

    # Augmentation
    search_provider: str = "duckduckgo"  # duckduckgo | none
    search_max_results: int = 5

    # Attachments
    offload_provider: str = "local"  # local | none
    public_base_url: str = "http://localhost:8000"

    # Identity: bearer token -> user id
    auth_tokens: dict[str, str] = {}

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "RELAY_",
    }

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"


settings = Settings()
