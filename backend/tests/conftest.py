"""Shared test fixtures for backend tests."""

import json
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.auth import StaticTokenResolver, get_token_resolver
from app.core.database import get_session
from app.models.conversation import Conversation
from app.models.preset import Preset
from app.services.llm import get_upstream_client
from app.services.llm.openai_compat import OpenAICompatibleClient
from app.services.offload import get_offloader
from app.services.search import get_search_provider

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TOKENS = {"alice-token": "alice", "bob-token": "bob"}


def get_test_session():
    with Session(test_engine) as session:
        yield session


def sse_body(*frames: str) -> bytes:
    """Upstream response body made of `data:` frames."""
    return "".join(f"data: {f}\n\n" for f in frames).encode("utf-8")


def delta_frame(text: str) -> str:
    return json.dumps({"choices": [{"delta": {"content": text}}]})


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import app.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def db():
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def preset(db):
    p = Preset(
        id="gpt",
        name="GPT",
        description="4.1 Mini",
        url="https://upstream.test",
        api_key="sk-test",
        model_id="gpt-4.1-mini",
        system_prompt="You are a terse assistant.",
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def conversation(db, preset):
    conv = Conversation(owner_id="alice", title="Chat", preset_id=preset.id)
    db.add(conv)
    db.commit()
    db.refresh(conv)
    return conv


class FakeUpstream:
    """Records upstream requests and answers with a configurable response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.respond = lambda request: httpx.Response(
            200, content=sse_body(delta_frame("Hello"), delta_frame(" there"), "[DONE]")
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


class FakeSearch:
    def __init__(self, result: str | None = "sunny, 20C"):
        self.result = result
        self.queries: list[str] = []

    async def query(self, text: str) -> str | None:
        self.queries.append(text)
        return self.result


class FakeOffloader:
    def __init__(self):
        self.calls = 0

    async def offload(self, parts):
        self.calls += 1
        return [
            {"type": "image_url", "image_url": {"url": "https://files.test/img.png"}}
            if p.get("type") == "image_url" else p
            for p in parts
        ]


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def search():
    return FakeSearch()


@pytest.fixture
def offloader():
    return FakeOffloader()


@pytest.fixture
def client(upstream, search, offloader):
    """FastAPI TestClient with all external deps patched."""
    with (
        patch("app.core.database.engine", test_engine),
        patch("app.api.deps.engine", test_engine),
    ):
        from app.main import app

        app.dependency_overrides[get_session] = get_test_session
        app.dependency_overrides[get_token_resolver] = lambda: StaticTokenResolver(TOKENS)
        app.dependency_overrides[get_upstream_client] = lambda: OpenAICompatibleClient(
            transport=httpx.MockTransport(upstream.handler)
        )
        app.dependency_overrides[get_search_provider] = lambda: search
        app.dependency_overrides[get_offloader] = lambda: offloader

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return {"Authorization": "Bearer alice-token"}
