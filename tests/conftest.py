import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("JWT_JWKS_URL", None)
os.environ.pop("JWT_AUDIENCE", None)

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from Assistant.app import app
from Assistant.database import Base, SessionLocal, engine
from Assistant.services.chat_pipeline import PipelineSettings
from Assistant.services.errors import ServiceError
from Assistant.services.openrouter_client import get_chat_completion_client
from Assistant.services.search.base import SearchResult
from Assistant.services.search.factory import get_search_provider
from Assistant.subapps.chat_routes import get_pipeline_settings


class FakeChatClient:
    def __init__(self, reply: str = "Hi there"):
        self.reply = reply
        self.error: Optional[ServiceError] = None
        self.calls: list[list[dict]] = []

    async def complete(self, messages: list[dict]) -> str:
        self.calls.append([dict(m) for m in messages])
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSearchProvider:
    name = "fake"

    def __init__(self, results: Optional[list[SearchResult]] = None):
        self.results = results or []
        self.error: Optional[Exception] = None
        self.calls: list[tuple[str, int]] = []

    def search(self, query: str, count: int = 5) -> list[SearchResult]:
        self.calls.append((query, count))
        if self.error is not None:
            raise self.error
        return self.results[:count]


def make_results(n: int) -> list[SearchResult]:
    return [
        SearchResult(
            title=f"Title {i}",
            description=f"Description {i}",
            url=f"https://example.com/{i}",
            source="Example",
            published_at=None,
        )
        for i in range(1, n + 1)
    ]


def auth_headers(user_id: str = "user-1") -> dict:
    token = jwt.encode({"sub": user_id}, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_ai():
    return FakeChatClient()


@pytest.fixture
def fake_search():
    return FakeSearchProvider(make_results(3))


@pytest.fixture
def pipeline_settings():
    return PipelineSettings()


@pytest.fixture
def client(fake_ai, fake_search, pipeline_settings):
    app.dependency_overrides[get_chat_completion_client] = lambda: fake_ai
    app.dependency_overrides[get_search_provider] = lambda: fake_search
    app.dependency_overrides[get_pipeline_settings] = lambda: pipeline_settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
