"""Pytest fixtures for testing."""
import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone

# Must be set before app settings are imported
os.environ.setdefault("RATE_LIMIT_CALLS", "100000")
os.environ["REVALIDATE_SECRET"] = "test-secret"
os.environ["ADMIN_EMAIL"] = "admin@example.com"

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.cache import TaggedCache
from app.core.config import settings
from app.services.auth_service import AuthService
from firestore_fake import FakeFirestore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAuthService(AuthService):
    """Accepts tokens of the form 'token-<uid>' and 'admin-token'."""

    def verify_firebase_token(self, id_token: str) -> dict | None:
        if id_token == "admin-token":
            return {"uid": "admin-uid", "email": "admin@example.com"}
        if id_token.startswith("token-"):
            uid = id_token.removeprefix("token-")
            return {"uid": uid, "email": f"{uid}@example.com"}
        return None


def make_resource(resource_id: str, **fields) -> dict:
    """Raw catalog row with sensible defaults."""
    row = {
        "id": resource_id,
        "title": f"Resource {resource_id}",
        "url": f"https://example.com/{resource_id}",
    }
    row.update(fields)
    return row


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_db() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def cache(clock: FakeClock) -> TaggedCache:
    return TaggedCache(ttl_seconds=settings.CACHE_TTL_SECONDS, clock=clock)


@pytest.fixture
def catalog(fake_db: FakeFirestore) -> list[dict]:
    """A small catalog seeded into the fake resources collection."""
    rows = [
        make_resource(
            "r1",
            title="Intro to Python",
            author="Ada Lovelace",
            source="PyCon",
            topics=["Python", "Programming"],
            tag_categories="Software Engineering, Languages",
            tag_subcategories=["Syntax"],
            key_takeaways=["Use virtual environments"],
            difficulty="Beginner",
            content_type="Video",
            rating=4.5,
            date_added=datetime(2024, 1, 10, tzinfo=timezone.utc),
        ),
        make_resource(
            "r2",
            title="Deep Learning Systems",
            author="Geoffrey Hinton",
            source="arXiv",
            topics='["Deep Learning", "Machine Learning"]',
            tag_categories=["AI"],
            tag_subcategories=["Neural Networks"],
            key_takeaways=["Backpropagation scales"],
            difficulty="Advanced",
            content_type="Paper",
            rating=4.9,
            date_added=datetime(2024, 3, 5, tzinfo=timezone.utc),
        ),
        make_resource(
            "r3",
            title="async patterns",
            author=None,
            source=None,
            topics=None,
            difficulty="Intermediate",
            content_type="Article",
            rating=None,
            date_added=None,
        ),
    ]
    fake_db.collection(settings.RESOURCES_COLLECTION).add_docs(*rows)
    return rows


@pytest.fixture
async def client(fake_db: FakeFirestore, cache: TaggedCache) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with the backend and auth replaced by fakes."""
    from main import app
    from app.api.v1.dependencies import get_cache, get_db
    from app.api.v1.endpoints.auth import get_auth_service

    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_auth_service] = FakeAuthService

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[str], dict]:
    def build(uid: str = "user-1") -> dict:
        return {"Authorization": f"Bearer token-{uid}"}
    return build
