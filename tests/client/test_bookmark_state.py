"""Tests for the optimistic bookmark state manager."""
import asyncio
import json
from collections.abc import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport

from app.client.bookmarks import BookmarkStateManager, MutationState, ToggleAction
from app.client.context import ClientContext
from app.core.exceptions import AuthenticationException, BackendException, ValidationException
from conftest import FakeClock


class FakeBookmarkApi:
    """Async MockTransport handler holding one user's bookmarks in memory."""

    def __init__(self) -> None:
        self.ids: list[str] = []
        self.fail_writes = False
        self.gate: asyncio.Event | None = None
        # Holds the next list response after the server state has been read
        self.hold_next_read: asyncio.Event | None = None
        self.requests: list[httpx.Request] = []

    def _bookmark(self, resource_id: str) -> dict:
        return {
            "id": f"user-1_{resource_id}",
            "user_id": "user-1",
            "resource_id": resource_id,
            "created_at": "2024-01-01T00:00:00Z",
        }

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method != "GET":
            if self.gate is not None:
                await self.gate.wait()
            if self.fail_writes:
                return httpx.Response(500, json={"error": "write failed"})

        if request.method == "GET":
            body = {"bookmarks": [self._bookmark(i) for i in reversed(self.ids)]}
            hold, self.hold_next_read = self.hold_next_read, None
            if hold is not None:
                await hold.wait()
            return httpx.Response(200, json=body)
        if request.method == "POST":
            resource_id = json.loads(request.content)["resource_id"]
            if resource_id not in self.ids:
                self.ids.append(resource_id)
            return httpx.Response(201, json={"bookmark": self._bookmark(resource_id)})
        resource_id = request.url.params["resource_id"]
        if resource_id in self.ids:
            self.ids.remove(resource_id)
        return httpx.Response(200, json={"success": True})

    def count(self, method: str) -> int:
        return sum(1 for r in self.requests if r.method == method)


@pytest.fixture
def api() -> FakeBookmarkApi:
    return FakeBookmarkApi()


@pytest.fixture
async def context(api: FakeBookmarkApi, clock: FakeClock) -> AsyncGenerator[ClientContext, None]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(api), base_url="http://test/api/v1")
    async with ClientContext(http_client=http, clock=clock) as context:
        yield context
    await http.aclose()


@pytest.fixture
async def manager(context: ClientContext) -> AsyncGenerator[BookmarkStateManager, None]:
    manager = BookmarkStateManager(context)
    yield manager
    await manager.aclose()


async def test_initialize_seeds_from_server(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test the first authenticated fetch seeds the local set, once."""
    api.ids = ["r1", "r2"]
    context.sign_in("token-user-1")

    await manager.initialize()
    await manager.initialize()

    assert manager.initialized
    assert manager.bookmark_ids == {"r1", "r2"}
    assert manager.is_bookmarked("r1")
    assert not manager.is_bookmarked("r3")
    assert api.count("GET") == 1


async def test_unauthenticated_is_refused(manager: BookmarkStateManager, api: FakeBookmarkApi) -> None:
    """Test that signed-out toggles fail without touching state or the network."""
    with pytest.raises(AuthenticationException):
        await manager.toggle_bookmark("r1")
    with pytest.raises(AuthenticationException):
        await manager.initialize()

    assert manager.bookmark_ids == frozenset()
    assert api.requests == []


async def test_blank_resource_id_is_refused(manager: BookmarkStateManager, context: ClientContext) -> None:
    """Test that a blank id is rejected before the local patch."""
    context.sign_in("token-user-1")
    with pytest.raises(ValidationException):
        await manager.toggle_bookmark(" ")
    assert manager.bookmark_ids == frozenset()


async def test_toggle_adds_then_removes(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that toggling twice returns to the original state locally and on the server."""
    context.sign_in("token-user-1")
    await manager.initialize()

    first = await manager.toggle_bookmark("r1")
    assert first.action is ToggleAction.added
    assert manager.is_bookmarked("r1")
    assert manager.mutation_state("r1") is MutationState.committed

    second = await manager.toggle_bookmark("r1")
    assert second.action is ToggleAction.removed
    assert not manager.is_bookmarked("r1")

    await manager.wait_for_sync()
    assert api.ids == []
    assert manager.bookmark_ids == frozenset()


async def test_local_state_updates_before_server_responds(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test the optimistic patch is visible while the write is in flight."""
    context.sign_in("token-user-1")
    await manager.initialize()
    api.gate = asyncio.Event()

    task = asyncio.create_task(manager.toggle_bookmark("r1"))
    await asyncio.sleep(0)
    while api.count("POST") == 0:
        await asyncio.sleep(0)

    assert manager.is_bookmarked("r1")
    assert manager.mutation_state("r1") is MutationState.pending

    api.gate.set()
    result = await task
    assert result.action is ToggleAction.added
    assert manager.mutation_state("r1") is MutationState.committed


async def test_failed_add_rolls_back(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that a failed create removes the optimistic addition and re-raises."""
    context.sign_in("token-user-1")
    await manager.initialize()
    api.fail_writes = True

    with pytest.raises(BackendException, match="write failed"):
        await manager.toggle_bookmark("r1")

    assert not manager.is_bookmarked("r1")
    assert manager.mutation_state("r1") is MutationState.rolled_back


async def test_failed_remove_rolls_back(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that a failed delete restores the bookmark locally."""
    api.ids = ["r1", "r2"]
    context.sign_in("token-user-1")
    await manager.initialize()
    api.fail_writes = True

    with pytest.raises(BackendException):
        await manager.toggle_bookmark("r1")

    assert manager.bookmark_ids == {"r1", "r2"}


async def test_background_sync_reconciles_with_server(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that a successful write refetches and picks up changes made elsewhere."""
    context.sign_in("token-user-1")
    await manager.initialize()
    api.ids.append("from-another-device")

    await manager.toggle_bookmark("r1")
    await manager.wait_for_sync()

    assert manager.bookmark_ids == {"r1", "from-another-device"}
    assert api.count("GET") == 2


async def test_refresh_keeps_pending_patches(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that reconciliation does not undo a toggle whose write is still in flight."""
    context.sign_in("token-user-1")
    await manager.initialize()
    api.gate = asyncio.Event()

    task = asyncio.create_task(manager.toggle_bookmark("r1"))
    while api.count("POST") == 0:
        await asyncio.sleep(0)

    await manager.refresh()
    assert manager.is_bookmarked("r1")

    api.gate.set()
    await task


async def test_older_sync_finishing_last_does_not_undo_newer_toggle(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that a stale reconciliation snapshot is not applied over a newer one."""
    context.sign_in("token-user-1")
    await manager.initialize()

    release_first_sync = asyncio.Event()
    api.hold_next_read = release_first_sync
    await manager.toggle_bookmark("A")
    while api.count("GET") < 2:
        await asyncio.sleep(0)

    await manager.toggle_bookmark("B")
    while len(manager._sync_tasks) > 1:
        await asyncio.sleep(0)
    assert manager.bookmark_ids == {"A", "B"}

    release_first_sync.set()
    await manager.wait_for_sync()

    assert api.ids == ["A", "B"]
    assert manager.bookmark_ids == {"A", "B"}
    assert manager.is_bookmarked("B")


async def test_sign_out_resets_state(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that signing out drops the bookmark set and requires a new seed."""
    api.ids = ["r1"]
    context.sign_in("token-user-1")
    await manager.initialize()

    context.sign_out()

    assert not manager.initialized
    assert manager.bookmark_ids == frozenset()
    assert not manager.is_bookmarked("r1")


async def test_late_response_after_sign_out_is_ignored(
        manager: BookmarkStateManager,
        context: ClientContext,
        api: FakeBookmarkApi,
) -> None:
    """Test that a write finishing after sign-out does not repopulate the set."""
    context.sign_in("token-user-1")
    await manager.initialize()
    api.gate = asyncio.Event()

    task = asyncio.create_task(manager.toggle_bookmark("r1"))
    while api.count("POST") == 0:
        await asyncio.sleep(0)

    context.sign_out()
    api.gate.set()
    await task

    assert manager.bookmark_ids == frozenset()
    assert manager.mutation_state("r1") is MutationState.idle


async def test_against_the_api(client: httpx.AsyncClient, clock: FakeClock) -> None:
    """Test seeding and toggling end to end through the FastAPI app."""
    from main import app

    http = httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api/v1")
    async with ClientContext(http_client=http, clock=clock) as context:
        context.sign_in("token-user-1", "user-1@example.com")
        manager = BookmarkStateManager(context)

        await manager.initialize()
        assert manager.bookmark_ids == frozenset()

        await manager.toggle_bookmark("r1")
        await manager.wait_for_sync()
        assert manager.bookmark_ids == {"r1"}

        bookmarks = (await client.get(
            "/api/v1/bookmarks", headers={"Authorization": "Bearer token-user-1"},
        )).json()["bookmarks"]
        assert [b["resource_id"] for b in bookmarks] == ["r1"]

        await manager.toggle_bookmark("r1")
        await manager.wait_for_sync()
        assert manager.bookmark_ids == frozenset()
        await manager.aclose()
    await http.aclose()
