"""
Bookmark State Manager: optimistic bookmark toggling with rollback
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Set

from ..core.exceptions import AuthenticationException, ResourceHubException, ValidationException
from .context import ClientContext, Session
from .store import BOOKMARKS_TAG, ResourceStoreClient

logger = logging.getLogger(__name__)


class ToggleAction(str, Enum):
    added = "added"
    removed = "removed"


class MutationState(str, Enum):
    idle = "idle"
    pending = "pending"          # local patch applied, server write in flight
    committed = "committed"
    rolled_back = "rolled_back"


@dataclass
class BookmarkMutation:
    resource_id: str
    action: ToggleAction
    state: MutationState = MutationState.pending
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ToggleResult:
    action: ToggleAction


class BookmarkStateManager:
    """
    Holds the set of bookmarked resource IDs for the signed-in user.

    The set is seeded from the first successful bookmark fetch. Toggling
    patches it synchronously, then writes to the server; a failed write
    applies the exact inverse patch and re-raises. Successful writes trigger
    a background refetch that reconciles the set with the server, keeping
    any still-pending local patches on top.

    Two toggles of the same resource in quick succession are not serialized:
    the local set reflects the latest toggle and both writes race.
    """

    def __init__(self, context: ClientContext, store: Optional[ResourceStoreClient] = None):
        self.context = context
        self.store = store or ResourceStoreClient(context)
        self._ids: Set[str] = set()
        self._initialized = False
        self._mutations: Dict[str, BookmarkMutation] = {}
        self._sync_tasks: Set[asyncio.Task] = set()
        # Bumped on every reset so late responses from an old session are ignored
        self._generation = 0
        # Bumped on every server read; only the most recently started one is applied
        self._fetch_seq = 0
        self._unsubscribe = context.on_auth_change(self._on_auth_change)

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def bookmark_ids(self) -> FrozenSet[str]:
        return frozenset(self._ids)

    def mutation_state(self, resource_id: str) -> MutationState:
        mutation = self._mutations.get(resource_id)
        return mutation.state if mutation else MutationState.idle

    def is_bookmarked(self, resource_id: str) -> bool:
        return resource_id in self._ids

    def _require_session(self) -> None:
        if not self.context.is_authenticated:
            raise AuthenticationException("Not authenticated")

    def _patch(self, resource_id: str, bookmarked: bool) -> None:
        if bookmarked:
            self._ids.add(resource_id)
        else:
            self._ids.discard(resource_id)

    def _next_fetch(self) -> int:
        self._fetch_seq += 1
        return self._fetch_seq

    def _is_latest(self, generation: int, seq: int) -> bool:
        return generation == self._generation and seq == self._fetch_seq

    async def initialize(self) -> None:
        """
        Seed the local set from the server, once per session

        Raises:
            AuthenticationException: No session
            BackendException: The fetch failed; the manager stays uninitialized
        """
        self._require_session()
        if self._initialized:
            return
        generation = self._generation
        seq = self._next_fetch()
        bookmarks = await self.store.list_bookmarks()
        if not self._is_latest(generation, seq):
            return
        self._ids = {bookmark.resource_id for bookmark in bookmarks}
        self._initialized = True
        logger.info(f"Bookmark state seeded with {len(self._ids)} bookmarks")

    async def toggle_bookmark(self, resource_id: str) -> ToggleResult:
        """
        Add or remove a bookmark, updating local state before the server call

        Raises:
            AuthenticationException: No session (state untouched)
            ValidationException: Blank resource_id (state untouched)
            ResourceHubException: The server write failed (local change rolled back)
        """
        self._require_session()
        if not resource_id or not resource_id.strip():
            raise ValidationException("Resource ID is required")

        currently_bookmarked = resource_id in self._ids
        action = ToggleAction.removed if currently_bookmarked else ToggleAction.added
        mutation = BookmarkMutation(resource_id=resource_id, action=action)
        generation = self._generation

        self._patch(resource_id, not currently_bookmarked)
        self._mutations[resource_id] = mutation

        try:
            if currently_bookmarked:
                await self.store.delete_bookmark(resource_id)
            else:
                await self.store.create_bookmark(resource_id)
        except ResourceHubException as e:
            if generation == self._generation:
                self._patch(resource_id, currently_bookmarked)
            mutation.state = MutationState.rolled_back
            mutation.error = e
            logger.warning(f"Bookmark {action.value} for {resource_id} rolled back: {e.message}")
            raise

        mutation.state = MutationState.committed
        if generation == self._generation:
            self._schedule_sync()
        return ToggleResult(action=action)

    async def refresh(self) -> None:
        """Refetch bookmarks and reconcile the local set with the server"""
        self._require_session()
        generation = self._generation
        seq = self._next_fetch()
        self.store.invalidate(BOOKMARKS_TAG)
        bookmarks = await self.store.list_bookmarks()
        if not self._is_latest(generation, seq):
            logger.debug("Discarding bookmark snapshot overtaken by a newer refresh")
            return

        ids = {bookmark.resource_id for bookmark in bookmarks}
        for mutation in self._mutations.values():
            if mutation.state is MutationState.pending:
                if mutation.action is ToggleAction.added:
                    ids.add(mutation.resource_id)
                else:
                    ids.discard(mutation.resource_id)
        self._ids = ids
        self._initialized = True

    async def _background_refresh(self) -> None:
        try:
            await self.refresh()
        except ResourceHubException as e:
            # Local state stays as patched; the next refresh reconciles it
            logger.warning(f"Background bookmark sync failed: {e.message}")

    def _schedule_sync(self) -> None:
        task = asyncio.create_task(self._background_refresh())
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)

    async def wait_for_sync(self) -> None:
        """Wait for in-flight background reconciliation to finish"""
        while True:
            pending = [task for task in self._sync_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def reset(self) -> None:
        """Drop all state; used when the session ends or changes"""
        self._generation += 1
        self._ids.clear()
        self._mutations.clear()
        self._initialized = False
        for task in list(self._sync_tasks):
            task.cancel()

    def _on_auth_change(self, session: Optional[Session]) -> None:
        self.reset()

    async def aclose(self) -> None:
        self._unsubscribe()
        self.reset()
        await self.wait_for_sync()
