"""
Global search overlay state and windowed list reveal
"""
import logging
from enum import Enum
from typing import List, Optional, Sequence

from ..core.config import settings
from ..core.exceptions import AuthenticationException
from ..models.resource import Resource
from ..services.filter_engine import matches_query
from .store import ResourceStoreClient

logger = logging.getLogger(__name__)


class SearchScope(str, Enum):
    catalog = "catalog"
    bookmarks = "bookmarks"


class GlobalSearch:
    """
    Keyboard-driven search over either the whole catalog or the user's bookmarks.

    Uses the same text matching as the filter engine, keeps the source order
    and shows at most `limit` results.
    """

    def __init__(self, store: ResourceStoreClient, limit: Optional[int] = None):
        self.store = store
        self.limit = settings.GLOBAL_SEARCH_LIMIT if limit is None else limit
        self.is_open = False
        self.scope = SearchScope.catalog
        self.query = ""
        self.selected_index = 0
        self._source: List[Resource] = []
        self.results: List[Resource] = []

    async def open(self, scope: SearchScope = SearchScope.catalog) -> None:
        """
        Open the overlay and load the searchable set for the scope

        Raises:
            AuthenticationException: Bookmark scope without a session
        """
        scope = SearchScope(scope)
        if scope is SearchScope.bookmarks:
            if not self.store.context.is_authenticated:
                raise AuthenticationException("Sign in to search bookmarks")
            bookmarks = await self.store.list_bookmarks()
            self._source = [bookmark.resource for bookmark in bookmarks if bookmark.resource is not None]
        else:
            self._source = await self.store.fetch_resources()

        self.scope = scope
        self.is_open = True
        self.set_query("")
        logger.debug(f"Global search opened over {len(self._source)} {scope.value} entries")

    def close(self) -> None:
        self.is_open = False
        self.query = ""
        self.results = []
        self.selected_index = 0

    def set_query(self, query: str) -> List[Resource]:
        self.query = query
        self.selected_index = 0
        if not query.strip():
            self.results = []
        else:
            self.results = [r for r in self._source if matches_query(r, query)][:self.limit]
        return self.results

    def move_selection(self, step: int) -> int:
        """Move the highlighted result by step, wrapping at both ends"""
        if self.results:
            self.selected_index = (self.selected_index + step) % len(self.results)
        return self.selected_index

    def selected(self) -> Optional[Resource]:
        if 0 <= self.selected_index < len(self.results):
            return self.results[self.selected_index]
        return None


class RevealWindow:
    """Shows the first `initial` items, then `step` more each time the end is near"""

    def __init__(self, items: Sequence = (), initial: int = 24, step: int = 12):
        if initial < 1 or step < 1:
            raise ValueError("initial and step must be positive")
        self.initial = initial
        self.step = step
        self.items: Sequence = items
        self.count = initial

    @property
    def visible(self) -> Sequence:
        return self.items[:self.count]

    @property
    def has_more(self) -> bool:
        return self.count < len(self.items)

    def reveal_more(self) -> Sequence:
        if self.has_more:
            self.count = min(self.count + self.step, len(self.items))
        return self.visible

    def reset(self, items: Sequence) -> None:
        """New result list: start over from the first window"""
        self.items = items
        self.count = self.initial
