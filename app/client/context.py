"""
Client-side context: HTTP client, query cache and session
"""
import logging
from dataclasses import dataclass
from time import monotonic
from typing import Callable, Dict, List, Optional

import httpx

from ..core.cache import TaggedCache
from ..core.config import settings
from ..core.exceptions import AuthenticationException

logger = logging.getLogger(__name__)


USER_SCOPED_TAG = "bookmarks"


@dataclass(frozen=True)
class Session:
    access_token: str
    email: Optional[str] = None


AuthListener = Callable[[Optional[Session]], None]


class ClientContext:
    """
    Everything the client components share, constructed once and passed around.

    Signing out clears the query cache and tells every listener, so state
    derived from the old session (bookmarks) is dropped.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        stale_seconds: Optional[float] = None,
        clock: Callable[[], float] = monotonic,
    ):
        self.base_url = base_url or settings.API_BASE_URL
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.CLIENT_TIMEOUT_SECONDS,
        )
        self.query_cache = TaggedCache(
            settings.CLIENT_STALE_SECONDS if stale_seconds is None else stale_seconds,
            clock=clock,
        )
        self.session: Optional[Session] = None
        self._listeners: List[AuthListener] = []

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    def auth_headers(self) -> Dict[str, str]:
        """Bearer header for the current session"""
        if self.session is None:
            raise AuthenticationException("Not authenticated")
        return {"Authorization": f"Bearer {self.session.access_token}"}

    def on_auth_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.session)

    def sign_in(self, access_token: str, email: Optional[str] = None) -> None:
        if not access_token:
            raise AuthenticationException("Access token is required")
        self.session = Session(access_token=access_token, email=email)
        # Per-user queries from any previous session are no longer valid
        self.query_cache.invalidate_tags([USER_SCOPED_TAG])
        logger.info(f"Signed in as {email or 'unknown user'}")
        self._notify()

    def sign_out(self) -> None:
        if self.session is None:
            return
        self.session = None
        self.query_cache.clear()
        logger.info("Signed out; client cache cleared")
        self._notify()

    async def aclose(self) -> None:
        self.sign_out()
        self._listeners.clear()
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "ClientContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
