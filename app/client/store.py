"""
Resource Store Client: typed access to the REST API with a freshness window
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx
from pydantic import TypeAdapter, ValidationError

from ..core.exceptions import (
    AuthenticationException,
    AuthorizationException,
    BackendException,
    ValidationException,
)
from ..models.bookmark import BookmarkResponse
from ..models.resource import FacetOptions, FilterOptions, Resource, SortField, SortOrder
from .context import USER_SCOPED_TAG, ClientContext

logger = logging.getLogger(__name__)

RESOURCES_TAG = "resources"
RESOURCE_OPTIONS_TAG = "resource-options"
PREVIEW_TAG = "sneak-peek-content"
BOOKMARKS_TAG = USER_SCOPED_TAG

# Error text the API returns when the preview dataset is absent
_MISSING_DATASET_MARKERS = ("does not exist", "permission denied")

_resource_list = TypeAdapter(List[Resource])
_bookmark_list = TypeAdapter(List[BookmarkResponse])

_STATUS_EXCEPTIONS = {
    400: ValidationException,
    401: AuthenticationException,
    403: AuthorizationException,
}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase or f"HTTP {response.status_code}"


class ResourceStoreClient:
    """
    Fetches resources, facet options and bookmarks from the API.

    Read queries are cached in the context's query cache and considered
    fresh for the context's stale window. Network and HTTP failures surface
    as ResourceHubException subclasses, never as raw httpx errors.
    """

    def __init__(self, context: ClientContext):
        self.context = context

    @property
    def cache(self):
        return self.context.query_cache

    async def _request(self, method: str, path: str, *, auth: bool = False, **kwargs) -> httpx.Response:
        headers = self.context.auth_headers() if auth else {}
        try:
            response = await self.context.http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendException(f"Network error calling {path}", details={"error": str(e)})

        if response.is_success:
            return response

        message = _error_message(response)
        exception_class = _STATUS_EXCEPTIONS.get(response.status_code, BackendException)
        logger.warning(f"{method} {path} returned {response.status_code}: {message}")
        raise exception_class(message, details={"status_code": response.status_code})

    @staticmethod
    def _parse(adapter: TypeAdapter, payload: Any):
        try:
            return adapter.validate_python(payload)
        except ValidationError as e:
            raise BackendException("Unexpected response from server", details={"error": str(e)})

    async def fetch_resources(
        self,
        query: str = "",
        filters: Optional[FilterOptions] = None,
        sort_by: Union[str, SortField] = SortField.date_added,
        sort_order: Union[str, SortOrder] = SortOrder.desc,
    ) -> List[Resource]:
        """
        Fetch resources matching the query and facets, in the requested order

        Raises:
            ValidationException: Unknown sort field or order (before any request)
            BackendException: Network or server failure
        """
        try:
            sort_by = SortField(sort_by)
            sort_order = SortOrder(sort_order)
        except ValueError as e:
            raise ValidationException(str(e))

        query = (query or "").strip()
        filters = filters or FilterOptions()
        params: Dict[str, str] = {"sortBy": sort_by.value, "sortOrder": sort_order.value}
        if query:
            params["search"] = query
        params.update(filters.to_query_params())

        async def load() -> List[Resource]:
            response = await self._request("GET", "/resources", params=params)
            return self._parse(_resource_list, response.json())

        key = (RESOURCES_TAG, query, filters.cache_key(), sort_by.value, sort_order.value)
        return await self.cache.get_or_fetch(key, load, tags=[RESOURCES_TAG])

    async def fetch_facet_options(self) -> FacetOptions:
        """Facet vocabularies for the filter panel"""
        async def load() -> FacetOptions:
            response = await self._request("GET", "/resource-options")
            return self._parse(TypeAdapter(FacetOptions), response.json())

        return await self.cache.get_or_fetch((RESOURCE_OPTIONS_TAG,), load, tags=[RESOURCE_OPTIONS_TAG])

    async def fetch_preview_content(self) -> List[Resource]:
        """Preview content; an absent dataset gives an empty list instead of an error"""
        async def load() -> List[Resource]:
            try:
                response = await self._request("GET", "/sneak-peek")
            except BackendException as e:
                if any(marker in e.message.lower() for marker in _MISSING_DATASET_MARKERS):
                    logger.info(f"Preview content unavailable: {e.message}")
                    return []
                raise
            return self._parse(_resource_list, response.json())

        return await self.cache.get_or_fetch((PREVIEW_TAG,), load, tags=[PREVIEW_TAG])

    async def list_bookmarks(self) -> List[BookmarkResponse]:
        """
        The signed-in user's bookmarks, newest first

        Raises:
            AuthenticationException: No session
        """
        async def load() -> List[BookmarkResponse]:
            response = await self._request("GET", "/bookmarks", auth=True)
            return self._parse(_bookmark_list, response.json().get("bookmarks", []))

        self.context.auth_headers()  # fail fast without a session
        return await self.cache.get_or_fetch((BOOKMARKS_TAG,), load, tags=[BOOKMARKS_TAG])

    async def create_bookmark(self, resource_id: str, notes: Optional[str] = None) -> BookmarkResponse:
        """
        Raises:
            ValidationException: resource_id missing (no request is made)
            AuthenticationException: No session
        """
        if not resource_id or not resource_id.strip():
            raise ValidationException("Resource ID is required")
        body: Dict[str, Any] = {"resource_id": resource_id}
        if notes:
            body["notes"] = notes
        response = await self._request("POST", "/bookmarks", auth=True, json=body)
        return self._parse(TypeAdapter(BookmarkResponse), response.json().get("bookmark"))

    async def delete_bookmark(self, resource_id: str) -> None:
        """
        Raises:
            ValidationException: resource_id missing (no request is made)
            AuthenticationException: No session
        """
        if not resource_id or not resource_id.strip():
            raise ValidationException("Resource ID is required")
        await self._request("DELETE", "/bookmarks", auth=True, params={"resource_id": resource_id})

    def invalidate(self, *tags: str) -> int:
        """Mark cached queries with these tags as stale"""
        return self.cache.invalidate_tags(tags)

    async def revalidate(self, secret: str, tags: Iterable[str]) -> Dict[str, Any]:
        """Ask the server to drop its cache tags (shared-secret administrative action)"""
        tag_list = [tag.strip() for tag in tags if tag and tag.strip()]
        if not tag_list:
            raise ValidationException("No tags provided")
        response = await self._request(
            "POST", "/revalidate", params={"secret": secret, "tags": ",".join(tag_list)},
        )
        self.invalidate(*tag_list)
        return response.json()

    async def refresh_cache(self) -> Dict[str, Any]:
        """Admin action: drop every server cache tag, then the local ones"""
        response = await self._request("POST", "/admin/refresh-cache", auth=True)
        self.invalidate(RESOURCES_TAG, RESOURCE_OPTIONS_TAG, PREVIEW_TAG)
        return response.json()

