"""
Resource catalog service: fetching, facet derivation and preview content
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from ..core.cache import TaggedCache
from ..core.config import settings
from ..models.resource import (
    FacetOptions,
    FilterOptions,
    Resource,
    SortField,
    SortOrder,
    normalize_facet_values,
    text_to_array,
)
from . import filter_engine
from .base.firestore_service import FirestoreBaseService

logger = logging.getLogger(__name__)

# Cache tags accepted by the revalidation endpoint
RESOURCES_TAG = "resources"
RESOURCE_OPTIONS_TAG = "resource-options"
PREVIEW_TAG = "sneak-peek-content"
CACHE_TAGS = (RESOURCES_TAG, RESOURCE_OPTIONS_TAG, PREVIEW_TAG)

# Firestore caps the number of values in an `in` / `array-contains-any` clause
FIRESTORE_DISJUNCTION_LIMIT = 30


def parse_resources(rows: Iterable[Dict[str, Any]]) -> List[Resource]:
    """Validate raw rows into Resource models, skipping rows that cannot be read"""
    resources = []
    for row in rows:
        try:
            resources.append(Resource.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed resource {row.get('id')!r}: {e.error_count()} errors")
    return resources


def _sorted_values(values: Iterable[str]) -> List[str]:
    return sorted(normalize_facet_values(values), key=lambda v: (v.casefold(), v))


def derive_facet_options(rows: Iterable[Dict[str, Any]]) -> FacetOptions:
    """
    Build the facet vocabularies from raw resource rows.

    Multi-value columns may hold lists, JSON-encoded arrays or comma/newline
    separated text; every form is flattened into one sorted, de-duplicated list.
    """
    topics: List[str] = []
    categories: List[str] = []
    subcategories: List[str] = []
    difficulties: List[str] = []
    content_types: List[str] = []

    for row in rows:
        topics.extend(text_to_array(row.get("topics")))
        categories.extend(text_to_array(row.get("tag_categories")))
        subcategories.extend(text_to_array(row.get("tag_subcategories")))
        if row.get("difficulty"):
            difficulties.append(str(row["difficulty"]))
        if row.get("content_type"):
            content_types.append(str(row["content_type"]))

    return FacetOptions(
        topics=_sorted_values(topics),
        tag_categories=_sorted_values(categories),
        tag_subcategories=_sorted_values(subcategories),
        difficulties=_sorted_values(difficulties),
        content_types=_sorted_values(content_types),
    )


def pushdown_predicate(filters: Optional[FilterOptions]) -> Optional[Tuple[str, str, tuple]]:
    """
    Pick at most one facet that Firestore can pre-filter on.

    Firestore matches exact spellings only, so this is used when the catalog
    stores canonical facet values. The filter engine re-checks every row.
    """
    if filters is None:
        return None
    candidates = (
        ("difficulty", "in", filters.difficulty),
        ("content_type", "in", filters.content_type),
        ("topics", "array_contains_any", filters.topics),
        ("tag_subcategories", "array_contains_any", filters.tag_subcategories),
    )
    for field, operator, values in candidates:
        if values and len(values) <= FIRESTORE_DISJUNCTION_LIMIT:
            return (field, operator, tuple(values))
    return None


class ResourceService(FirestoreBaseService):
    """Read-only access to the technical content catalog"""

    def __init__(self, cache: TaggedCache, db=None, pushdown: Optional[bool] = None):
        super().__init__(settings.RESOURCES_COLLECTION, db=db)
        self.cache = cache
        self.pushdown = settings.FIRESTORE_PUSHDOWN if pushdown is None else pushdown

    async def _scan(self, predicate: Optional[Tuple[str, str, tuple]]) -> List[Resource]:
        async def load() -> List[Resource]:
            filters = []
            if predicate is not None:
                field, operator, values = predicate
                filters.append((field, operator, list(values)))
            return parse_resources(await self.query(filters))

        return await self.cache.get_or_fetch(
            (RESOURCES_TAG, predicate),
            load,
            tags=[RESOURCES_TAG],
        )

    async def fetch_resources(
        self,
        query: str = "",
        filters: Optional[FilterOptions] = None,
        sort_by: SortField = SortField.date_added,
        sort_order: SortOrder = SortOrder.desc,
    ) -> List[Resource]:
        """
        Fetch the catalog filtered by text and facets, in the requested order

        Raises:
            FirestoreException: If the backend read fails
        """
        predicate = pushdown_predicate(filters) if self.pushdown else None
        candidates = await self._scan(predicate)
        results = filter_engine.apply(candidates, query, filters, sort_by, sort_order)
        logger.info(f"Resource query {query!r} matched {len(results)}/{len(candidates)} rows")
        return results

    async def fetch_facet_options(self) -> FacetOptions:
        """Facet vocabularies derived from every catalog row"""
        async def load() -> FacetOptions:
            return derive_facet_options(await self.query())

        return await self.cache.get_or_fetch(
            (RESOURCE_OPTIONS_TAG,),
            load,
            tags=[RESOURCE_OPTIONS_TAG],
        )

    async def verify_connection(self) -> Dict[str, Any]:
        """Probe the backend: one sample row, its columns, and the row count"""
        sample = await self.query(limit=1)
        columns = sorted(sample[0].keys()) if sample else []
        return {
            "connected": True,
            "tableExists": True,
            "columnCount": len(columns),
            "rowCount": await self.count(),
            "sampleColumns": columns,
        }


class PreviewService(FirestoreBaseService):
    """Restricted catalog subset shown to visitors who are not signed in"""

    def __init__(self, cache: TaggedCache, db=None):
        super().__init__(settings.PREVIEW_COLLECTION, db=db)
        self.cache = cache

    async def fetch_preview_content(self) -> List[Resource]:
        """Newest first. A missing or forbidden collection yields an empty list."""
        async def load() -> List[Resource]:
            rows = await self.query(order_by="date_added", descending=True, missing_ok=True)
            return parse_resources(rows)

        return await self.cache.get_or_fetch((PREVIEW_TAG,), load, tags=[PREVIEW_TAG])
