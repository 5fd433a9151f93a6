"""
Search, facet filtering and sorting over resource lists

Everything here is pure: the engine is the source of truth for which
resources match and in what order, whatever the backend already filtered.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ..models.resource import FilterOptions, Resource, SortField, SortOrder, facet_key

logger = logging.getLogger(__name__)

DIFFICULTY_RANK: Dict[str, int] = {
    "beginner": 1,
    "intermediate": 2,
    "advanced": 3,
}

ResourceLike = Union[Resource, Dict[str, Any]]


def _as_resource(item: ResourceLike) -> Resource:
    if isinstance(item, Resource):
        return item
    return Resource.model_validate(item)


def _lower(value: Optional[str]) -> str:
    return (value or "").lower()


def matches_query(resource: Resource, query: Optional[str]) -> bool:
    """
    Case-insensitive substring match against title, author, source and
    every element of topics, tag categories, tag subcategories and key takeaways.

    An empty (or whitespace-only) query matches everything.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return True

    for text in (resource.title, resource.author, resource.source):
        if needle in _lower(text):
            return True

    for values in (
        resource.topics,
        resource.tag_categories,
        resource.tag_subcategories,
        resource.key_takeaways,
    ):
        if any(needle in _lower(value) for value in values or ()):
            return True

    return False


def _overlaps(selected: List[str], values: Optional[List[str]]) -> bool:
    wanted = {facet_key(v) for v in selected}
    return any(facet_key(v) in wanted for v in values or ())


def _equals_any(selected: List[str], value: Optional[str]) -> bool:
    if value is None:
        return False
    return facet_key(value) in {facet_key(v) for v in selected}


def _contained_in(selected: List[str], values: Optional[List[str]]) -> bool:
    # Categories are matched against their denormalized text form
    text = facet_key(", ".join(values or ()))
    if not text:
        return False
    return any(facet_key(v) in text for v in selected)


def matches_filters(resource: Resource, filters: Optional[FilterOptions]) -> bool:
    """AND across facets, OR within a facet. Empty facets are ignored."""
    if filters is None:
        return True
    if filters.topics and not _overlaps(filters.topics, resource.topics):
        return False
    if filters.tag_subcategories and not _overlaps(filters.tag_subcategories, resource.tag_subcategories):
        return False
    if filters.tag_categories and not _contained_in(filters.tag_categories, resource.tag_categories):
        return False
    if filters.difficulty and not _equals_any(filters.difficulty, resource.difficulty):
        return False
    if filters.content_type and not _equals_any(filters.content_type, resource.content_type):
        return False
    return True


def difficulty_rank(difficulty: Optional[str]) -> int:
    """Beginner=1, Intermediate=2, Advanced=3, anything else 0"""
    return DIFFICULTY_RANK.get(facet_key(difficulty), 0)


def _date_key(resource: Resource):
    value: Optional[datetime] = resource.date_added
    if value is None:
        return (0, 0.0)
    return (1, value.timestamp())


SORT_KEYS: Dict[SortField, Callable[[Resource], Any]] = {
    SortField.date_added: _date_key,
    SortField.rating: lambda r: r.rating if r.rating is not None else 0.0,
    SortField.title: lambda r: (r.title or "").casefold(),
    SortField.difficulty: lambda r: difficulty_rank(r.difficulty),
}


def parse_sort_field(value: Union[str, SortField, None]) -> SortField:
    try:
        return SortField(value)
    except ValueError:
        logger.debug(f"Unknown sort field {value!r}, using date_added")
        return SortField.date_added


def parse_sort_order(value: Union[str, SortOrder, None]) -> SortOrder:
    try:
        return SortOrder(value)
    except ValueError:
        return SortOrder.desc


def sort_resources(
    resources: Iterable[Resource],
    sort_by: Union[str, SortField] = SortField.date_added,
    sort_order: Union[str, SortOrder] = SortOrder.desc,
) -> List[Resource]:
    """
    Stable sort. Descending order reverses the comparison only, so
    resources with equal keys keep their input order either way.
    """
    key = SORT_KEYS[parse_sort_field(sort_by)]
    descending = parse_sort_order(sort_order) is SortOrder.desc
    return sorted(resources, key=key, reverse=descending)


def apply(
    resources: Iterable[ResourceLike],
    query: Optional[str] = "",
    filters: Optional[FilterOptions] = None,
    sort_by: Union[str, SortField] = SortField.date_added,
    sort_order: Union[str, SortOrder] = SortOrder.desc,
) -> List[Resource]:
    """
    Filter resources by text query and facet selections, then sort.

    Args:
        resources: Resource models or raw records
        query: Free-text search; trimmed and matched case-insensitively
        filters: Facet selections
        sort_by: date_added, rating, title or difficulty
        sort_order: asc or desc

    Returns:
        The full ordered list of matching resources
    """
    matched = [
        resource
        for resource in map(_as_resource, resources)
        if matches_query(resource, query) and matches_filters(resource, filters)
    ]
    return sort_resources(matched, sort_by, sort_order)
