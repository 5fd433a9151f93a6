"""
Resource catalog endpoints
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ....core.config import settings
from ....core.exceptions import ValidationException
from ....core.responses import ERROR_RESPONSES
from ....models.resource import FacetOptions, FilterOptions, Resource, SortField, SortOrder
from ....services.resource_service import PreviewService, ResourceService
from ..dependencies import get_preview_service, get_resource_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part for part in value.split(",") if part.strip()]


def parse_sort(sort_by: str, sort_order: str):
    try:
        field = SortField(sort_by)
    except ValueError:
        raise ValidationException(
            f"Invalid sortBy {sort_by!r}",
            details={"allowed": [f.value for f in SortField]},
        )
    try:
        order = SortOrder(sort_order)
    except ValueError:
        raise ValidationException(
            f"Invalid sortOrder {sort_order!r}",
            details={"allowed": [o.value for o in SortOrder]},
        )
    return field, order


@router.get("/resources", response_model=List[Resource], responses=ERROR_RESPONSES)
async def list_resources(
    search: str = "",
    topics: Optional[str] = None,
    tag_categories: Optional[str] = Query(None, alias="tagCategories"),
    tag_subcategories: Optional[str] = Query(None, alias="tagSubcategories"),
    difficulty: Optional[str] = None,
    content_type: Optional[str] = None,
    sort_by: str = Query(SortField.date_added.value, alias="sortBy"),
    sort_order: str = Query(SortOrder.desc.value, alias="sortOrder"),
    resource_service: ResourceService = Depends(get_resource_service),
):
    """
    Search and filter the catalog

    Facet parameters are comma-joined value lists. Facets combine with AND,
    values within one facet with OR.
    """
    field, order = parse_sort(sort_by, sort_order)
    filters = FilterOptions(
        topics=_split(topics),
        tag_categories=_split(tag_categories),
        tag_subcategories=_split(tag_subcategories),
        difficulty=_split(difficulty),
        content_type=_split(content_type),
    )
    query = search.strip()[:settings.MAX_SEARCH_LENGTH]
    return await resource_service.fetch_resources(query, filters, field, order)


@router.get("/resource-options", response_model=FacetOptions, responses=ERROR_RESPONSES)
async def get_resource_options(
    resource_service: ResourceService = Depends(get_resource_service),
):
    """Every selectable value for each facet"""
    return await resource_service.fetch_facet_options()


@router.get("/sneak-peek", response_model=List[Resource], responses=ERROR_RESPONSES)
async def get_sneak_peek(
    preview_service: PreviewService = Depends(get_preview_service),
):
    """Preview content for visitors who are not signed in"""
    return await preview_service.fetch_preview_content()
