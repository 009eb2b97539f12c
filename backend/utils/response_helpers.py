"""
Response helper utilities for handling UUID conversions, model validation
and paginated list payloads
"""
from typing import Any, Dict, List, Optional
import uuid
from pydantic import BaseModel
from utils.query_engine import ListQueryEngine, QueryPage


def convert_uuids_to_strings(obj: Any) -> Any:
    """
    Recursively convert UUID objects to strings in any data structure
    """
    if isinstance(obj, uuid.UUID):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: convert_uuids_to_strings(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_uuids_to_strings(item) for item in obj]
    elif hasattr(obj, '__table__'):
        # SQLAlchemy models: only loaded column attributes, never lazy loads
        result = {}
        for key, value in obj.__dict__.items():
            if not key.startswith('_'):
                result[key] = convert_uuids_to_strings(value)
        return result
    else:
        return obj


def safe_model_validate(model_class: BaseModel, data: Any, **extra) -> BaseModel:
    """
    Safely validate a model by converting UUIDs to strings first
    """
    if hasattr(data, '__table__'):
        data = data.__dict__.copy()

    clean_data = convert_uuids_to_strings(data)

    if isinstance(clean_data, dict):
        clean_data = {k: v for k, v in clean_data.items() if not k.startswith('_')}
        clean_data.update(convert_uuids_to_strings(extra))

    return model_class.model_validate(clean_data)


def safe_model_validate_list(model_class: BaseModel, data_list: List[Any]) -> List[BaseModel]:
    return [safe_model_validate(model_class, item) for item in data_list]


class PageLinks(BaseModel):
    current: str
    prev: Optional[str] = None
    next: Optional[str] = None
    clear: str


class PageResponse(BaseModel):
    """Pagination envelope shared by every list endpoint"""
    page: int
    limit: int
    total: int
    total_pages: int
    range_start: int
    range_end: int
    has_more: bool
    active_filters: int
    filters_key: str
    filters: Dict[str, Any]
    links: PageLinks


def page_fields(engine: ListQueryEngine, page: QueryPage, path: Optional[str] = None) -> Dict[str, Any]:
    """Envelope fields for a ``PageResponse`` subclass; callers add the rows."""
    params = page.params
    return {
        "page": page.page,
        "limit": page.page_size,
        "total": page.total,
        "total_pages": page.total_pages,
        "range_start": page.range_start,
        "range_end": page.range_end,
        "has_more": page.has_more,
        "active_filters": engine.active_filters(params),
        "filters_key": engine.filters_key(params),
        "filters": {"q": params.q, "sort": params.sort, **params.filters},
        "links": PageLinks(**engine.links(page, path)),
    }


def as_uuid(value: Any) -> Optional[uuid.UUID]:
    """Parse a path/query id; ``None`` when it is not a UUID."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None
