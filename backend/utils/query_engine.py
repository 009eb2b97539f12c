"""
Generic list query engine shared by the Explore, Vendors, Materials and
History endpoints.

Raw query-string values go in, a page of ORM rows plus an exact count comes
out. Each entity declares an ``ListQueryConfig``: its searchable text
columns, sort table, facets and the filters that are always applied.

Parsing is permissive: unknown enum values, sorts and pages fall back to
the entity's defaults instead of raising. Visibility facets default to the
narrowest safe set (e.g. only ``active`` listings) so that a missing
parameter never widens the result.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urlencode
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import UnaryExpression
from sqlalchemy.ext.asyncio import AsyncSession
from config import MAX_PAGE
from utils.errors import QueryFailure
import logging
import math

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"
ALL = "all"


def normalize_query(value: Any) -> str:
    """Trim and collapse internal whitespace."""
    if value is None:
        return ""
    return " ".join(str(value).split())


def escape_like(value: str) -> str:
    """Escape LIKE metacharacters so user input only ever matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"


def parse_page(raw: Any, max_page: int = MAX_PAGE) -> int:
    try:
        page = int(str(raw).strip())
    except (TypeError, ValueError):
        return 1
    if page < 1:
        return 1
    return min(page, max_page)


def clean_value(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip()


@dataclass
class Facet:
    """
    One filter dimension.

    ``choices`` is the case-sensitive allow-list (``None`` accepts any
    non-empty value). Empty, ``all`` (unless listed) and unknown values
    resolve to ``default``. ``build`` turns a resolved value into a
    predicate, or ``None`` for "no restriction".
    """
    name: str
    build: Callable[[str], Any]
    choices: Optional[Sequence[str]] = None
    default: Optional[str] = None
    parse: Optional[Callable[[str], str]] = None

    def resolve(self, raw: Any) -> Optional[str]:
        value = clean_value(raw)
        if self.parse is not None and value:
            value = self.parse(value)
        if not value:
            return self.default
        if value == ALL and (self.choices is None or ALL not in self.choices):
            return self.default
        if self.choices is not None and value not in self.choices:
            return self.default
        return value


@dataclass
class ListQueryConfig:
    name: str
    model: Any
    path: str
    search_columns: Sequence[Any]
    sorts: Mapping[str, Sequence[Any]]
    default_sort: str = "newest"
    page_size: int = 12
    facets: Sequence[Facet] = ()
    base_filters: Sequence[Any] = ()
    joins: Sequence[Any] = ()
    options: Sequence[Any] = ()
    sort_aliases: Mapping[str, str] = field(default_factory=dict)


@dataclass
class ListParams:
    q: str = ""
    sort: str = "newest"
    page: int = 1
    filters: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class QueryPage:
    rows: List[Any]
    total: int
    page: int
    page_size: int
    params: ListParams

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def range_start(self) -> int:
        if self.total == 0:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def range_end(self) -> int:
        return min(self.total, self.page * self.page_size)

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def build_href(path: str, params: Mapping[str, Any]) -> str:
    qs = urlencode([(key, value) for key, value in params.items() if value not in (None, "")])
    return f"{path}?{qs}" if qs else path


def sort_keys(clauses: Sequence[Any]) -> List[Optional[str]]:
    """Column keys behind ORDER BY clauses, unwrapping asc/desc/nulls_last"""
    keys = []
    for clause in clauses:
        element = clause
        while isinstance(element, UnaryExpression):
            element = element.element
        keys.append(getattr(element, "key", None))
    return keys


def _row_key(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key)


def merge_rows(existing: Sequence[Any], incoming: Sequence[Any], key: str = "id") -> List[Any]:
    """
    "Load more" append: keep everything already shown, add only records
    whose id has not been seen. Sort keys may change between fetches, so
    a row can legitimately come back on the next page.
    """
    seen = set()
    merged = []
    for row in list(existing) + list(incoming):
        row_id = _row_key(row, key)
        if row_id in seen:
            continue
        seen.add(row_id)
        merged.append(row)
    return merged


class ListQueryEngine:
    def __init__(self, config: ListQueryConfig):
        self.config = config

    # Parsing

    def parse(self, raw: Mapping[str, Any]) -> ListParams:
        sort = clean_value(raw.get("sort"))
        sort = self.config.sort_aliases.get(sort, sort)
        if sort not in self.config.sorts:
            sort = self.config.default_sort

        return ListParams(
            q=normalize_query(raw.get("q")),
            sort=sort,
            page=parse_page(raw.get("page", 1)),
            filters={facet.name: facet.resolve(raw.get(facet.name)) for facet in self.config.facets},
        )

    def canonical_params(self, params: ListParams, include_page: bool = True) -> Dict[str, Any]:
        """Only non-default values, so that an absent parameter means the default."""
        out: Dict[str, Any] = {}
        if params.q:
            out["q"] = params.q
        for facet in self.config.facets:
            value = params.filters.get(facet.name)
            if value is not None and value != facet.default:
                out[facet.name] = value
        if params.sort != self.config.default_sort:
            out["sort"] = params.sort
        if include_page and params.page != 1:
            out["page"] = params.page
        return out

    def filters_key(self, params: ListParams) -> str:
        canonical = self.canonical_params(params, include_page=False)
        return "|".join(f"{key}={value}" for key, value in canonical.items())

    def active_filters(self, params: ListParams) -> int:
        return len(self.canonical_params(params, include_page=False))

    def links(self, page: QueryPage, path: Optional[str] = None) -> Dict[str, Optional[str]]:
        params = page.params
        path = path or self.config.path

        def at(number: int) -> str:
            moved = ListParams(q=params.q, sort=params.sort, page=number, filters=params.filters)
            return build_href(path, self.canonical_params(moved))

        return {
            "current": at(params.page),
            "prev": at(params.page - 1) if page.has_prev else None,
            "next": at(params.page + 1) if page.has_more else None,
            "clear": path,
        }

    # Statement building

    def predicates(self, params: ListParams) -> List[Any]:
        clauses = list(self.config.base_filters)

        for facet in self.config.facets:
            value = params.filters.get(facet.name)
            if value is None:
                continue
            clause = facet.build(value)
            if clause is not None:
                clauses.append(clause)

        if params.q and self.config.search_columns:
            pattern = contains_pattern(params.q)
            clauses.append(or_(*[
                column.ilike(pattern, escape=LIKE_ESCAPE) for column in self.config.search_columns
            ]))

        return clauses

    def order_by(self, sort: str) -> List[Any]:
        model = self.config.model
        clauses = list(self.config.sorts.get(sort) or self.config.sorts[self.config.default_sort])
        if sort != self.config.default_sort and "created_at" not in sort_keys(clauses):
            clauses.append(model.created_at.desc())
        clauses.append(model.id.asc())
        return clauses

    def build_statement(self, params: ListParams, extra_filters: Sequence[Any] = ()):
        stmt = select(self.config.model)
        for target, onclause in self.config.joins:
            stmt = stmt.join(target, onclause)
        return stmt.where(*self.predicates(params), *extra_filters)

    # Execution

    async def fetch(
        self,
        db: AsyncSession,
        raw: Optional[Mapping[str, Any]] = None,
        params: Optional[ListParams] = None,
        extra_filters: Sequence[Any] = (),
    ) -> QueryPage:
        if params is None:
            params = self.parse(raw or {})

        page_size = self.config.page_size
        stmt = self.build_statement(params, extra_filters)
        count_stmt = select(func.count()).select_from(stmt.subquery())
        page_stmt = (
            stmt.options(*self.config.options)
            .order_by(*self.order_by(params.sort))
            .offset((params.page - 1) * page_size)
            .limit(page_size)
        )

        try:
            total = (await db.execute(count_stmt)).scalar_one()
            rows = list((await db.execute(page_stmt)).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error querying {self.config.name}: {str(e)}")
            raise QueryFailure(f"Could not load {self.config.name}.", entity=self.config.name) from e

        return QueryPage(rows=rows, total=int(total or 0), page=params.page, page_size=page_size, params=params)
