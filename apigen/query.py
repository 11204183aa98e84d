# apigen/query.py
#
# Dynamic filter/sort/paginate over an entity collection.
#
# Search semantics: OR over the entity's searchable string columns of
# "column contains term". Wildcards in the term are escaped (autoescape), so
# '%' and '_' match literally. Case sensitivity follows the backend's LIKE
# (SQLite: ASCII case-insensitive, PostgreSQL: case-sensitive) unless
# ignore_case=True, which compares lower(column) against lower(term).
from __future__ import annotations
import logging
from typing import Any, List, Optional, Tuple, Type

from sqlalchemy import Select, or_
from sqlalchemy.sql.elements import ColumnElement

from apigen.discovery import EntitySpec
from apigen.schemas import PagedResult
from core.ports import StorageCollection

logger = logging.getLogger(__name__)

ORDER_DESC = "desc"
# LIMIT/OFFSET are signed 64-bit on SQLite and PostgreSQL
MAX_ROW_OFFSET = 2**63 - 1


def build_search_clause(columns: List[Any], search: Optional[str], ignore_case: bool = False) -> Optional[ColumnElement]:
    """None means "no filter": blank term or no searchable columns."""
    if search is None or not search.strip():
        return None
    if not columns:
        return None
    if ignore_case:
        ors = [c.icontains(search, autoescape=True) for c in columns]
    else:
        ors = [c.contains(search, autoescape=True) for c in columns]
    return or_(*ors)


def apply_search(stmt: Select, spec: EntitySpec, search: Optional[str], ignore_case: bool = False) -> Select:
    clause = build_search_clause(spec.searchable_attrs(), search, ignore_case=ignore_case)
    if clause is None:
        return stmt
    return stmt.where(clause)


def apply_ordering(stmt: Select, spec: EntitySpec, order_by: Optional[str]) -> Select:
    # identity key is the only sort key; anything but "desc" is ascending
    key = spec.key_attr
    if order_by == ORDER_DESC:
        return stmt.order_by(key.desc())
    return stmt.order_by(key.asc())


def normalize_paging(page: int, page_size: int, max_page_size: int) -> Tuple[int, int]:
    """
    Clamp page_size to [1, max_page_size] and page to [1, last page whose
    offset + page_size still fits MAX_ROW_OFFSET]. Pages past that bound are
    empty anyway, so the clamped page answers with an empty window.
    """
    page_size = max(1, min(page_size, max_page_size))
    last_page = (MAX_ROW_OFFSET - page_size) // page_size + 1
    page = max(1, min(page, last_page))
    return page, page_size


def apply_pagination(stmt: Select, page: int, page_size: int) -> Select:
    return stmt.offset((page - 1) * page_size).limit(page_size)


async def run_query(
    collection: StorageCollection,
    spec: EntitySpec,
    *,
    search: Optional[str] = None,
    order_by: Optional[str] = "asc",
    page: int = 1,
    page_size: int = 20,
    max_page_size: int = 100,
    ignore_case: bool = False,
    result_cls: Type[PagedResult] = PagedResult,
    row_mapper=None,
) -> PagedResult:
    """
    Build select -> where(search) -> count + order_by(key) -> offset/limit, execute both.
    Count and page are pushed down to the database; nothing else is materialized.
    """
    page, page_size = normalize_paging(page, page_size, max_page_size)

    filtered = apply_search(collection.query_all(), spec, search, ignore_case=ignore_case)
    total = await collection.count(filtered)

    paged = apply_pagination(apply_ordering(filtered, spec, order_by), page, page_size)
    rows = await collection.fetch(paged)
    if row_mapper is not None:
        rows = [row_mapper(r) for r in rows]

    logger.debug(
        "query %s search=%r order_by=%s page=%s page_size=%s -> %d/%d",
        spec.name, search, order_by, page, page_size, len(rows), total,
    )
    return result_cls(data=rows, total_count=total, page=page, page_size=page_size)
