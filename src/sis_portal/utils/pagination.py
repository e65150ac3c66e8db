"""Pagination and search helpers shared by the list endpoints."""

import math
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query

from sis_portal.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


@dataclass
class PageResult:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def normalize_page(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else DEFAULT_PAGE_SIZE
    return page, min(limit, MAX_PAGE_SIZE)


def paginate(query: Query, page: Optional[int], limit: Optional[int]) -> PageResult:
    """Run a count and a sliced fetch for an already filtered, ordered query."""
    page, limit = normalize_page(page, limit)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return PageResult(items=items, total=total, page=page, limit=limit)


def split_search_terms(search: Optional[str]) -> List[str]:
    """Split on whitespace and commas, dropping punctuation-only fragments."""
    if not search:
        return []
    parts = (re.sub(r"[^\w@.\-]", "", part) for part in re.split(r"[\s,]+", search.strip()))
    return [part for part in parts if part]


def search_filter(search: Optional[str], columns: Sequence[Any]):
    """Build a case-insensitive filter matching every term in any column.

    A single term matches when any column contains it; several terms must each
    match some column (so "doe jane" finds Jane Doe).

    Returns:
        A SQLAlchemy boolean clause, or None when there is nothing to filter.
    """
    terms = split_search_terms(search)
    if not terms:
        return None
    clauses = [or_(*(column.ilike(f"%{term}%") for column in columns)) for term in terms]
    return clauses[0] if len(clauses) == 1 else and_(*clauses)


def split_ids(value: Optional[str]) -> List[str]:
    """Parse a comma-separated id filter such as ``courseId=a,b``."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
