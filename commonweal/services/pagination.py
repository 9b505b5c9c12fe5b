"""
commonweal.services.pagination — Offset Pagination & Filter Helpers
====================================================================

Every listing endpoint takes ``page`` (1-based) and ``limit`` and answers
with ``total``, ``totalPages`` and ``currentPage``.  Services build a
filtered ``select()``, hand it to :func:`paginate`, and get back a
:class:`Page`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, Select, String, cast, func, or_, select
from sqlalchemy.orm import Session


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(slots=True)
class Page:
    items: list[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def paginate(session: Session, stmt: Select, request: PageRequest) -> Page:
    """Run *stmt* for one page and count the full result set."""
    total = session.scalar(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ) or 0
    items = session.scalars(stmt.offset(request.offset).limit(request.limit)).all()
    return Page(items=list(items), total=total, page=request.page, limit=request.limit)


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def contains(column, text: str) -> ColumnElement[bool]:
    """Case-insensitive substring match, with LIKE wildcards escaped."""
    return column.ilike(_like_pattern(text), escape="\\")


def text_search(text: str, *columns) -> ColumnElement[bool]:
    """Match *text* against any of *columns*; JSON columns are cast to text."""
    clauses = []
    for col in columns:
        if isinstance(col.type, String):
            clauses.append(contains(col, text))
        else:
            clauses.append(contains(cast(col, String), text))
    return or_(*clauses)
