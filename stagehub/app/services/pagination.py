"""
services/pagination.py — Page-of-results helper shared by list endpoints.

Wire shape:
    {"items": [...], "metadata": {"page": 1, "per": 20, "total": 57}}

`page` is 1-based. A page past the end is an empty items list, not an error.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session


def paginate(
        stmt: Select,
        page: int,
        per: int,
        session: Session,
        render: Callable = lambda row: row,
) -> dict:
    """
    Runs stmt for one page and counts the full result.

    Args:
        stmt:    An ordered SELECT. Ordering must be deterministic.
        render:  Applied to each entity to build the items list.
    """
    total = session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()

    rows = session.execute(
        stmt.limit(per).offset((page - 1) * per)
    ).scalars().all()

    return {
        "items": [render(row) for row in rows],
        "metadata": {"page": page, "per": per, "total": total},
    }
