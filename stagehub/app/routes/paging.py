"""
routes/paging.py — ?page=&per= parsing shared by paginated GET endpoints.
"""

from __future__ import annotations

from flask import current_app, request

from stagehub.app.schemas.live_schema import PaginationSchema


def page_args() -> tuple[int, int]:
    """Reads ?page=&per= and caps per at MAX_PAGE_SIZE."""
    args = PaginationSchema().load(request.args)
    per = min(args["per"], current_app.config.get("MAX_PAGE_SIZE", 100))
    return args["page"], per
