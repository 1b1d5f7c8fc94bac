# Overview: Page/per_page clamping shared by every list endpoint.

from __future__ import annotations

DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100


def clamp_pagination(page: int | None, per_page: int | None) -> tuple[int, int]:
    """Default missing or non-positive values; silently cap per_page at MAX_PER_PAGE."""
    page = page if page and page > 0 else 1
    per_page = per_page if per_page and per_page > 0 else DEFAULT_PER_PAGE
    return page, min(per_page, MAX_PER_PAGE)


def paginate(query, page: int | None, per_page: int | None) -> dict:
    """Run `query` for one page and report total_pages alongside the rows."""
    page, per_page = clamp_pagination(page, per_page)
    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
        "results": rows,
    }


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
