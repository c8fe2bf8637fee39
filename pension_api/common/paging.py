# pension_api/common/paging.py
from flask import request

DEFAULT_SIZE = 20
MAX_SIZE = 50


def page_limit():
    """?page=&size= clamped to sane values; junk falls back to the defaults."""
    page = request.args.get("page", default=1, type=int) or 1
    size = request.args.get("size", default=DEFAULT_SIZE, type=int) or DEFAULT_SIZE
    return max(page, 1), max(1, min(size, MAX_SIZE))


def text_q():
    return (request.args.get("q") or "").strip() or None


def page_meta(page: int, size: int, total: int) -> dict:
    return {"page": page, "size": size, "total": total, "pages": -(-total // size)}
