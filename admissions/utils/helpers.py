"""Shared utility functions — request parsing and pagination."""

import logging
import math

from flask import request

from admissions.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def get_json_body(required: bool = True) -> dict:
    """Return the request JSON object.

    Raises:
        ValidationError: body is missing (when required) or not a JSON object.
    """
    data = request.get_json(silent=True)
    if data is None:
        if required:
            raise ValidationError("Request body must be a JSON object", details={"body": "required"})
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", details={"body": "expected an object"})
    return data


def parse_pagination(default_limit=DEFAULT_PAGE_SIZE, max_limit=MAX_PAGE_SIZE):
    """Read ``page`` / ``limit`` query params (1-based page, capped limit).

    Bad input falls back to the defaults rather than failing the request.
    """
    try:
        page = max(int(request.args.get("page", 1)), 1)
    except (ValueError, TypeError):
        page = 1
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    return page, limit


def paginate(query, page: int, limit: int):
    """Apply page/limit to a SQLAlchemy query.

    Returns:
        (items_list, pagination_dict)
    """
    total = query.count()
    items = query.limit(limit).offset((page - 1) * limit).all()
    total_pages = math.ceil(total / limit) if limit else 0
    return items, {
        "currentPage": page,
        "totalPages": total_pages,
        "total": total,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }
