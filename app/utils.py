"""Shared validation and request helpers."""

import re
from datetime import date, datetime

from flask import current_app, request

_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
_DIGITS_RE = re.compile(r'\D')


def is_valid_email(value: str) -> bool:
    """Return True if *value* looks like a valid email address."""
    return isinstance(value, str) and bool(_EMAIL_RE.match(value.strip()))


def is_valid_phone(value: str) -> bool:
    """Return True if *value* contains 7–15 digits (international-friendly).

    Accepts any mix of digits, spaces, hyphens, parentheses, dots, and a
    leading +.  Strips all non-digit characters before counting.
    """
    if not value:
        return True  # presence is checked separately
    if not isinstance(value, str):
        return False
    digits = _DIGITS_RE.sub('', value.strip())
    return 7 <= len(digits) <= 15


def parse_date(value):
    """Parse an ISO (or US-style) date string; dates pass through."""
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()

    value = str(value).strip()
    if not value:
        return None
    for fmt in ["%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y"]:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"invalid date: {value!r}")


def parse_int(value):
    """Return *value* as an int, or None when blank or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def resource_params(key: str) -> dict:
    """Return the JSON body nested under *key* (``{"book": {...}}``).

    A flat body is accepted too, so ``{"title": ...}`` works like
    ``{"book": {"title": ...}}``.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {}
    nested = payload.get(key)
    if isinstance(nested, dict):
        return nested
    return payload


def filter_params(*names: str) -> dict:
    """Whitelisted, stripped, non-blank query-string filters."""
    filters = {}
    for name in names:
        value = request.args.get(name, "").strip()
        if value:
            filters[name] = value
    return filters


def page_params() -> tuple[int, int]:
    """Read ``page`` and ``per_page`` from the query string, clamped."""
    default_per_page = current_app.config.get("DEFAULT_PER_PAGE", 20)
    max_per_page = current_app.config.get("MAX_PER_PAGE", 100)

    page = parse_int(request.args.get("page")) or 1
    per_page = parse_int(request.args.get("per_page")) or default_per_page
    return max(page, 1), max(1, min(per_page, max_per_page))


def pagination_meta(pagination) -> dict:
    return {
        "current_page": pagination.page,
        "next_page": pagination.next_num,
        "prev_page": pagination.prev_num,
        "total_pages": pagination.pages,
        "total_count": pagination.total,
    }
