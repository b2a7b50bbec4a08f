from datetime import date, datetime

from flask import current_app, request
from werkzeug.exceptions import BadRequest


def is_valid_email(email) -> bool:
    return isinstance(email, str) and "@" in email and "." in email.split("@")[-1] and len(email) <= 255


def normalize_email(value) -> str:
    return (value or "").strip().lower() if isinstance(value, str) else ""


def parse_date(value):
    """Accepts YYYY-MM-DD or a full ISO timestamp; returns a date or raises ValueError."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or len(value) < 10:
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(value[:10])


def parse_count(value, field: str) -> int:
    """Non-negative integer from JSON or form input."""
    if value is None or value == "":
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a whole number")
    if number < 0:
        raise ValueError(f"{field} cannot be negative")
    return number


def page_args(default_limit=None):
    default_limit = default_limit or current_app.config.get("DEFAULT_PAGE_SIZE", 100)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 500)
    limit = request.args.get("limit", type=int) or default_limit
    offset = request.args.get("offset", type=int) or 0
    return max(1, min(limit, max_limit)), max(0, offset)


def json_body() -> dict:
    """The request's JSON object, {} when there is none. Other JSON values are a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


def text_field(data, field: str) -> str:
    """Stripped string value of an optional field; a non-string value is a 400."""
    value = data.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise BadRequest(f"{field} must be a string")
    return value.strip()
