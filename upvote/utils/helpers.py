import uuid
from datetime import datetime, timezone
from typing import Any

from flask import abort, request

JSON_OBJECT_REQUIRED = "JSON object body required"


def utcnow() -> datetime:
    """Naive UTC timestamp; all stored datetimes are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_public_id() -> str:
    return uuid.uuid4().hex


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def safe_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def from_timestamp(ts) -> datetime | None:
    """Unix seconds (as sent by Stripe) to naive UTC."""
    if not ts:
        return None
    return datetime.fromtimestamp(int(ts), timezone.utc).replace(tzinfo=None)


def json_object() -> dict:
    """
    Request body as a dict. A missing or unparseable body reads as {} so the
    caller's required-field check answers it; any other JSON value aborts 400.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        abort(400, description=JSON_OBJECT_REQUIRED)
    return payload
