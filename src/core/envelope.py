"""Envelope payload parsing (core domain).

Turns the JSON ``body`` of a contest-server envelope into a ``Message``.
Parsing never raises: unreadable payloads become a ``Message`` with every
field unset and ``error`` describing why.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Tuple

from core.models import Message, RequestContext

# Keys of the ``context.simple`` object used by the contest protocol.
SIMPLE_ITEM_ID = "25"
SIMPLE_DOMAIN_ID = "27"
SIMPLE_USER_ID = "57"

_ITEM_UPDATE_KEYS = {"id", "domainid", "title", "text", "url", "created_at"}


def _load_object(raw: Optional[str]) -> Tuple[Optional[dict], Optional[str]]:
    if raw is None or not raw.strip():
        return None, "empty payload"
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        return None, f"malformed json: {exc}"
    if not isinstance(payload, dict):
        return None, f"payload is a JSON {type(payload).__name__}, not an object"
    return payload, None


def as_int(value: Any) -> Optional[int]:
    """Return an integer for ints and integer-like strings, else None."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if digits.isdecimal():
            try:
                return int(text)
            except ValueError:
                # Longer than the interpreter's int-string conversion limit.
                return None
    return None


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _simple_section(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    context = payload.get("context")
    if not isinstance(context, dict):
        return {}
    simple = context.get("simple")
    return simple if isinstance(simple, dict) else {}


def _pick(simple: Mapping[str, Any], key: str, payload: Mapping[str, Any], fallback: str) -> Any:
    # context.simple wins; flat keys are only read when it has no value.
    value = simple.get(key)
    if value is None:
        value = payload.get(fallback)
    return value


def _request_context(payload: Mapping[str, Any]) -> RequestContext:
    simple = _simple_section(payload)
    user_id = _pick(simple, SIMPLE_USER_ID, payload, "userID")
    limit = as_int(payload.get("limit"))
    return RequestContext(
        user_id=_as_text(user_id),
        item_id=as_int(_pick(simple, SIMPLE_ITEM_ID, payload, "itemID")),
        domain_id=as_int(_pick(simple, SIMPLE_DOMAIN_ID, payload, "domainID")),
        limit=limit if limit is not None and limit > 0 else None,
    )


def parse_item_update(raw: Optional[str]) -> Message:
    """Parse an ``item_update`` payload (flat item record)."""

    payload, error = _load_object(raw)
    if payload is None:
        return Message.unreadable(error)

    metadata = {key: value for key, value in payload.items() if key not in _ITEM_UPDATE_KEYS}
    return Message(
        item_id=as_int(payload.get("id")),
        domain_id=as_int(payload.get("domainid")),
        timestamp=as_int(payload.get("created_at")),
        title=_as_text(payload.get("title")),
        text=_as_text(payload.get("text")),
        url=_as_text(payload.get("url")),
        metadata=metadata,
    )


def parse_recommendation_request(raw: Optional[str]) -> Message:
    """Parse a ``recommendation_request`` payload, including its request context."""

    payload, error = _load_object(raw)
    if payload is None:
        return Message.unreadable(error)

    context = _request_context(payload)
    return Message(
        item_id=context.item_id,
        domain_id=context.domain_id,
        timestamp=as_int(payload.get("timestamp")),
        request_context=context,
        metadata={key: value for key, value in payload.items() if key not in {"context", "timestamp"}},
    )


def parse_event_notification(raw: Optional[str]) -> Message:
    """Parse an ``event_notification`` payload; ``type`` is the notification kind."""

    payload, error = _load_object(raw)
    if payload is None:
        return Message.unreadable(error)

    context = _request_context(payload)
    return Message(
        item_id=context.item_id,
        domain_id=context.domain_id,
        notification_type=_as_text(payload.get("type")),
        timestamp=as_int(payload.get("timestamp")),
        request_context=context,
        metadata={
            key: value for key, value in payload.items() if key not in {"context", "timestamp", "type"}
        },
    )
