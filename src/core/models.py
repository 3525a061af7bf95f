"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any transport- or engine-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _frozen_mapping(values: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
    """Return a read-only copy; nested objects become proxies and lists tuples."""

    return _freeze(dict(values or {}))


@dataclass(frozen=True)
class RequestContext:
    """Fields needed by the engine to answer a recommendation request."""

    user_id: Optional[str] = None
    item_id: Optional[int] = None
    domain_id: Optional[int] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class Message:
    """Parsed payload of one contest-server envelope.

    Unset fields stay ``None``. ``error`` is only filled when the payload
    could not be read at all (empty, malformed or not a JSON object).
    """

    item_id: Optional[int] = None
    domain_id: Optional[int] = None
    notification_type: Optional[str] = None
    timestamp: Optional[int] = None
    title: Optional[str] = None
    text: Optional[str] = None
    url: Optional[str] = None
    request_context: Optional[RequestContext] = None
    metadata: Mapping[str, Any] = field(default_factory=_frozen_mapping)
    error: Optional[str] = None

    def __post_init__(self) -> None:
        # Callers may hand in a plain dict; store a read-only copy.
        object.__setattr__(self, "metadata", _frozen_mapping(self.metadata))

    @classmethod
    def unreadable(cls, reason: str) -> "Message":
        return cls(error=reason)


@dataclass(frozen=True)
class EngineResult:
    """Outcome of a single recommendation engine call."""

    ok: bool
    item_ids: Tuple[int, ...] = ()
    reason: Optional[str] = None

    @classmethod
    def success(cls, item_ids: Iterable[int] = ()) -> "EngineResult":
        return cls(ok=True, item_ids=tuple(item_ids))

    @classmethod
    def failure(cls, reason: str) -> "EngineResult":
        return cls(ok=False, reason=reason)
