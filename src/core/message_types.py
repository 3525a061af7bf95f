"""Message type discriminators used by the contest protocol."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class MessageType(Enum):
    ITEM_UPDATE = "item_update"
    RECOMMENDATION_REQUEST = "recommendation_request"
    EVENT_NOTIFICATION = "event_notification"
    ERROR_NOTIFICATION = "error_notification"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "MessageType":
        """Map a raw ``type`` parameter to a member, case-insensitively.

        Surrounding whitespace is not trimmed. Anything unrecognized (including
        a literal "unknown") maps to UNKNOWN.
        """

        if not isinstance(raw, str):
            return cls.UNKNOWN
        normalized = raw.lower()
        for member in cls:
            if member is not cls.UNKNOWN and member.value == normalized:
                return member
        return cls.UNKNOWN


class NotificationType(Enum):
    IMPRESSION = "impression"
    CLICK = "click"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "NotificationType":
        if not isinstance(raw, str):
            return cls.OTHER
        normalized = raw.lower()
        if normalized == cls.IMPRESSION.value:
            return cls.IMPRESSION
        if normalized == cls.CLICK.value:
            return cls.CLICK
        return cls.OTHER
