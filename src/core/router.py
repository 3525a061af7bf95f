"""Core message routing.

This module is transport-agnostic. It only relies on the engine port, so the
same router serves HTTP requests, replays and tests.
"""

from __future__ import annotations

import logging
from collections import abc
from typing import Callable, Optional

from core.envelope import (
    parse_event_notification,
    parse_item_update,
    parse_recommendation_request,
)
from core.message_types import MessageType, NotificationType
from core.models import EngineResult, Message
from core.ports import RecommendationEnginePort
from core.response import (
    CLICK_ACK,
    IMPRESSION_ACK,
    ITEM_UPDATE_ACK,
    empty_recommendations,
    encode_recommendations,
    normalize_ids,
)

LOGGER = logging.getLogger(__name__)
MESSAGE_LOGGER_NAME = "challenge.messages"


def _single_line(value: Optional[str]) -> str:
    if value is None:
        return ""
    # Raw line breaks in valid JSON are insignificant whitespace.
    return value.replace("\r", " ").replace("\n", " ")


def message_log_line(message_type: Optional[str], raw_body: Optional[str]) -> str:
    """Return the "type<TAB>body" line written for one envelope.

    Replaying the line routes exactly like the original envelope: a missing
    type or body is written empty, which parses the same as None.
    """

    # A tab in the type would shift the body split on replay.
    message_type = _single_line(message_type).replace("\t", " ")
    return f"{message_type}\t{_single_line(raw_body)}"


class MessageRouter:
    """Classifies envelopes, calls the engine and builds the response body.

    The router keeps no per-request state, so one instance can serve any
    number of concurrent requests. Engine faults never escape ``handle``.
    """

    def __init__(
        self,
        engine: RecommendationEnginePort,
        logger: Optional[logging.Logger] = None,
        message_logger: Optional[logging.Logger] = None,
    ) -> None:
        self._engine = engine
        self._logger = logger or LOGGER
        self._message_logger = message_logger or logging.getLogger(MESSAGE_LOGGER_NAME)

    def handle(self, message_type: Optional[str], raw_body: Optional[str]) -> Optional[str]:
        """Process one envelope and return the response body, or None for no body."""

        self._message_logger.info("%s", message_log_line(message_type, raw_body))

        kind = MessageType.parse(message_type)
        if kind is MessageType.ITEM_UPDATE:
            return self._item_update(raw_body)
        if kind is MessageType.RECOMMENDATION_REQUEST:
            return self._recommendation_request(raw_body)
        if kind is MessageType.EVENT_NOTIFICATION:
            return self._event_notification(raw_body)
        if kind is MessageType.ERROR_NOTIFICATION:
            self._logger.warning("Error notification from contest server: %s", raw_body)
            return None

        self._logger.info("Unknown message type %r (message ignored)", message_type)
        return None

    def _item_update(self, raw_body: Optional[str]) -> str:
        message = parse_item_update(raw_body)
        if message.item_id is None:
            self._logger.debug("Item update without item id skipped (%s)", message.error or "no id")
        else:
            self._call("update", self._engine.update, message)
        # The contest server expects the acknowledgement even when nothing was stored.
        return ITEM_UPDATE_ACK

    def _recommendation_request(self, raw_body: Optional[str]) -> str:
        message = parse_recommendation_request(raw_body)
        if message.error:
            self._logger.info("Unreadable recommendation request: %s", message.error)
        result = self._call("recommend", self._engine.recommend, message)
        if not result.ok or not result.item_ids:
            return empty_recommendations()
        return encode_recommendations(result.item_ids)

    def _event_notification(self, raw_body: Optional[str]) -> Optional[str]:
        message = parse_event_notification(raw_body)
        kind = NotificationType.parse(message.notification_type)

        if kind is NotificationType.OTHER:
            self._logger.info("Unknown event type %r (message ignored)", message.notification_type)
            return None
        if message.item_id is None:
            self._logger.info("%s notification without item id ignored", kind.value)
            return None

        if kind is NotificationType.IMPRESSION:
            result = self._call("impression", self._engine.impression, message)
            return IMPRESSION_ACK if result.ok else None

        result = self._call("click", self._engine.click, message)
        return CLICK_ACK if result.ok else None

    def _call(
        self,
        operation: str,
        method: Callable[[Message], EngineResult],
        message: Message,
    ) -> EngineResult:
        """Run one engine call, turning exceptions into failure results."""

        try:
            result = method(message)
        except Exception as exc:
            self._logger.exception("Engine %s raised for item %s", operation, message.item_id)
            return EngineResult.failure(f"{type(exc).__name__}: {exc}")

        if result is None:
            # Engines that return nothing are treated as succeeding with no items.
            return EngineResult.success()
        if not isinstance(result, EngineResult):
            if isinstance(result, (str, bytes, abc.Iterable)):
                # Plain id sequences are accepted as a successful recommendation.
                return EngineResult.success(normalize_ids(result))
            self._logger.warning(
                "Engine %s returned unsupported %s for item %s",
                operation,
                type(result).__name__,
                message.item_id,
            )
            return EngineResult.failure(f"unsupported result type {type(result).__name__}")
        if not result.ok:
            self._logger.warning(
                "Engine %s failed for item %s: %s", operation, message.item_id, result.reason
            )
        return result
