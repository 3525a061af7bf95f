"""In-memory recommendation engine adapter.

Implements the core RecommendationEnginePort with a per-domain recency list.
It is a baseline that keeps the service answering, not a contest algorithm.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Dict, List, Optional

from core.config import EngineConfig
from core.models import EngineResult, Message

LOGGER = logging.getLogger(__name__)


class RecencyEngine:
    """Recommend the most recently touched items of the requested domain."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self._config = config or EngineConfig()
        # domain_id -> item ids, oldest first
        self._items: Dict[int, "OrderedDict[int, None]"] = {}
        self._lock = threading.Lock()

    def _touch(self, message: Message) -> EngineResult:
        if message.item_id is None:
            return EngineResult.failure("message has no item id")
        if message.domain_id is None:
            return EngineResult.failure(f"item {message.item_id} has no domain id")

        with self._lock:
            items = self._items.setdefault(message.domain_id, OrderedDict())
            items.pop(message.item_id, None)
            items[message.item_id] = None
            while len(items) > self._config.history_size:
                items.popitem(last=False)
        return EngineResult.success()

    def update(self, message: Message) -> EngineResult:
        return self._touch(message)

    def impression(self, message: Message) -> EngineResult:
        return self._touch(message)

    def click(self, message: Message) -> EngineResult:
        return self._touch(message)

    def recommend(self, message: Message) -> EngineResult:
        context = message.request_context
        domain_id = context.domain_id if context else message.domain_id
        if domain_id is None:
            return EngineResult.failure("recommendation request has no domain id")

        limit = (context.limit if context else None) or self._config.default_limit
        current_item = context.item_id if context else message.item_id

        with self._lock:
            newest_first = list(reversed(self._items.get(domain_id, {})))

        picked: List[int] = [item for item in newest_first if item != current_item][:limit]
        LOGGER.debug("Recommending %s items for domain %s", len(picked), domain_id)
        return EngineResult.success(picked)

    def known_items(self, domain_id: int) -> List[int]:
        """Return the tracked items of a domain, newest first."""

        with self._lock:
            return list(reversed(self._items.get(domain_id, {})))
