"""Ports (interfaces) used by the core router.

The engine port defines the minimal contract a recommendation engine must
offer so that the router can be reused with different engines.
"""

from __future__ import annotations

from typing import Protocol

from core.models import EngineResult, Message


class RecommendationEnginePort(Protocol):
    """Engine operations required by the router.

    Implementations are shared across concurrent requests and must do their
    own locking. Any call may block; none may block indefinitely.
    """

    def update(self, message: Message) -> EngineResult:
        ...

    def recommend(self, message: Message) -> EngineResult:
        ...

    def impression(self, message: Message) -> EngineResult:
        ...

    def click(self, message: Message) -> EngineResult:
        ...
