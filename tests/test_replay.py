from __future__ import annotations

import json
import logging

from adapters.memory_engine import RecencyEngine
from app import replay
from core.router import MessageRouter, message_log_line


def test_replay_feeds_message_log_through_router(tmp_path) -> None:
    lines = [
        'item_update\t{"id": 1, "domainid": 5}',
        'item_update\t{"id": 2, "domainid": 5}',
        "no tab on this line",
        'event_notification\t{"type": "impression_empty", "context": {"simple": {"27": 5}}}',
        'recommendation_request\t{"context": {"simple": {"27": 5, "25": 2}}}',
    ]
    log_path = tmp_path / "messages.log"
    log_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    engine = RecencyEngine()
    router = MessageRouter(engine, message_logger=logging.getLogger("tests.replay"))

    replayed, answered = replay(str(log_path), router)

    assert replayed == 4
    assert answered == 3
    assert engine.known_items(5) == [2, 1]
    body = router.handle("recommendation_request", json.dumps({"context": {"simple": {"27": 5}}}))
    assert json.loads(body) == {"recs": {"ints": {"3": [2, 1]}}}


def test_logged_multiline_envelope_replays_the_same(tmp_path) -> None:
    log_path = tmp_path / "messages.log"
    log_path.write_text(
        message_log_line("item_update", '{\n "id": 4,\n "domainid": 9\n}') + "\n"
        + message_log_line("recommendation_request", None) + "\n",
        encoding="utf-8",
    )
    engine = RecencyEngine()
    router = MessageRouter(engine, message_logger=logging.getLogger("tests.replay"))

    replayed, answered = replay(str(log_path), router)

    assert replayed == 2
    assert answered == 2
    assert engine.known_items(9) == [4]
