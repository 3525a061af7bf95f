from __future__ import annotations

import http.client
import json
import threading
from typing import Optional
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

import pytest

from adapters.http_transport import CONTENT_TYPE, start_http_server
from core.config import DEFAULT_INFO_HTML, ServerConfig
from core.models import EngineResult, Message
from core.response import IMPRESSION_ACK, ITEM_UPDATE_ACK
from core.router import MessageRouter


class FakeEngine:
    def __init__(self, recommend_raises: bool = False) -> None:
        self.calls: list[tuple[str, Message]] = []
        self._recommend_raises = recommend_raises
        self._lock = threading.Lock()

    def _record(self, name: str, message: Message) -> EngineResult:
        with self._lock:
            self.calls.append((name, message))
        return EngineResult.success()

    def update(self, message: Message) -> EngineResult:
        return self._record("update", message)

    def recommend(self, message: Message) -> EngineResult:
        self._record("recommend", message)
        if self._recommend_raises:
            raise RuntimeError("simulated engine failure")
        return EngineResult.success([11, 12])

    def impression(self, message: Message) -> EngineResult:
        return self._record("impression", message)

    def click(self, message: Message) -> EngineResult:
        return self._record("click", message)


class CrashingRouter:
    def handle(self, message_type, raw_body):
        raise RuntimeError("router bug")


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def server(engine):
    server = start_http_server(MessageRouter(engine), ServerConfig(host="127.0.0.1", port=0))
    yield server
    server.shutdown()
    server.server_close()


def _url(server) -> str:
    return f"http://127.0.0.1:{server.server_port}/"


def _post_form(server, message_type: str, body: str, double_encode: bool = True):
    encoded_body = quote(body) if double_encode else body
    data = urlencode({"type": message_type, "body": encoded_body}).encode("utf-8")
    request = Request(
        _url(server),
        data=data,
        method="POST",
        headers={"Content-Type": "application/x-www-form-urlencoded; charset=utf-8"},
    )
    with urlopen(request, timeout=2) as response:
        return response.status, response.headers.get("Content-Type"), response.read().decode("utf-8")


def test_get_returns_info_page(server) -> None:
    with urlopen(_url(server), timeout=2) as response:
        assert response.status == 200
        assert response.headers.get("Content-Type") == CONTENT_TYPE
        assert response.read().decode("utf-8") == DEFAULT_INFO_HTML


def test_item_update_form_post(server, engine) -> None:
    status, content_type, body = _post_form(server, "item_update", '{"id":"42","domainid":"7"}')

    assert status == 200
    assert content_type == CONTENT_TYPE
    assert body == ITEM_UPDATE_ACK
    assert [(name, message.item_id) for name, message in engine.calls] == [("update", 42)]


def test_impression_form_post(server, engine) -> None:
    payload = json.dumps({"type": "impression", "context": {"simple": {"25": 5, "27": 1}}})
    status, _, body = _post_form(server, "event_notification", payload)

    assert status == 200
    assert body == IMPRESSION_ACK
    assert [name for name, _ in engine.calls] == ["impression"]


def test_recommendation_request_form_post(server) -> None:
    payload = json.dumps({"context": {"simple": {"27": 1}}, "limit": 2})
    _, _, body = _post_form(server, "recommendation_request", payload)
    assert json.loads(body) == {"recs": {"ints": {"3": [11, 12]}}}


def test_unknown_type_has_empty_body(server, engine) -> None:
    status, _, body = _post_form(server, "item_create", '{"id": 1}')
    assert status == 200
    assert body == ""
    assert engine.calls == []


def test_raw_json_post_uses_query_type(server, engine) -> None:
    request = Request(
        _url(server) + "?type=item_update",
        data=b'{"id": 8, "domainid": 2}',
        method="POST",
        headers={"Content-Type": "application/json"},
    )
    with urlopen(request, timeout=2) as response:
        assert response.read().decode("utf-8") == ITEM_UPDATE_ACK
    assert engine.calls[0][1].item_id == 8


def test_engine_failure_still_returns_empty_envelope() -> None:
    server = start_http_server(
        MessageRouter(FakeEngine(recommend_raises=True)), ServerConfig(host="127.0.0.1", port=0)
    )
    try:
        status, _, body = _post_form(server, "recommendation_request", '{"context": {"simple": {"27": 1}}}')
        assert status == 200
        assert json.loads(body) == {"recs": {"ints": {"3": []}}}
    finally:
        server.shutdown()
        server.server_close()


def test_router_crash_is_absorbed() -> None:
    server = start_http_server(CrashingRouter(), ServerConfig(host="127.0.0.1", port=0))
    try:
        status, _, body = _post_form(server, "item_update", '{"id": 1}')
        assert status == 200
        assert body == ""
    finally:
        server.shutdown()
        server.server_close()


def _raw_post(server, headers: Optional[dict] = None) -> tuple[int, bytes]:
    # urllib always sends a Content-Length for POST, so drop to http.client.
    connection = http.client.HTTPConnection("127.0.0.1", server.server_port, timeout=2)
    try:
        connection.putrequest("POST", "/")
        for name, value in (headers or {}).items():
            connection.putheader(name, value)
        connection.endheaders()
        response = connection.getresponse()
        return response.status, response.read()
    finally:
        connection.close()


def test_post_without_content_is_keep_alive_probe(server, engine) -> None:
    status, body = _raw_post(server)
    assert status == 200
    assert body == b""
    assert engine.calls == []


def test_concurrent_posts_all_answered(server, engine) -> None:
    results: list[str] = []
    errors: list[Exception] = []
    start = threading.Barrier(4)

    def fire(item_id: int) -> None:
        try:
            start.wait(timeout=2)
            results.append(_post_form(server, "item_update", json.dumps({"id": item_id}))[2])
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=fire, args=(idx,)) for idx in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert errors == []
    assert results == [ITEM_UPDATE_ACK] * 4
    assert sorted(message.item_id for _, message in engine.calls) == [0, 1, 2, 3]
