"""
Unit tests for HTTPListener route dispatch, without sockets.
"""

import logging

import pytest

from routelistener import HTTPListener, ListenerConfig
from routelistener.http import ResponseContext, RouteTableFrozenError
from routelistener.server import NO_RESPONSE_MESSAGE

from conftest import FakeConnection, make_request


def dispatch(listener, path):
    conn = FakeConnection()
    listener.dispatch(make_request(path), ResponseContext(conn))
    return conn


@pytest.fixture
def listener():
    return HTTPListener(ListenerConfig(port=8080))


class TestDispatch:

    def test_first_matching_handler_runs(self, listener):
        calls = []
        listener.add_route(r"^/a", lambda ctx: (calls.append("a"), ctx.send_body("a")))
        listener.add_route(r"^/a/b", lambda ctx: (calls.append("b"), ctx.send_body("b")))

        conn = dispatch(listener, "/a/b")

        assert calls == ["a"]
        assert conn.body == b"a"

    def test_unmatched_is_empty_404(self, listener, caplog):
        listener.add_route(r"^/hello$", lambda ctx: ctx.send_body("hi"))

        with caplog.at_level(logging.WARNING, logger="routelistener"):
            conn = dispatch(listener, "/nothing")

        assert conn.status_line == "HTTP/1.1 404 Not Found"
        assert conn.body == b""
        assert conn.close_calls == 1
        assert "/nothing" in caplog.text

    def test_raising_handler_gives_500_with_message(self, listener):
        def broken(ctx):
            raise RuntimeError("database unavailable")

        listener.add_route(r"^/broken", broken)
        conn = dispatch(listener, "/broken")

        assert conn.status_line == "HTTP/1.1 500 Internal Server Error"
        assert conn.body == b"database unavailable"
        assert conn.close_calls == 1

    def test_raise_after_send_keeps_response(self, listener, caplog):
        def sends_then_fails(ctx):
            ctx.send_body("partial")
            raise ValueError("late failure")

        listener.add_route(r"^/late", sends_then_fails)
        with caplog.at_level(logging.ERROR, logger="routelistener"):
            conn = dispatch(listener, "/late")

        assert conn.status_line == "HTTP/1.1 200 OK"
        assert conn.body == b"partial"
        assert "late failure" in caplog.text

    def test_double_send_is_reported_not_sent(self, listener):
        def twice(ctx):
            ctx.send_body("one")
            ctx.send_body("two")

        listener.add_route(r"^/twice", twice)
        conn = dispatch(listener, "/twice")

        assert conn.body == b"one"

    def test_handler_without_response_gives_500(self, listener):
        listener.add_route(r"^/silent", lambda ctx: None)
        conn = dispatch(listener, "/silent")

        assert conn.status_line == "HTTP/1.1 500 Internal Server Error"
        assert conn.body == NO_RESPONSE_MESSAGE.encode()

    def test_routes_from_constructor_mapping(self):
        listener = HTTPListener(
            ListenerConfig(port=8080),
            routes={r"^/x": lambda ctx: ctx.send_body("x")},
        )

        assert dispatch(listener, "/x").body == b"x"

    def test_decorator_registration(self, listener):
        @listener.route(r"\.json$")
        def json_files(ctx):
            ctx.send_json({"path": ctx.request.path})

        conn = dispatch(listener, "/reports/daily.json")

        assert conn.header("Content-Type") == "application/json"
        assert conn.body == b'{"path": "/reports/daily.json"}'

    def test_ignore_case_config(self):
        listener = HTTPListener(ListenerConfig(port=8080, route_ignore_case=True))
        listener.add_route(r"^/hello$", lambda ctx: ctx.send_body("hi"))

        assert dispatch(listener, "/HELLO").body == b"hi"


class TestConstruction:

    def test_invalid_config_fails_fast(self):
        with pytest.raises(ValueError):
            HTTPListener(ListenerConfig(port=0))

    def test_not_running_before_start(self, listener):
        assert not listener.is_running
        assert not listener.is_listening
        assert listener.wait_for_shutdown(timeout=0)

    def test_frozen_table_rejects_routes(self, listener):
        listener.routes.freeze()

        with pytest.raises(RouteTableFrozenError):
            listener.add_route("^/late", lambda ctx: None)


class TestRequestMethods:

    def test_head_gets_headers_only(self, listener):
        listener.add_route(r"^/hello$", lambda ctx: ctx.send_body("hello"))
        conn = FakeConnection()

        listener.dispatch(make_request("/hello", method="HEAD"), ResponseContext(conn))

        assert conn.status_line == "HTTP/1.1 200 OK"
        assert conn.header("Content-Length") == "5"
        assert conn.body == b""

    def test_get_still_gets_body(self, listener):
        listener.add_route(r"^/hello$", lambda ctx: ctx.send_body("hello"))

        assert dispatch(listener, "/hello").body == b"hello"

    def test_non_bytes_body_becomes_500(self, listener):
        listener.add_route(r"^/count$", lambda ctx: ctx.send_body(3))
        conn = dispatch(listener, "/count")

        assert conn.status_line == "HTTP/1.1 500 Internal Server Error"
        assert b"\x00" not in conn.body
        assert b"int" in conn.body


class TestRunOverrides:

    def test_invalid_port_override_rejected_before_bind(self, listener):
        with pytest.raises(ValueError, match="port"):
            listener.run(port=70000)

        assert not listener.is_running
        assert not listener.is_listening
        assert not listener.routes.frozen
