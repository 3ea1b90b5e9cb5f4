"""
Integration tests: a real listener on a loopback socket.
"""

import socket
import threading
import time

import pytest

from routelistener import HTTPListener, ListenerConfig, ListenerStartError, FileHandler, serve
from routelistener.core import SocketServer, ServerLifecycle
from routelistener.handlers import EXIT_MESSAGE

from conftest import http_get, raw_request


def hello(ctx):
    ctx.send_body("hello")


def broken(ctx):
    raise RuntimeError("boom")


class TestRouting:

    def test_serves_matching_route(self, make_server):
        server = make_server({r"^/hello$": hello})

        status, headers, body = server.get("/hello")

        assert status == 200
        assert body == b"hello"
        assert headers["content-length"] == "5"
        assert headers["content-type"] == "text/plain"
        assert headers["connection"] == "close"

    def test_first_match_wins(self, make_server):
        server = make_server({
            r"^/a": lambda ctx: ctx.send_body("first"),
            r"^/a/b": lambda ctx: ctx.send_body("second"),
        })

        assert server.get("/a/b")[2] == b"first"

    def test_query_string_not_matched(self, make_server):
        server = make_server({r"\.json$": lambda ctx: ctx.send_body(ctx.request.get_query("x"))})

        status, _, body = server.get("/data.json?x=42")

        assert status == 200
        assert body == b"42"

    def test_unmatched_path_then_server_keeps_serving(self, make_server):
        server = make_server({r"^/hello$": hello})

        status, headers, body = server.get("/elsewhere")
        assert status == 404
        assert body == b""
        assert headers["content-length"] == "0"

        status, _, body = server.get("/hello")
        assert (status, body) == (200, b"hello")
        assert server.listener.is_running

    def test_exit_is_case_sensitive(self, make_server):
        server = make_server({r"^/hello$": hello})

        assert server.get("/exit")[0] == 404
        assert server.listener.is_running


class TestHandlerFailures:

    def test_raising_handler_gives_500_and_server_continues(self, make_server):
        server = make_server({r"^/broken": broken, r"^/hello$": hello})

        status, _, body = server.get("/broken")
        assert status == 500
        assert body == b"boom"

        assert server.get("/hello")[2] == b"hello"

    def test_handler_without_response_gives_500(self, make_server):
        server = make_server({r"^/silent": lambda ctx: None})

        assert server.get("/silent")[0] == 500


class TestProtocolErrors:

    def test_malformed_request_line(self, make_server):
        server = make_server({r"^/": hello})

        data = server.send(b"NONSENSE\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_unsupported_version(self, make_server):
        server = make_server({r"^/": hello})

        data = server.send(b"GET / HTTP/2.0\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 505 ")

    def test_slow_client_times_out(self, make_server):
        server = make_server({r"^/": hello}, timeout=0.5)

        data = server.send(b"GET / HTTP/1.1\r\n")

        assert data.startswith(b"HTTP/1.1 408 Request Timeout\r\n")

    def test_client_closing_silently_gets_nothing(self, make_server):
        server = make_server({r"^/hello$": hello})

        with socket.create_connection(("127.0.0.1", server.port), timeout=5):
            pass

        assert server.get("/hello")[2] == b"hello"


class TestHeadRequests:

    def test_head_has_length_but_no_body(self, make_server):
        server = make_server({r"^/hello$": hello})

        data = server.send(b"HEAD /hello HTTP/1.1\r\n\r\n")

        head, _, body = data.partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Length: 5\r\n" in head + b"\r\n"
        assert body == b""


class TestExit:

    def test_exit_stops_listener(self, make_server):
        server = make_server({r"^/hello$": hello})

        status, _, body = server.get("/Exit")

        assert status == 200
        assert body == EXIT_MESSAGE.encode()
        assert server.listener.wait_for_shutdown(timeout=5.0)
        assert not server.listener.is_running
        assert not server.listener.is_listening

        with pytest.raises(OSError):
            raw_request(server.port, b"GET /hello HTTP/1.1\r\n\r\n", timeout=1.0)

    def test_exit_route_added_after_user_routes(self, make_server):
        server = make_server({r"^/hello$": hello})

        assert server.listener.routes.routes[-1].pattern == "Exit"

    def test_user_exit_route_replaces_default(self, make_server):
        server = make_server({"Exit": lambda ctx: ctx.send_body("not leaving")})

        assert server.get("/Exit")[2] == b"not leaving"
        assert server.listener.is_running

    def test_request_shutdown_from_other_thread(self, make_server):
        server = make_server({r"^/hello$": hello})

        start = time.monotonic()
        server.listener.request_shutdown()

        assert server.listener.wait_for_shutdown(timeout=5.0)
        assert time.monotonic() - start < 5.0
        assert not server.listener.is_listening


class TestFiles:

    def test_file_handler_over_socket(self, make_server, tmp_path):
        (tmp_path / "report.json").write_text('{"rows": 3}')
        server = make_server({r"^/": FileHandler(tmp_path)})

        status, headers, body = server.get("/report.json")
        assert status == 200
        assert headers["content-type"] == "application/json"
        assert body == b'{"rows": 3}'

        status, headers, body = server.get("/missing.txt")
        assert status == 404
        assert body == b"File not found: missing.txt"

    def test_content_type_override(self, make_server, tmp_path):
        (tmp_path / "app.log").write_text("started")
        server = make_server(
            {r"^/": FileHandler(tmp_path)},
            content_types={".log": "text/x-log"},
        )

        assert server.get("/app.log")[1]["content-type"] == "text/x-log"


class TestStartup:

    def test_bind_failure_raises(self, free_port):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            blocker.bind(("127.0.0.1", free_port))
            blocker.listen(1)

            listener = HTTPListener(ListenerConfig(port=free_port, log_level="WARNING"))
            with pytest.raises(ListenerStartError) as exc_info:
                listener.run()

            assert isinstance(exc_info.value.__cause__, OSError)
            assert not listener.is_running
            assert not listener.is_listening
        finally:
            blocker.close()

    def test_out_of_range_port_wrapped_in_start_error(self):
        server = SocketServer(ListenerConfig(port=70000), ServerLifecycle())

        with pytest.raises(ListenerStartError) as exc_info:
            server.start(lambda conn: None)

        assert isinstance(exc_info.value.__cause__, OverflowError)
        assert not server.is_listening

    def test_registration_after_start_raises(self, make_server):
        server = make_server({r"^/hello$": hello})

        with pytest.raises(RuntimeError):
            server.listener.add_route(r"^/late$", hello)


def test_serve_runs_until_exit(free_port):
    result = {}
    thread = threading.Thread(
        target=lambda: result.setdefault(
            "listener", serve({r"^/hello$": hello}, port=free_port, log_level="WARNING")
        ),
        daemon=True,
    )
    thread.start()

    for _ in range(50):
        try:
            status, _, body = http_get(free_port, "/hello")
            break
        except ConnectionRefusedError:
            time.sleep(0.1)
    else:
        pytest.fail("serve() never started listening")

    assert (status, body) == (200, b"hello")
    assert http_get(free_port, "/Exit")[2] == EXIT_MESSAGE.encode()

    thread.join(timeout=5.0)
    assert not thread.is_alive()
    assert not result["listener"].is_listening
