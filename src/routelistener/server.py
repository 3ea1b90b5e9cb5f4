"""
=============================================================================
HTTP LISTENER
=============================================================================

Ties the pieces together: configuration, route table, lifecycle, socket
server and the per-connection dispatch.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       DISPATCH OF ONE CONNECTION                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Accepting   SocketServer.accept()                                  │
    │       │                                                              │
    │       ▼                                                              │
    │   Reading     conn.read_request()                                    │
    │       │         None ........................► close, no response   │
    │       │         TimeoutError ................► 408                  │
    │       ▼                                                              │
    │   Parsing     RequestParser.parse()                                  │
    │       │         HTTPParseError ..............► 4xx/505 text body    │
    │       ▼                                                              │
    │   Routing     routes.match_first(request.path)                       │
    │       │         no match ....................► 404, no body,        │
    │       │                                        warning logged       │
    │       ▼                                                              │
    │   Handling    handler(HandlerContext)                                │
    │       │         raises, unsent ..............► 500, body = str(exc) │
    │       │         raises, already sent ........► logged only          │
    │       │         returns, unsent .............► 500, warning logged  │
    │       ▼                                                              │
    │   Closed      access log line, back to Accepting (or Shutdown if    │
    │               the handler requested it)                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing runs concurrently. While a handler runs, new clients wait in the
listen backlog.

=============================================================================
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from .config import ListenerConfig
from .core import SocketServer, Connection, ServerLifecycle
from .handlers.exit import exit_handler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    ResponseContext, HandlerContext, RouteTable, Route,
    ContentTypeResolver, HTTPStatus,
)


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("routelistener.access")


NO_RESPONSE_MESSAGE = "Handler completed without sending a response"


class HTTPListener:
    """
    Single-threaded HTTP listener with regex routing.

    =========================================================================
    USAGE
    =========================================================================

        listener = HTTPListener(ListenerConfig(port=8080))

        @listener.route(r"^/hello$")
        def hello(ctx):
            ctx.send_body("hello")

        listener.add_route(r"^/", FileHandler("./public"))

        listener.run()          # blocks; GET /Exit stops it

    Routes can also be passed up front as an ordered mapping:

        HTTPListener(config, routes={r"^/hello$": hello})

    =========================================================================
    LIFECYCLE
    =========================================================================

        run()                  build route table, bind, serve until shutdown
        request_shutdown()     stop after the current request (any thread)
        is_running             True between start and shutdown request
        is_listening           True while the listening socket is open
        wait_for_shutdown(t)   block until run() has finished cleaning up

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ListenerConfig] = None,
        routes: Optional[Dict[str, Callable]] = None,
    ):
        self.config = config or ListenerConfig()
        self.config.validate()

        self.lifecycle = ServerLifecycle()
        self._socket_server = SocketServer(self.config, self.lifecycle)
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._resolver = ContentTypeResolver(self.config.content_types)
        self._routes = RouteTable(ignore_case=self.config.route_ignore_case)

        if routes:
            self._routes.update(routes)

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    @property
    def routes(self) -> RouteTable:
        return self._routes

    @property
    def resolver(self) -> ContentTypeResolver:
        return self._resolver

    def add_route(self, pattern: str, handler: Callable) -> Route:
        """Append a route. Only allowed before ``run()``."""
        return self._routes.register(pattern, handler)

    def route(self, pattern: str):
        """Decorator form of ``add_route()``."""
        return self._routes.route(pattern)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self.lifecycle.is_running

    @property
    def is_listening(self) -> bool:
        return self._socket_server.is_listening

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def request_shutdown(self) -> None:
        self.lifecycle.request_shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self.lifecycle.wait_stopped(timeout)

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Serve until shutdown is requested (blocking).

        Args:
            host: Override ``config.host``.
            port: Override ``config.port``.

        Raises:
            ValueError: If the host/port overrides leave an invalid config.
            ListenerStartError: If the socket cannot be bound.
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port
        self.config.validate()

        self._setup_logging()

        self._routes.ensure_exit_route(exit_handler)
        self._routes.freeze()

        logger.info(f"Starting listener on {self.config.host}:{self.config.port}")
        for line in self._routes.describe():
            logger.info(f"  route {line}")

        self._socket_server.start(self._handle_connection)

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("routelistener").setLevel(level)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Serve exactly one request on ``conn`` and close it."""
        started = time.perf_counter()
        request: Optional[HTTPRequest] = None
        response = ResponseContext(conn, self._resolver, self.config.server_name)

        with conn:
            try:
                raw_request = conn.read_request()
                if raw_request is None:
                    logger.debug(f"[{conn.id}] Client closed without sending a request")
                    return

                request = self._parser.parse(raw_request, conn.address)
                logger.info(f"[{conn.id}] {request.method} {request.url}")
                self.dispatch(request, response)

            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Bad request: {e}")
                self._send_error(response, e.status_code, str(e))

            except TimeoutError as e:
                logger.warning(str(e))
                self._send_error(response, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")

            except Exception:
                logger.exception(f"[{conn.id}] Unexpected error while serving connection")
                self._send_error(response, HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

            finally:
                if response.sent:
                    self._log_access(conn, request, response, started)

    def dispatch(self, request: HTTPRequest, response: ResponseContext) -> None:
        """
        Route ``request`` and run the matching handler.

        Handler failures are turned into responses here; nothing a handler
        raises escapes this method.
        """
        response.omit_body = request.method == "HEAD"

        match = self._routes.match_first(request.path)
        if match is None:
            logger.warning(f"No route matched {request.path!r}")
            response.close_unhandled()
            return

        logger.debug(f"{request.path!r} matched {match.route.pattern!r} -> {match.route.name}")
        ctx = HandlerContext(request, response, self.lifecycle, match.match)

        try:
            match.handler(ctx)
        except Exception as e:
            if response.sent:
                logger.exception(
                    f"Handler {match.route.name} failed after sending its response"
                )
                return
            logger.exception(f"Handler {match.route.name} failed: {e}")
            response.send_body(str(e), status_code=HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        if not response.sent:
            logger.warning(f"Handler {match.route.name} returned without sending a response")
            response.send_body(NO_RESPONSE_MESSAGE, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    def _send_error(self, response: ResponseContext, status_code: int, message: str) -> None:
        """Error response for failures outside a handler, if nothing was sent yet."""
        if response.sent or response.closed:
            return
        response.send_body(message, status_code=status_code)

    def _log_access(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: ResponseContext,
        started: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        request_line = f"{request.method} {request.url}" if request else "-"
        access_logger.info(
            f'{conn.client_ip} "{request_line}" {response.status_code} '
            f"{response.content_length} {duration_ms:.2f}ms"
        )


def serve(
    routes: Optional[Dict[str, Callable]] = None,
    host: str = "127.0.0.1",
    port: int = 80,
    **config_kwargs,
) -> HTTPListener:
    """
    Build a listener from a route mapping and run it until it exits.

    Example:
        serve({r"^/hello$": hello}, port=8080)

    Returns:
        The listener, after it has stopped.
    """
    listener = HTTPListener(ListenerConfig(host=host, port=port, **config_kwargs), routes)
    listener.run()
    return listener
