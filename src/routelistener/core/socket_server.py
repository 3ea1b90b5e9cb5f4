"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

Owns the listening socket and runs the accept loop. Strictly one client at
a time: the connection handler runs to completion on the calling thread
before ``accept()`` is called again.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer.start()                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   socket() + SO_REUSEADDR                                            │
    │   bind(host, port)  ──── OSError ───► ListenerStartError (fatal)     │
    │   listen(backlog)                                                    │
    │   lifecycle.start()                                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   while lifecycle.is_running:          ◄──────────────────┐          │
    │       accept()   (wakes every POLL_INTERVAL to re-check)  │          │
    │       Connection(client_socket)                           │          │
    │       connection_handler(conn)   ← blocks; may request    │          │
    │                                    shutdown               │          │
    │       ────────────────────────────────────────────────────┘          │
    │        │                                                             │
    │        ▼                                                             │
    │   close listening socket, lifecycle.mark_stopped()                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A shutdown requested by a handler takes effect right after that handler's
request; one requested from outside (signal, another thread) is seen within
POLL_INTERVAL seconds.

SIGINT and SIGTERM are routed to ``lifecycle.request_shutdown()`` while
the loop runs, but only when started from the main thread; Python only
allows installing signal handlers there.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ListenerConfig
from .connection import Connection
from .lifecycle import ServerLifecycle


logger = logging.getLogger(__name__)


POLL_INTERVAL = 0.5


class ListenerStartError(RuntimeError):
    """The listening socket could not be bound or put into listen mode."""


class SocketServer:
    """
    Bind, listen and accept, one connection at a time.

    Usage:
        lifecycle = ServerLifecycle()
        server = SocketServer(config, lifecycle)
        server.start(handle_connection)   # blocks until shutdown
    """

    def __init__(self, config: ListenerConfig, lifecycle: ServerLifecycle):
        self.config = config
        self.lifecycle = lifecycle
        self._socket: Optional[socket.socket] = None
        self._original_handlers: dict = {}

    @property
    def is_listening(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the configured pair when not listening."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(POLL_INTERVAL)
        return sock

    def _bind(self) -> None:
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except (OSError, OverflowError) as e:
            sock.close()
            logger.critical(f"Failed to listen on {self.config.host}:{self.config.port}: {e}")
            raise ListenerStartError(
                f"Cannot listen on {self.config.host}:{self.config.port}: {e}"
            ) from e
        self._socket = sock

    def start(self, connection_handler: Callable[[Connection], None]) -> None:
        """
        Bind, listen and run the accept loop until shutdown.

        Args:
            connection_handler: Called with each accepted Connection. Runs
                                on this thread; the next accept waits for it.

        Raises:
            ListenerStartError: If binding or listening fails. The accept
                                loop is never entered in that case.
        """
        self._bind()
        self.lifecycle.start()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        while self.lifecycle.is_running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # re-check the running flag
            except OSError as e:
                if self.lifecycle.is_running:
                    logger.error(f"Accept failed: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}")
            self.lifecycle.request_shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def _cleanup(self) -> None:
        self._restore_signals()
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self.lifecycle.mark_stopped()
        logger.info("Listener stopped")
