"""
Server lifecycle: the running flag.

The dispatch loop reads the flag between requests; the exit handler,
signal handlers and other threads write it. ``threading.Event`` gives us
a flag that is safe to flip from any thread without extra locking.

    start()              running = True, stopped cleared
    request_shutdown()   running = False (idempotent)
    mark_stopped()       called by the loop once the socket is closed
    wait_stopped(t)      block until mark_stopped() or timeout
"""

import logging
import threading
from typing import Optional


logger = logging.getLogger(__name__)


class ServerLifecycle:
    """Running/stopped state owned by one listener instance."""

    def __init__(self):
        self._running = threading.Event()
        self._stopped = threading.Event()
        self._stopped.set()

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        self._stopped.clear()
        self._running.set()

    def request_shutdown(self) -> None:
        """Stop after the request currently being handled. Safe to call twice."""
        if self._running.is_set():
            logger.info("Shutdown requested")
        self._running.clear()

    def mark_stopped(self) -> None:
        self._running.clear()
        self._stopped.set()

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the dispatch loop has exited.

        Returns:
            True if the loop stopped, False on timeout.
        """
        return self._stopped.wait(timeout)
