"""
=============================================================================
CORE MODULE
=============================================================================

Socket-level pieces of the listener:

    socket_server.py   listening socket + single-threaded accept loop
    connection.py      one accepted client: read request, send, close
    lifecycle.py       running flag shared by loop, handlers and signals

There is no thread pool. The accept loop calls the connection handler
directly, so requests are served one after another in arrival order and
nothing needs locking except the running flag.

=============================================================================
"""

from .socket_server import SocketServer, ListenerStartError, POLL_INTERVAL
from .connection import Connection, ConnectionState
from .lifecycle import ServerLifecycle

__all__ = [
    "SocketServer",
    "ListenerStartError",
    "POLL_INTERVAL",
    "Connection",
    "ConnectionState",
    "ServerLifecycle",
]
