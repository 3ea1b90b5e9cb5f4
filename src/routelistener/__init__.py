"""
=============================================================================
ROUTELISTENER - Embeddable Single-Threaded HTTP Listener
=============================================================================

A small HTTP/1.1 listener on raw Python sockets. An application registers
an ordered table of regular expressions and handlers; each request is
dispatched to the first pattern found in its path.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ROUTELISTENER AT A GLANCE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. ONE CLIENT AT A TIME                                           │
    │      - accept, read one request, respond, close                     │
    │      - no thread pool, no keep-alive                                │
    │                                                                      │
    │   2. REGEX ROUTING                                                  │
    │      - ordered (pattern, handler) table, first match wins          │
    │      - patterns are searched, not anchored                          │
    │      - unmatched paths get an empty 404                             │
    │                                                                      │
    │   3. EXACTLY ONE RESPONSE                                           │
    │      - send_body() or send_file(), then the connection closes      │
    │      - handler errors become a 500 with the error text             │
    │                                                                      │
    │   4. BUILT-IN SHUTDOWN                                              │
    │      - GET /Exit answers "Exiting..." and stops the listener       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    routelistener/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m routelistener)
    ├── server.py            # HTTPListener: routes + dispatch
    ├── config.py            # ListenerConfig dataclass
    ├── core/                # Socket level
    │   ├── socket_server.py # bind/listen + accept loop
    │   ├── connection.py    # one client socket
    │   └── lifecycle.py     # running flag
    ├── http/                # Protocol level
    │   ├── request.py       # request parsing
    │   ├── response.py      # ResponseContext writer
    │   ├── router.py        # RouteTable
    │   ├── context.py       # HandlerContext
    │   ├── status_codes.py  # reason phrases
    │   └── mime_types.py    # content types
    └── handlers/
        ├── static.py        # FileHandler
        └── exit.py          # default "Exit" handler

=============================================================================
QUICK START
=============================================================================

    from routelistener import HTTPListener, ListenerConfig, FileHandler

    listener = HTTPListener(ListenerConfig(port=8080))

    @listener.route(r"^/hello$")
    def hello(ctx):
        ctx.send_body(f"hello {ctx.request.get_query('name', 'world')}")

    @listener.route(r"^/users/(?P<id>\\d+)$")
    def user(ctx):
        ctx.send_json({"id": int(ctx.params["id"])})

    listener.add_route(r"^/", FileHandler("./public"))

    listener.run()    # until GET /Exit or Ctrl+C

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPListener, serve
from .config import ListenerConfig
from .core import ListenerStartError
from .http import HandlerContext, HTTPRequest, ResponseContext, HTTPStatus
from .handlers import FileHandler, exit_handler

__all__ = [
    "HTTPListener",
    "serve",
    "ListenerConfig",
    "ListenerStartError",
    "HandlerContext",
    "HTTPRequest",
    "ResponseContext",
    "HTTPStatus",
    "FileHandler",
    "exit_handler",
    "__version__",
]
