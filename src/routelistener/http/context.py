"""
Handler context.

Every handler is called with exactly one argument, a ``HandlerContext``.
It bundles what a handler may read and the few things it may do:

    ctx.request            read-only HTTPRequest
    ctx.match / ctx.params regex match that selected this handler
    ctx.response           ResponseContext (status, headers, send state)
    ctx.send_body(...)     terminal write, see ResponseContext.send_body
    ctx.send_file(...)     terminal write, see ResponseContext.send_file
    ctx.send_json(...)     terminal write, JSON body
    ctx.request_shutdown() stop the listener after this request
    ctx.is_running         whether the listener is still accepting

Example:

    def hello(ctx):
        name = ctx.request.get_query("name", "world")
        ctx.send_body(f"hello {name}")
"""

import re
from typing import Dict, Optional

from .request import HTTPRequest
from .response import ResponseContext


class HandlerContext:
    """Request view plus response and lifecycle operations for one dispatch."""

    def __init__(
        self,
        request: HTTPRequest,
        response: ResponseContext,
        lifecycle,
        match: Optional[re.Match] = None,
    ):
        self.request = request
        self.response = response
        self.match = match
        self._lifecycle = lifecycle

    @property
    def params(self) -> Dict[str, str]:
        """Named capture groups of the route pattern that matched."""
        if self.match is None:
            return {}
        return {k: v for k, v in self.match.groupdict().items() if v is not None}

    def send_body(self, body, content_type="text/plain", status_code=200, status_description=None):
        self.response.send_body(body, content_type, status_code, status_description)

    def send_file(self, path, content_type=None, status_code=200, status_description=None):
        self.response.send_file(path, content_type, status_code, status_description)

    def send_json(self, data, status_code=200, status_description=None):
        self.response.send_json(data, status_code, status_description)

    def request_shutdown(self) -> None:
        """Ask the listener to stop once the current request is finished."""
        self._lifecycle.request_shutdown()

    @property
    def is_running(self) -> bool:
        return self._lifecycle.is_running
