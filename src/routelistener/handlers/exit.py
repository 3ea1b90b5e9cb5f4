"""
Default shutdown handler.

Registered automatically under the reserved "Exit" pattern unless the
application supplies its own. The response is written first, then the
listener is told to stop; the dispatch loop exits once this request is
done and the listening socket is closed.
"""

from ..http.context import HandlerContext


EXIT_MESSAGE = "Exiting..."


def exit_handler(ctx: HandlerContext) -> None:
    ctx.send_body(EXIT_MESSAGE)
    ctx.request_shutdown()
