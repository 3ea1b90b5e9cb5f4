"""
=============================================================================
HANDLERS MODULE
=============================================================================

Built-in handlers. A handler is any callable taking one HandlerContext:

    def hello(ctx):
        ctx.send_body("hello")

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Handler            │ Behaviour                                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ FileHandler(root)  │ serve files under root, 404 text when missing  │
    │ serve_static(root) │ factory for FileHandler                         │
    │ exit_handler       │ send "Exiting..." and stop the listener        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .static import FileHandler, serve_static
from .exit import exit_handler, EXIT_MESSAGE

__all__ = [
    "FileHandler",
    "serve_static",
    "exit_handler",
    "EXIT_MESSAGE",
]
