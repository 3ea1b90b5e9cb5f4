"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from a base directory.

    GET /docs/guide.html          root_dir = /srv/site
         │
         ▼  strip url_prefix (or use the route's (?P<path>...) group)
    docs/guide.html
         │
         ▼  resolve against root_dir
    /srv/site/docs/guide.html
         │
         ├── outside root_dir?  ──► 403 "Access denied"
         ├── a directory?       ──► its index file, if there is one
         ├── missing?           ──► 404 "File not found: docs/guide.html"
         └── otherwise          ──► ctx.send_file(...)  (type from extension)

The existence check happens here, in the handler. ``send_file()`` itself
treats a missing file as a caller error.

=============================================================================
USAGE
=============================================================================

    from routelistener.handlers import FileHandler

    listener.add_route(r"^/static/", FileHandler("./public", url_prefix="/static"))

    # or let the pattern pick the file:
    listener.add_route(r"^/files/(?P<path>.+)$", FileHandler("./files"))

=============================================================================
"""

import logging
from pathlib import Path

from ..http.context import HandlerContext
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class FileHandler:
    """
    Handler serving files under ``root_dir``.

    Args:
        root_dir: Directory to serve. Must exist.
        url_prefix: Stripped from the request path before the lookup.
        index_file: Served for directory requests when present.

    Raises:
        ValueError: If ``root_dir`` is not a directory.
    """

    def __init__(self, root_dir, url_prefix: str = "", index_file: str = "index.html"):
        self.root_dir = Path(root_dir).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        self.index_file = index_file

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def relative_path(self, ctx: HandlerContext) -> str:
        """Part of the request that names the file, without leading slashes."""
        file_path = ctx.params.get("path")
        if file_path is None:
            file_path = ctx.request.path
            if self.url_prefix and file_path.startswith(self.url_prefix):
                file_path = file_path[len(self.url_prefix):]
        return file_path.lstrip("/")

    def __call__(self, ctx: HandlerContext) -> None:
        file_path = self.relative_path(ctx)
        full_path = (self.root_dir / file_path).resolve()

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {file_path}")
            ctx.send_body("Access denied", status_code=HTTPStatus.FORBIDDEN)
            return

        if full_path.is_dir():
            full_path = full_path / self.index_file

        if not full_path.is_file():
            logger.debug(f"Not found under {self.root_dir}: {file_path}")
            ctx.send_body(f"File not found: {file_path or '/'}", status_code=HTTPStatus.NOT_FOUND)
            return

        ctx.send_file(full_path)


def serve_static(root_dir, **kwargs) -> FileHandler:
    """
    Create a ``FileHandler``.

    Example:
        listener.add_route(r"^/", serve_static("./public"))
    """
    return FileHandler(root_dir, **kwargs)
