"""
=============================================================================
CONTENT-TYPE RESOLUTION
=============================================================================

Maps a file extension to the MIME type sent in the Content-Type header.

The table is static and platform independent. Lookups never touch the
operating system, so the same file gets the same Content-Type on every
machine the listener runs on.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     RESOLUTION ORDER                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   report.JSON                                                        │
    │        │                                                             │
    │        ▼  suffix, lower-cased                                        │
    │      .json                                                           │
    │        │                                                             │
    │        ├──► 1. resolver overrides   (ListenerConfig.content_types)   │
    │        ├──► 2. built-in MIME_TYPES table                             │
    │        └──► 3. default              (application/octet-stream)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from pathlib import Path
from typing import Dict, Optional, Union


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".log": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
    ".map": "application/json",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def _suffix(path: Union[str, Path]) -> str:
    return Path(path).suffix.lower()


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file from the built-in table.

    Args:
        path: File path or bare file name.
        default: Returned when the extension is unknown. Falls back to
                 application/octet-stream when not given.

    Examples:
        >>> get_mime_type("data/report.json")
        'application/json'
        >>> get_mime_type("blob.xyz")
        'application/octet-stream'
        >>> get_mime_type("notes.xyz", default="text/plain")
        'text/plain'
    """
    return MIME_TYPES.get(_suffix(path), default or DEFAULT_MIME_TYPE)


class ContentTypeResolver:
    """
    Extension lookup with per-instance overrides.

    Each ``HTTPListener`` owns one resolver built from
    ``ListenerConfig.content_types``. Tests and applications can hand in
    their own mapping without touching the module-level table:

        resolver = ContentTypeResolver({".log": "text/x-log"})
        resolver.resolve("server.log")   # 'text/x-log'
        resolver.resolve("index.html")   # 'text/html'
    """

    def __init__(
        self,
        overrides: Optional[Dict[str, str]] = None,
        default: str = DEFAULT_MIME_TYPE,
    ):
        self.default = default
        self._overrides: Dict[str, str] = {}
        for extension, mime_type in (overrides or {}).items():
            self.register(extension, mime_type)

    def register(self, extension: str, mime_type: str) -> None:
        """Add or replace an override. ``"json"`` and ``".JSON"`` are the same key."""
        extension = extension.lower()
        if not extension.startswith("."):
            extension = "." + extension
        self._overrides[extension] = mime_type

    def resolve(self, path: Union[str, Path], default: Optional[str] = None) -> str:
        suffix = _suffix(path)
        if suffix in self._overrides:
            return self._overrides[suffix]
        return MIME_TYPES.get(suffix, default or self.default)

    def __contains__(self, path: Union[str, Path]) -> bool:
        suffix = _suffix(path)
        return suffix in self._overrides or suffix in MIME_TYPES
