"""
=============================================================================
RESPONSE WRITER
=============================================================================

``ResponseContext`` is the only way a handler produces output. It writes a
complete HTTP/1.1 response onto the client connection and then closes it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ONE RESPONSE PER REQUEST                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   handler                                                            │
    │      │                                                               │
    │      ├── ctx.response.set_header("X-Trace", "abc")   (optional)      │
    │      │                                                               │
    │      └── ctx.send_body(...)  or  ctx.send_file(...)                  │
    │                │                                                     │
    │                ▼                                                     │
    │      HTTP/1.1 200 OK\r\n                 ← status line               │
    │      Content-Type: text/plain\r\n                                    │
    │      Content-Length: 5\r\n               ← always exact              │
    │      Date: ...\r\n                                                   │
    │      Server: routelistener/1.0\r\n                                   │
    │      Connection: close\r\n                                           │
    │      \r\n                                                            │
    │      hello                               ← body or file, streamed    │
    │                │                                                     │
    │                ▼                                                     │
    │      connection closed (always, even on failure or empty body)      │
    │                                                                      │
    │   A second send_* call raises ResponseAlreadySentError.             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no chunked transfer encoding. Files are streamed in fixed-size
chunks but their length is known up front from the file descriptor.

The connection object only needs two methods:

    send(data: bytes) -> bool     False once the client has gone away
    close() -> None               idempotent

=============================================================================
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging
import os

from .mime_types import ContentTypeResolver
from .status_codes import reason_phrase


logger = logging.getLogger(__name__)


DEFAULT_SERVER_NAME = "routelistener/1.0"


class ResponseAlreadySentError(RuntimeError):
    """Raised when a handler tries to send a second response for one request."""


class ResponseContext:
    """
    Mutable response state for a single request.

    Attributes are filled in when a send method runs, so after dispatch the
    server can read them back for the access log:

        status_code         int, defaults to 200
        status_description  reason phrase actually written
        content_type        Content-Type written, or None
        content_length      exact number of body bytes announced
        headers             extra headers set by the handler
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        connection,
        resolver: Optional[ContentTypeResolver] = None,
        server_name: str = DEFAULT_SERVER_NAME,
        version: str = "HTTP/1.1",
    ):
        self._connection = connection
        self._resolver = resolver or ContentTypeResolver()
        self.server_name = server_name
        self.version = version

        self.status_code: int = 200
        self.status_description: str = reason_phrase(200)
        self.content_type: Optional[str] = None
        self.content_length: int = 0
        self.headers: Dict[str, str] = {}

        self._sent = False
        self._closed = False

        # HEAD: status line and headers, Content-Length of the full body, no body
        self.omit_body = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def sent(self) -> bool:
        """True once a send method has started writing."""
        return self._sent

    @property
    def closed(self) -> bool:
        return self._closed

    def set_header(self, name: str, value: str) -> "ResponseContext":
        """
        Add an extra header to the response that will be sent.

        Content-Length, Content-Type and Connection are managed by the
        writer and cannot be overridden here.
        """
        self._ensure_unsent()
        self.headers[name] = str(value)
        return self

    # =========================================================================
    # SENDING
    # =========================================================================

    def send_body(
        self,
        body: Union[str, bytes],
        content_type: Optional[str] = "text/plain",
        status_code: int = 200,
        status_description: Optional[str] = None,
    ) -> None:
        """
        Write a response with an in-memory body and close the connection.

        Args:
            body: Bytes, or a string which is encoded as UTF-8.
            content_type: Content-Type header value. None omits the header.
            status_code: Numeric status code.
            status_description: Reason phrase. Looked up from the status
                                table when not given.

        Raises:
            ResponseAlreadySentError: If this response was already sent.
            TypeError: If body is neither text nor bytes-like.
        """
        if isinstance(body, str):
            data = body.encode("utf-8")
        elif isinstance(body, (bytes, bytearray, memoryview)):
            data = bytes(body)
        else:
            raise TypeError(
                f"Response body must be str or bytes, not {type(body).__name__}"
            )

        self._begin(status_code, status_description, content_type, len(data))
        try:
            if self._connection.send(self._head()) and data and not self.omit_body:
                self._connection.send(data)
        finally:
            self.close()

    def send_json(
        self,
        data: Any,
        status_code: int = 200,
        status_description: Optional[str] = None,
    ) -> None:
        """Serialize ``data`` as JSON and send it as application/json."""
        self.send_body(
            json.dumps(data, ensure_ascii=False),
            content_type="application/json",
            status_code=status_code,
            status_description=status_description,
        )

    def send_file(
        self,
        path: Union[str, Path],
        content_type: Optional[str] = None,
        status_code: int = 200,
        status_description: Optional[str] = None,
    ) -> None:
        """
        Stream a file as the response body and close the connection.

        The file is opened before anything is written. If it does not
        exist the ``FileNotFoundError`` reaches the caller and the response
        is still unsent, so the caller can answer with a 404 instead.

        Args:
            path: File to send.
            content_type: Content-Type override. Resolved from the file
                          extension when not given.
            status_code: Numeric status code.
            status_description: Reason phrase override.

        Raises:
            ResponseAlreadySentError: If this response was already sent.
            FileNotFoundError: If ``path`` does not exist.
        """
        self._ensure_unsent()
        path = Path(path)

        with path.open("rb") as handle:
            size = os.fstat(handle.fileno()).st_size
            self._begin(
                status_code,
                status_description,
                content_type or self._resolver.resolve(path),
                size,
            )
            try:
                if self._connection.send(self._head()) and not self.omit_body:
                    # stop at the announced length even if the file grows meanwhile
                    remaining = size
                    while remaining > 0:
                        chunk = handle.read(min(self.CHUNK_SIZE, remaining))
                        if not chunk:
                            logger.warning(f"{path} shrank while sending")
                            break
                        remaining -= len(chunk)
                        if not self._connection.send(chunk):
                            logger.warning(f"Client went away while sending {path}")
                            break
            finally:
                self.close()

    def close_unhandled(self) -> None:
        """Answer a request no route claimed: 404, no body, then close."""
        self.send_body(b"", content_type=None, status_code=404)

    def close(self) -> None:
        """Close the underlying connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._connection.close()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _ensure_unsent(self) -> None:
        if self._sent:
            raise ResponseAlreadySentError(
                f"Response already sent with status {self.status_code}"
            )

    def _begin(
        self,
        status_code: int,
        status_description: Optional[str],
        content_type: Optional[str],
        content_length: int,
    ) -> None:
        self._ensure_unsent()
        self._sent = True

        self.status_code = int(status_code)
        if status_description is None:
            status_description = reason_phrase(self.status_code)
        # CR/LF would let a caller inject headers through the status line.
        self.status_description = status_description.replace("\r", " ").replace("\n", " ")
        self.content_type = content_type
        self.content_length = content_length

    def _head(self) -> bytes:
        """Status line and headers, terminated by the blank line."""
        headers = {
            "Date": format_http_date(datetime.now(timezone.utc)),
            "Server": self.server_name,
        }
        for name, value in self.headers.items():
            if name.lower() not in ("content-length", "content-type", "connection"):
                headers[name] = value

        if self.content_type:
            headers["Content-Type"] = self.content_type
        headers["Content-Length"] = str(self.content_length)
        headers["Connection"] = "close"

        lines = [f"{self.version} {self.status_code} {self.status_description}"]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1", errors="replace")


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date.

        >>> format_http_date(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
        'Thu, 01 Jan 2026 12:00:00 GMT'
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
