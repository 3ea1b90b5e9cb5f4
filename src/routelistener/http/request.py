"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the bytes read from one client connection into an ``HTTPRequest``.

The listener handles exactly one request per connection, so the parser
never has to find the start of a second message. It only needs to:

    GET /reports/daily.json?limit=10 HTTP/1.1\r\n      ← request line
    Host: localhost:8080\r\n                           ← headers
    Accept: application/json\r\n
    \r\n                                               ← end of headers
    <Content-Length bytes of body>                     ← optional body

1. Split the request line into method, target and version
2. Split the target into path and query string (path is URL-decoded)
3. Collect headers with lower-cased names
4. Slice the body to Content-Length

The resulting ``HTTPRequest`` is frozen. Handlers read from it; they
never modify it. Route matching runs against ``request.path`` only, the
query string is not part of the match.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse
import json
import re


class HTTPParseError(Exception):
    """
    Raised when request bytes cannot be parsed.

    Carries the status code the dispatcher should answer with:
    400 for bad syntax, 405 for an unknown method, 413 for an oversized
    request and 505 for an unsupported HTTP version.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class HTTPRequest:
    """
    Read-only view of one parsed request.

    Attributes:
        method:         Upper-case HTTP method.
        path:           URL-decoded path without the query string.
        version:        "HTTP/1.0" or "HTTP/1.1".
        headers:        Header name (lower-case) to value.
        query_params:   Query string as name to list of values.
        query_string:   Raw query string, without the leading "?".
        body:           Body bytes, exactly Content-Length long.
        client_address: (ip, port) of the remote end.
        raw:            Unparsed request bytes, for debugging.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list] = field(default_factory=dict)
    query_string: str = ""
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @property
    def host(self) -> str:
        """The Host header, e.g. ``localhost:8080``."""
        return self.headers.get("host", "")

    @property
    def client_ip(self) -> str:
        return self.client_address[0]

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it (decoded path)."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, lower-cased, or None."""
        value = self.headers.get("content-type", "")
        return value.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (undecodable bytes replaced)."""
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Parse the body as JSON.

        Raises:
            HTTPParseError: If the body is not valid UTF-8 JSON.
        """
        if not self.body:
            return None
        try:
            return json.loads(self.body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise HTTPParseError(f"Invalid JSON body: {e}")

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> list:
        """All values of a query parameter, in order."""
        return list(self.query_params.get(name, []))


class RequestParser:
    """
    Parses raw request bytes into ``HTTPRequest`` objects.

    ==========================================================================
    PATTERNS
    ==========================================================================

    REQUEST_LINE_PATTERN: ^([A-Z]+) ([^ ]+) (HTTP/\\d\\.\\d)$
        METHOD SP REQUEST-TARGET SP HTTP-VERSION

    HEADER_PATTERN: ^([^:]+):\\s*(.*)$
        field-name ":" OWS field-value

    ==========================================================================
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Request bytes as returned by ``Connection.read_request()``.
            client_address: Remote (ip, port).

        Raises:
            HTTPParseError: On any malformed or unsupported input.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_string, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers['content-length']}")
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=parse_qs(query_string, keep_blank_values=True),
            query_string=query_string,
            body=body[:content_length],
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str, str]:
        """Split ``GET /path?q=1 HTTP/1.1`` into method, path, query, version."""
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlparse(target)
        path = unquote(parsed.path) or "/"

        # Reject traversal before any handler maps the path onto the filesystem.
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")

        return method, path, parsed.query, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        """
        Collect headers into a dict with lower-cased names.

        Obsolete line folding (continuation lines starting with whitespace)
        is joined onto the previous header. Repeated headers are combined
        with ", " as RFC 9110 allows.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip garbage header lines

            name = match.group(1).strip().lower()
            value = match.group(2).strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """One-shot helper around ``RequestParser``."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
