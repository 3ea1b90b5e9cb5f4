"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket. The listener serves exactly one request
per connection:

    NEW ──► READING ──► WRITING ──► CLOSED
     │         │                     ▲
     └─────────┴─ gone / timeout ────┘

``read_request()`` returns the bytes of one complete request: everything
up to the blank line after the headers, plus Content-Length bytes of body.
``send()`` pushes response bytes. ``close()`` does the TCP shutdown dance
and is safe to call repeatedly; the response writer calls it as soon as
the response is out, and the dispatcher calls it again on the way out.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..http.request import HTTPParseError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client socket with buffered reads and a graceful close.

    Attributes:
        socket: The accepted client socket.
        address: Remote (ip, port).
        id: Short random id used to correlate log lines.
        state: Current ConnectionState.
        created_at: Accept time (time.time()).
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 10 * 1024 * 1024

    bytes_sent: int = 0
    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since accept."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        Returns:
            The request bytes, or None if the client closed the connection
            before sending a full header block.

        Raises:
            TimeoutError: The client did not finish sending in time.
            HTTPParseError: The request exceeds max_request_size (413).
        """
        self.state = ConnectionState.READING

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._append(chunk)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # parser reports the short body
                self._append(chunk)

            request_end = body_start + content_length
            data, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
            return data

        except socket.timeout:
            raise TimeoutError(f"[{self.id}] Request read timed out")

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: more than {self.max_request_size} bytes",
                status_code=413,
            )

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """
        Pull Content-Length out of the raw header block.

        Done here, before full parsing, because we need it to know how many
        body bytes to wait for. Malformed values count as 0; the parser
        rejects them afterwards.
        """
        for line in headers.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send all of ``data``.

        Returns:
            True on success, False if the client has disconnected.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close gracefully: send FIN, drain what the client still sends,
        release the descriptor. Repeated calls do nothing.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            # unread input must be drained or close() resets the connection
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
