"""
=============================================================================
HTTP STATUS CODES AND REASON PHRASES
=============================================================================

Static lookup from numeric status code to the reason phrase written in the
response status line:

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── reason phrase (looked up here)
              └───────── status code (chosen by the handler)

Handlers may pass any integer as a status code. Codes we know about get
their registered phrase; anything else gets an empty phrase, which is still
a valid status line ("HTTP/1.1 599 ").

=============================================================================
CODE CLASSES
=============================================================================

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  1xx   │ Informational - request received, keep going              │
    │  2xx   │ Success       - 200 OK is what send_body() defaults to    │
    │  3xx   │ Redirection   - client must look elsewhere                │
    │  4xx   │ Client error  - 404 from the file handler, 400 on a bad   │
    │        │                 request line, 408 on a read timeout       │
    │  5xx   │ Server error  - 500 when a handler raises                 │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Named status codes.

    IntEnum members compare equal to plain ints, so handlers can write
    either ``status_code=404`` or ``status_code=HTTPStatus.NOT_FOUND``.

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 1xx
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102
    EARLY_HINTS = 103

    # 2xx
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206

    # 3xx
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    IM_A_TEAPOT = 418
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for this code."""
        return REASON_PHRASES[self]

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


# =============================================================================
# REASON PHRASE TABLE
# =============================================================================
#
# Keyed by plain int so lookups work for any integer a handler passes in.
# Phrases follow RFC 9110 section 15.
#
# =============================================================================

REASON_PHRASES = {
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    103: "Early Hints",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Payload Too Large",
    414: "URI Too Long",
    415: "Unsupported Media Type",
    416: "Range Not Satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    422: "Unprocessable Content",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
}


def reason_phrase(status_code: int) -> str:
    """
    Look up the reason phrase for a status code.

    Args:
        status_code: Any integer status code.

    Returns:
        The registered phrase, or an empty string for unknown codes.

    Examples:
        >>> reason_phrase(200)
        'OK'
        >>> reason_phrase(599)
        ''
    """
    return REASON_PHRASES.get(int(status_code), "")
