"""
=============================================================================
HTTP MODULE
=============================================================================

Protocol-level pieces of the listener. None of them touch sockets:

    request.py       bytes → HTTPRequest (RequestParser, HTTPParseError)
    response.py      ResponseContext: send_body / send_file, exactly once
    router.py        RouteTable: ordered regex → handler, "Exit" entry
    context.py       HandlerContext passed to every handler
    status_codes.py  status code → reason phrase table
    mime_types.py    file extension → Content-Type table

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import ResponseContext, ResponseAlreadySentError, format_http_date
from .router import RouteTable, Route, RouteMatch, RouteTableFrozenError, EXIT_PATTERN
from .context import HandlerContext
from .status_codes import HTTPStatus, REASON_PHRASES, reason_phrase
from .mime_types import ContentTypeResolver, MIME_TYPES, DEFAULT_MIME_TYPE, get_mime_type

__all__ = [
    # Request
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    # Response
    "ResponseContext",
    "ResponseAlreadySentError",
    "format_http_date",
    # Routing
    "RouteTable",
    "Route",
    "RouteMatch",
    "RouteTableFrozenError",
    "EXIT_PATTERN",
    "HandlerContext",
    # Tables
    "HTTPStatus",
    "REASON_PHRASES",
    "reason_phrase",
    "ContentTypeResolver",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "get_mime_type",
]
