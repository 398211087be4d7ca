"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The pieces that understand HTTP, independent of sockets and threads:

    request.py       Request line → Request (method, path)
    router.py        (method, path) → Handler
    response.py      Status + headers + body → bytes on the stream
    status_codes.py  HTTPStatus enum with reason phrases
    mime_types.py    File extension → Content-Type

=============================================================================
"""

from .request import Request, RequestParser, HTTPParseError, parse_request
from .response import ResponseWriter, status_text
from .router import RoutingTable, Handler
from .status_codes import HTTPStatus
from .mime_types import get_mime_type

__all__ = [
    # Request parsing
    "Request",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    # Response writing
    "ResponseWriter",
    "status_text",
    # Routing
    "RoutingTable",
    "Handler",
    # Status codes
    "HTTPStatus",
    # MIME types
    "get_mime_type",
]
