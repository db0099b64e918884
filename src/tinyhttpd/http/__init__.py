"""
=============================================================================
HTTP MODULE
=============================================================================

The protocol layer of the file server: bytes in, bytes out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   b"GET /a%20b.txt HTTP/1.1\r\nX-Forwarded-For: ...\r\n\r\n" │
    │ Output:  ParsedRequest(method="GET", decoded_path="/a b.txt", ...)  │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE SYNTHESIS (response.py)                                    │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   file_response("/srv/a.png", b"...")                        │
    │ Output:  b"HTTP/1.1 200 OK\r\nContent-Type: image/png\r\n..."       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py) / CONTENT TYPES (mime_types.py)      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Fixed lookup tables used by the synthesizer                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import ParsedRequest, RequestParser, MalformedRequest, url_decode, parse_request
from .response import ResponseMessage, file_response, listing_response
from .status_codes import HTTPStatus, status_line
from .mime_types import get_content_type, is_attachment

__all__ = [
    # Request parsing
    "ParsedRequest",
    "RequestParser",
    "MalformedRequest",
    "url_decode",
    "parse_request",

    # Response synthesis
    "ResponseMessage",
    "file_response",
    "listing_response",

    # Lookup tables
    "HTTPStatus",
    "status_line",
    "get_content_type",
    "is_attachment",
]
