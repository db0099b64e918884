"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The file server only ever needs a handful of status lines. Rather than
carrying the full RFC 7231 registry, we keep a small, fixed table and map
everything else to 500:

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │   Code    │  Status line                                             │
    ├───────────┼──────────────────────────────────────────────────────────┤
    │  100      │  HTTP/1.1 100 Continue                                   │
    │  101      │  HTTP/1.1 101 Switching Protocols                        │
    │  200      │  HTTP/1.1 200 OK                                         │
    │  404      │  HTTP/1.1 404 Not Found                                  │
    │  other    │  HTTP/1.1 500 Internal Server Error                      │
    └───────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes the server knows how to phrase.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    OK = 200
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line."""
        return _PHRASES[self]


_PHRASES = {
    HTTPStatus.CONTINUE: "Continue",
    HTTPStatus.SWITCHING_PROTOCOLS: "Switching Protocols",
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}


def lookup_status(code: int) -> HTTPStatus:
    """
    Map an integer code onto the table.

    Unknown codes become 500; the server never emits a status line
    it can't phrase.
    """
    try:
        return HTTPStatus(code)
    except ValueError:
        return HTTPStatus.INTERNAL_SERVER_ERROR


def status_line(code: int, version: str = "HTTP/1.1") -> str:
    """Build e.g. ``HTTP/1.1 404 Not Found`` (no trailing CRLF)."""
    status = lookup_status(code)
    return f"{version} {int(status)} {status.phrase}"
