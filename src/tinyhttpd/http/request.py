"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes of a single read into a ParsedRequest.

The file server only needs four things from a request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT WE EXTRACT                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /docs/read%20me.txt HTTP/1.1\r\n                              │
    │    ─┬─ ──────────┬──────── ────┬───                                  │
    │     │            │             │                                     │
    │   method      raw path      version                                  │
    │                  │                                                   │
    │                  └─► url_decode() ─► "/docs/read me.txt"            │
    │                                                                      │
    │    Host: example.com\r\n                                             │
    │    X-Forwarded-For: 203.0.113.7\r\n   ◄── overrides the peer IP     │
    │    \r\n                                   in the access log          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything else (other headers, the body) is ignored.

=============================================================================
ONE READ, NO REASSEMBLY
=============================================================================

TCP is a byte stream: a request may arrive in several segments. A full
HTTP server keeps calling recv() until it sees \r\n\r\n. This one does NOT:
the parser gets whatever the first recv() returned (4096 bytes by default).

    First recv():  "GET /index.html HTTP/1.1\r\nHost: ..."   → parsed
    Second segment: never read

Consequences:
    - Headers past the buffer are silently dropped.
    - A client that sends the request line in two writes can have its
      request rejected as malformed.

Browsers and curl send the whole request head in one write, so in practice
this is fine for a small file server. It is a known limitation, not a bug.

=============================================================================
URL DECODING RULES
=============================================================================

    %XX   (two hex digits)   → the byte 0xXX        "%2E" → "."
    +                        → space                "a+b" → "a b"
    % not followed by 2 hex  → kept literally        "%4"  → "%4"
    anything else            → unchanged

Decoding works on BYTES and maps the result back to str with UTF-8 +
surrogateescape, the same mapping os.fsdecode() uses on POSIX. The decoded
path therefore names exactly the bytes the client asked for, even when they
are not valid UTF-8.

Note what decoding does NOT do: it does not collapse "." or ".." segments.
"/docs/%2E%2Ehidden" becomes the literal "/docs/..hidden".

=============================================================================
"""

import logging
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes


logger = logging.getLogger(__name__)


class MalformedRequest(Exception):
    """
    Raised when the request line can't be split into its three parts.

    The server answers this by closing the connection without writing
    anything; there is no 400 response.
    """


def url_decode(value: str) -> str:
    """
    Decode a URL path.

    ``%XX`` escapes become bytes, ``+`` becomes a space, and malformed
    escapes are passed through.

    Args:
        value: The raw path as received.

    Returns:
        The decoded path, suitable for filesystem calls.
    """
    raw = value.encode("utf-8", "surrogateescape").replace(b"+", b" ")
    # unquote_to_bytes leaves a '%' without two hex digits untouched.
    return unquote_to_bytes(raw).decode("utf-8", "surrogateescape")


@dataclass(frozen=True)
class ParsedRequest:
    """
    A request as seen by the file server.

    Created once per connection from the first read and never modified.

    Attributes:
        method: Request method, taken verbatim ("GET", "HEAD", ...).
        raw_path: Path exactly as sent, still percent-encoded.
        decoded_path: url_decode(raw_path); the only form used on disk.
        version: Protocol token, e.g. "HTTP/1.1".
        client_ip: Peer address, or the X-Forwarded-For value if present.
        raw: The bytes of the read the request was parsed from.
    """

    method: str
    raw_path: str
    decoded_path: str
    version: str
    client_ip: str
    raw: bytes = b""

    @property
    def raw_text(self) -> str:
        """Raw request for debug logging."""
        return self.raw.decode("utf-8", errors="replace")


class RequestParser:
    """
    Parses the first read of a connection into a ParsedRequest.

    ==========================================================================
    PARSING ALGORITHM
    ==========================================================================

        data ──► find first CRLF ───────────────► none? MalformedRequest
                    │
                    ▼
             request line ──► split on first two spaces ─► < 2? Malformed
                    │
                    ▼
             header lines ──► first "X-Forwarded-For:" line (until blank line)
                    │
                    ▼
             url_decode(raw path)
                    │
                    ▼
             ParsedRequest

    ==========================================================================
    """

    FORWARDED_FOR = "X-Forwarded-For:"

    def __init__(self, buffer_size: int = 4096):
        """
        Args:
            buffer_size: Size of the read the server performs. Only used
                to flag requests that probably got truncated.
        """
        self.buffer_size = buffer_size

    def parse(self, data: bytes, client_ip: str = "") -> ParsedRequest:
        """
        Parse raw request bytes.

        Args:
            data: Bytes returned by the connection's single read.
            client_ip: The socket peer address.

        Returns:
            The parsed request.

        Raises:
            MalformedRequest: If the read was empty or the request line is
                missing its CRLF or one of its two spaces.
        """
        if not data:
            raise MalformedRequest("Empty request")

        if len(data) >= self.buffer_size:
            logger.debug(f"Request filled the {self.buffer_size}-byte read; headers may be truncated")

        # surrogateescape keeps every byte recoverable for url_decode()
        text = data.decode("utf-8", "surrogateescape")

        line_end = text.find("\r\n")
        if line_end == -1:
            raise MalformedRequest("Request line is not terminated by CRLF")

        method, raw_path, version = self._parse_request_line(text[:line_end])

        forwarded_for = self._find_forwarded_for(text[line_end + 2:])
        if forwarded_for:
            client_ip = forwarded_for

        return ParsedRequest(
            method=method,
            raw_path=raw_path,
            decoded_path=url_decode(raw_path),
            version=version,
            client_ip=client_ip,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split ``METHOD SP PATH SP VERSION``.

        Only the first two spaces delimit; any further spaces stay in the
        version token. Nothing is validated: an unknown method or version
        is passed on as-is.
        """
        first = line.find(" ")
        if first == -1:
            raise MalformedRequest(f"Invalid request line: {line!r}")

        second = line.find(" ", first + 1)
        if second == -1:
            raise MalformedRequest(f"Invalid request line: {line!r}")

        return line[:first], line[first + 1:second], line[second + 1:]

    def _find_forwarded_for(self, header_section: str) -> str:
        """
        Return the trimmed value of the first X-Forwarded-For header.

        The header name is matched case-sensitively. The value is not
        validated. Scanning stops at the blank line ending the headers.
        """
        for line in header_section.split("\n"):
            line = line.rstrip("\r")
            if not line:
                break
            if line.startswith(self.FORWARDED_FOR):
                return line[len(self.FORWARDED_FOR):].strip(" \t")
        return ""


def parse_request(data: bytes, client_ip: str = "") -> ParsedRequest:
    """
    Convenience function to parse a request in one call.

    Args:
        data: Raw request bytes.
        client_ip: Socket peer address.

    Returns:
        Parsed request.
    """
    return RequestParser().parse(data, client_ip)
