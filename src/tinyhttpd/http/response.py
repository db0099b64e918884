"""
=============================================================================
HTTP RESPONSE SYNTHESIS
=============================================================================

Builds the two kinds of responses the file server sends and serializes
them onto the wire.

=============================================================================
WIRE FORMAT
=============================================================================

FILE RESPONSE (one send):

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                                                │
    │  Content-Type: image/png\r\n                                        │
    │  Content-Length: 5120\r\n                                           │
    │  Content-Disposition: attachment; filename="logo.png"\r\n  ◄─ only │
    │  \r\n                                                  for non-text │
    │  <5120 bytes of file content>                                      │
    └─────────────────────────────────────────────────────────────────────┘

DIRECTORY LISTING (two sends):

    ┌─────────────────────────────────────────────────────────────────────┐
    │  send #1                                                            │
    │    HTTP/1.1 200 OK\r\n                                              │
    │    Content-Type: text/html\r\n                                      │
    │    Content-Length: 1234\r\n                                         │
    │    \r\n                                                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  send #2  (exactly Content-Length bytes)                            │
    │    \r\n                       ◄── the body itself starts with CRLF  │
    │    <html>...</html>\r\n                                            │
    └─────────────────────────────────────────────────────────────────────┘

The leading CRLF in the listing body is part of the body and is counted in
Content-Length, so clients that honour Content-Length read it correctly.

No Date, Server, Connection or caching headers are sent: every connection
carries exactly one response and is then closed.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List

from .mime_types import get_content_type, is_attachment
from .status_codes import HTTPStatus, status_line


@dataclass
class ResponseMessage:
    """
    A response waiting to be written.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        file_response() /          segments()             Connection
        listing_response()  ───►   header block   ───►    sendall() per
              │                    (+ body)               segment, then
              │                                           close()
        ResponseMessage(
          status=200,
          content_type="text/html",
          headers={...},            ◄── extra headers, in order
          body=b"...",
          body_separate=True        ◄── listing: two sends
        )

    =========================================================================
    """

    status: int = HTTPStatus.OK
    content_type: str = "text/html"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    body_separate: bool = False
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """E.g. ``HTTP/1.1 200 OK``; unknown codes become 500."""
        return status_line(self.status, self.version)

    @property
    def all_headers(self) -> Dict[str, str]:
        """Content-Type and Content-Length first, then the extra headers."""
        ordered = {
            "Content-Type": self.content_type,
            "Content-Length": str(len(self.body)),
        }
        ordered.update(self.headers)
        return ordered

    def header_block(self) -> bytes:
        """Status line and headers, terminated by the blank line."""
        lines = [self.status_line]
        for name, value in self.all_headers.items():
            lines.append(f"{name}: {value}")
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8", "surrogateescape")

    def segments(self) -> List[bytes]:
        """
        The chunks to hand to the socket, one send each.

        Returns:
            ``[head, body]`` for listings, ``[head + body]`` otherwise.
        """
        if self.body_separate:
            return [self.header_block(), self.body]
        return [self.header_block() + self.body]

    def to_bytes(self) -> bytes:
        """The complete response as it appears on the wire."""
        return b"".join(self.segments())


def file_response(path: str, content: bytes, status: int = HTTPStatus.OK) -> ResponseMessage:
    """
    Build the response for a served file.

    Args:
        path: Filesystem path of the file; its name picks the
              Content-Type and the attachment filename.
        content: Entire file content, read in binary mode.
        status: Status code for the status line.

    Returns:
        ResponseMessage written in a single send.
    """
    content_type = get_content_type(path)
    headers: Dict[str, str] = {}
    if is_attachment(content_type):
        filename = os.path.basename(path)
        headers["Content-Disposition"] = f'attachment; filename="{filename}"'

    return ResponseMessage(
        status=status,
        content_type=content_type,
        headers=headers,
        body=content,
    )


def listing_response(html: str) -> ResponseMessage:
    """
    Build the response for a generated directory listing.

    Always 200 text/html. The body gets the leading CRLF described in the
    module docstring and is sent separately from the headers.
    """
    return ResponseMessage(
        status=HTTPStatus.OK,
        content_type="text/html",
        body=("\r\n" + html).encode("utf-8", "surrogateescape"),
        body_separate=True,
    )
