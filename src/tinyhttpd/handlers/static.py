"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Decides what a request path means on disk and builds the response for it.

=============================================================================
RESOLUTION POLICY
=============================================================================

    candidate = root_directory + decoded_path        (plain concatenation)

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   candidate is a directory?                                          │
    │      │                                                               │
    │      ├── yes ──► candidate/index.html is a regular file?             │
    │      │              ├── yes ──► ServeFile(candidate/index.html)      │
    │      │              └── no  ──► ServeDirectoryListing(candidate,     │
    │      │                                 path with trailing "/")       │
    │      │                                                               │
    │      └── no  ──► open(candidate, "rb") works?                        │
    │                     ├── yes ──► ServeFile(candidate)                 │
    │                     └── no  ──► NotFound                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

NotFound is NOT a 404 page. The client gets a 200 listing of the root
directory (as if it had asked for "/"), and only the access log records
the 404.

=============================================================================
SECURITY NOTE: NO PATH NORMALIZATION
=============================================================================

The candidate is built by string concatenation. "." and ".." segments are
handed to the operating system untouched:

    root = "/srv"
    GET /docs/%2E%2Ehidden   → "/srv/docs/..hidden"   (a literal name)
    GET /../etc/passwd       → "/srv/../etc/passwd"   (the OS resolves it!)

The second case escapes the served root whenever the client's path reaches
us unnormalized (curl --path-as-is, raw sockets). This is long-standing
tinyhttpd behavior and is kept as-is; see DESIGN.md. Do not expose this
server to untrusted networks.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Union

from ..http.request import ParsedRequest
from ..http.response import ResponseMessage, file_response, listing_response
from ..http.status_codes import HTTPStatus
from ..sysinfo import get_os_description
from .listing import render_directory_listing


logger = logging.getLogger(__name__)


INDEX_FILE = "index.html"


# =============================================================================
# RESOLVED TARGETS
# =============================================================================

@dataclass(frozen=True)
class ServeFile:
    """Send the file at ``path``."""
    path: str


@dataclass(frozen=True)
class ServeDirectoryListing:
    """Render a listing of ``directory``, linked under ``request_path``."""
    directory: str
    request_path: str


@dataclass(frozen=True)
class NotFound:
    """Nothing to serve; falls back to the root listing."""


ResolvedTarget = Union[ServeFile, ServeDirectoryListing, NotFound]


def resolve_target(decoded_path: str, root_directory: str) -> ResolvedTarget:
    """
    Map a decoded request path onto the filesystem.

    Args:
        decoded_path: URL-decoded request path (e.g. "/docs/a b.txt").
        root_directory: The served root.

    Returns:
        ServeFile, ServeDirectoryListing or NotFound.
    """
    candidate = root_directory + decoded_path

    if os.path.isdir(candidate):
        index_path = candidate + "/" + INDEX_FILE
        if os.path.isfile(index_path):
            return ServeFile(index_path)

        request_path = decoded_path if decoded_path.endswith("/") else decoded_path + "/"
        return ServeDirectoryListing(root_directory + request_path, request_path)

    try:
        with open(candidate, "rb"):
            pass
    except (OSError, ValueError):
        # ValueError: the decoded path contains a NUL byte ("%00").
        return NotFound()
    return ServeFile(candidate)


# =============================================================================
# HANDLER
# =============================================================================

@dataclass
class HandlerResult:
    """
    What the worker sends, plus what it logs.

    The two statuses differ for NotFound: ``response.status`` is 200 (the
    root listing), ``log_status`` is 404.
    """
    response: ResponseMessage
    log_status: int


class StaticFileHandler:
    """
    Turns a ParsedRequest into a HandlerResult.

    =========================================================================
    FLOW
    =========================================================================

        ParsedRequest.decoded_path
              │
              ▼
        resolve_target() ──► ServeFile ──────────► read bytes ─► file_response
              │                                        │
              │                                   read failed?
              │                                        ▼
              ├──────────► NotFound ─────────────► root listing, log 404
              │
              └──────────► ServeDirectoryListing ─► listing_response

    The method is not inspected: HEAD, POST, or anything else is treated
    exactly like GET.

    =========================================================================
    """

    def __init__(
        self,
        root_directory: str,
        port: int,
        server_name: str = "tinyhttpd",
        os_description: Optional[str] = None,
    ):
        """
        Args:
            root_directory: Directory served as "/".
            port: Port shown in listing footers.
            server_name: Product name shown in listing footers.
            os_description: Footer OS string; detected when omitted.
        """
        self.root_directory = root_directory
        self.port = port
        self.server_name = server_name
        self.os_description = os_description if os_description is not None else get_os_description()

    def handle(self, request: ParsedRequest) -> HandlerResult:
        """Resolve the request path and synthesize the response."""
        target = resolve_target(request.decoded_path, self.root_directory)

        if isinstance(target, ServeDirectoryListing):
            response = self._listing(target.directory, target.request_path)
            return HandlerResult(response, HTTPStatus.OK)

        if isinstance(target, ServeFile):
            try:
                content = self._read_file(target.path)
            except OSError as e:
                # Vanished or became unreadable since resolve_target() opened it.
                logger.debug(f"Cannot read {target.path}: {e}")
            else:
                return HandlerResult(file_response(target.path, content), HTTPStatus.OK)

        return self.not_found()

    def not_found(self) -> HandlerResult:
        """The root listing, logged as 404."""
        response = self._listing(self.root_directory + "/", "/")
        return HandlerResult(response, HTTPStatus.NOT_FOUND)

    def _listing(self, directory: str, request_path: str) -> ResponseMessage:
        page = render_directory_listing(
            directory,
            request_path,
            port=self.port,
            os_description=self.os_description,
            server_name=self.server_name,
        )
        return listing_response(page)

    @staticmethod
    def _read_file(path: str) -> bytes:
        # Whole file in memory; no streaming, no ranges.
        with open(path, "rb") as f:
            return f.read()
