"""
=============================================================================
CONTENT TYPE DETECTION
=============================================================================

Picks the Content-Type for a served file.

The table is deliberately tiny and ORDERED. Matching is a case-sensitive
substring test against the file name, first hit wins:

    "notes.txt"          → text/plain
    "page.html"          → text/html
    "page.html.bak"      → text/html      (substring, not suffix!)
    "PHOTO.JPG"          → application/octet-stream   (case-sensitive)
    "archive.tar.gz"     → application/octet-stream

Anything that is not text/html or text/plain is offered to the browser as a
download (see is_attachment).

=============================================================================
"""

import os
from typing import List, Tuple


DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Order matters: checked top to bottom.
CONTENT_TYPES: List[Tuple[str, str]] = [
    (".html", "text/html"),
    (".txt", "text/plain"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".png", "image/png"),
]

# Rendered by the browser; everything else gets Content-Disposition.
INLINE_CONTENT_TYPES = {"text/html", "text/plain"}


def get_content_type(path: str) -> str:
    """
    Get the Content-Type for a file path.

    Only the final path component is inspected, so a served root like
    ``/srv/site.html.d`` can't leak into the decision.

    Args:
        path: Path (or bare name) of the file being served.

    Returns:
        MIME type string, ``application/octet-stream`` when nothing matches.
    """
    name = os.path.basename(path)
    for needle, content_type in CONTENT_TYPES:
        if needle in name:
            return content_type
    return DEFAULT_CONTENT_TYPE


def is_attachment(content_type: str) -> bool:
    """True when the response should carry ``Content-Disposition: attachment``."""
    return content_type not in INLINE_CONTENT_TYPES
