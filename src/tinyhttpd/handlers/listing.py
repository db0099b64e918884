"""
=============================================================================
DIRECTORY LISTING
=============================================================================

Renders the HTML index page for a directory.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Index of /docs/                                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │  📁 ..              → /                  parent (not shown for "/") │
    │  📁 api             → /docs/api          directories, sorted       │
    │  📁 guides          → /docs/guides                                  │
    │  📄 README.txt      → /docs/README.txt   then everything else,     │
    │  📄 changelog.html  → /docs/changelog.html          sorted         │
    ├─────────────────────────────────────────────────────────────────────┤
    │  tinyhttpd/0.8.2 on Debian GNU/Linux 12 Serving port 8080           │
    └─────────────────────────────────────────────────────────────────────┘

Sorting is plain lexicographic string order ("B" < "a"), and directories
always come before files no matter their names.

=============================================================================
ESCAPING
=============================================================================

Names come from the filesystem, so they can contain anything a filename can:
spaces, quotes, "<", "+", "%"... Two different encodings apply:

    link text   html.escape()     "a<b>.txt"  → "a&lt;b&gt;.txt"
    href        urllib quote()    "a b+c.txt" → "a%20b%2Bc.txt"

The href encoding is the inverse of the server's url_decode(): following a
link decodes back to the exact name on disk ("+" in a name is sent as %2B,
not left to be decoded as a space).

=============================================================================
"""

import html
import logging
import os
from typing import List, Tuple
from urllib.parse import quote

from ..version import __version__


logger = logging.getLogger(__name__)


STYLE = (
    "html, body { height: 100%; margin: 0; }"
    "body { display: flex; flex-direction: column; margin: 0; }"
    "main { flex: 1; overflow-y: auto; padding: 10px; }"
    "ul { list-style-type: none; margin: 0; padding: 0; }"
    "li { padding-left: 20px; }"
    "li.directory::before { content: '\\1F4C1'; margin-right: 10px; }"
    "li.file::before { content: '\\1F4C4'; margin-right: 10px; }"
    "footer { background-color: #dddddd; padding: 7px; text-align: center; }"
)

READ_ERROR = "<p>Error reading directory.</p>"


def parent_path(request_path: str) -> str:
    """
    Compute the href of the ".." entry.

    Strip one trailing slash, then cut at the last remaining slash:

        "/docs/api/"  → "/docs"
        "/docs/"      → "/"
        "/"           → "/"
    """
    path = request_path[:-1] if request_path.endswith("/") else request_path
    cut = path.rfind("/")
    if cut != -1:
        path = path[:cut]
    return path or "/"


def scan_directory(directory: str) -> Tuple[List[str], List[str]]:
    """
    Split a directory's entries into (directories, files), each sorted.

    "." and ".." never appear. Anything that isn't a directory (regular
    files, broken symlinks, sockets...) counts as a file.

    Raises:
        OSError: If the directory can't be read.
    """
    directories: List[str] = []
    files: List[str] = []

    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.name in (".", ".."):
                continue
            try:
                is_dir = entry.is_dir()
            except OSError:
                is_dir = False
            (directories if is_dir else files).append(entry.name)

    directories.sort()
    files.sort()
    return directories, files


def _entry(css_class: str, href: str, label: str) -> str:
    href = quote(href, safe="/", encoding="utf-8", errors="surrogateescape")
    return f'<li class="{css_class}"><a href="{href}">{html.escape(label)}</a></li>\r\n'


def render_directory_listing(
    directory: str,
    request_path: str,
    port: int,
    os_description: str,
    server_name: str = "tinyhttpd",
) -> str:
    """
    Render the listing page for ``directory``.

    Args:
        directory: Filesystem directory to enumerate.
        request_path: URL path of that directory, ending in "/".
        port: Bound port, shown in the footer.
        os_description: Host OS name, shown in the footer.
        server_name: Product name in the footer.

    Returns:
        The HTML document. A directory that can't be read yields the page
        with an inline error message instead of entries.
    """
    title = html.escape(request_path)
    parts = [
        "<html><head><title>Directory Listing</title></head>",
        f"<style>{STYLE}</style>",
        "</head><body>\r\n",
        "<main>\r\n",
        f'<h1 style="background-color: #dddddd; padding: 10px;">Index of {title}</h1>\r\n',
        "<ul>\r\n",
    ]

    if request_path != "/":
        parts.append(_entry("directory", parent_path(request_path), ".."))

    try:
        directories, files = scan_directory(directory)
    except OSError as e:
        logger.warning(f"Cannot read directory {directory}: {e}")
        parts.append(READ_ERROR + "\r\n")
        directories, files = [], []

    for name in directories:
        parts.append(_entry("directory", request_path + name, name))
    for name in files:
        parts.append(_entry("file", request_path + name, name))

    parts.append("</ul>\r\n")
    parts.append("</main>\r\n")
    parts.append(
        f"<footer>{server_name}/{__version__} on {html.escape(os_description)} "
        f"Serving port {port}</footer>\r\n"
    )
    parts.append("</body></html>\r\n")
    return "".join(parts)
