"""
=============================================================================
TINYHTTPD - A Minimal Threaded HTTP/1.x File Server
=============================================================================

Serves a directory over HTTP (or HTTPS): files as-is, directories as an
index.html when there is one, or as a generated listing when there isn't.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. CONNECTION DISPATCH                                            │
    │      - TCP listener, optional TLS                                   │
    │      - One thread per connection, one request per connection       │
    │      - Graceful shutdown on SIGINT/SIGTERM                          │
    │                                                                      │
    │   2. REQUEST PARSING                                                │
    │      - Request line from a single read                              │
    │      - URL decoding, X-Forwarded-For                                │
    │                                                                      │
    │   3. PATH RESOLUTION & RESPONSES                                    │
    │      - File, index.html, directory listing, root fallback           │
    │      - Content-Type by extension, attachments for binaries          │
    │                                                                      │
    │   4. ACCESS LOG                                                     │
    │      - One Common Log Format line per request                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tinyhttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tinyhttpd)
    ├── server.py            # FileServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # Access log lines
    ├── sysinfo.py           # OS description for listing footers
    ├── version.py           # __version__
    ├── core/
    │   ├── socket_server.py # Listener, accept loop, worker threads
    │   ├── connection.py    # Connection wrapper
    │   └── tls.py           # SSLContext and handshakes
    ├── http/
    │   ├── request.py       # Request parsing, URL decoding
    │   ├── response.py      # Response messages
    │   ├── status_codes.py  # Status line table
    │   └── mime_types.py    # Content-Type table
    └── handlers/
        ├── static.py        # Path resolution, StaticFileHandler
        └── listing.py       # Directory listing HTML

=============================================================================
QUICK START
=============================================================================

    from tinyhttpd import FileServer, ServerConfig

    server = FileServer(ServerConfig(root_directory="./public", port=8080))
    server.run()

Or from the shell:

    tinyhttpd -port 8080 -path ./public

=============================================================================
"""

from .version import __version__
from .config import ServerConfig
from .server import FileServer, create_app

__all__ = ["FileServer", "ServerConfig", "create_app", "__version__"]
