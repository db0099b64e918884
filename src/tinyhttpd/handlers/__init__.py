"""
Request handlers: path resolution, file responses and directory listings.
"""

from .static import (
    StaticFileHandler,
    HandlerResult,
    resolve_target,
    ServeFile,
    ServeDirectoryListing,
    NotFound,
)
from .listing import render_directory_listing, parent_path, scan_directory

__all__ = [
    "StaticFileHandler",
    "HandlerResult",
    "resolve_target",
    "ServeFile",
    "ServeDirectoryListing",
    "NotFound",
    "render_directory_listing",
    "parent_path",
    "scan_directory",
]
