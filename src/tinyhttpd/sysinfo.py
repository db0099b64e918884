"""
Host description for the directory listing footer.

    tinyhttpd/0.8.2 on Debian GNU/Linux 12 (bookworm) Serving port 8080
                       ─────────────┬──────────────
                                    └── get_os_description()
"""

import functools
import platform


@functools.lru_cache(maxsize=None)
def get_os_description() -> str:
    """
    Return a human-readable name of the host OS.

    Uses PRETTY_NAME from os-release on Linux; hosts without an os-release
    file (macOS, BSD, containers built from scratch) fall back to
    "<system> <release>".
    """
    try:
        pretty_name = platform.freedesktop_os_release().get("PRETTY_NAME", "")
    except OSError:
        pretty_name = ""

    if pretty_name:
        return pretty_name.replace('"', "")
    return f"{platform.system()} {platform.release()}".strip()
