"""
=============================================================================
TINYHTTPD CLI ENTRY POINT
=============================================================================

=============================================================================
USAGE
=============================================================================

    # Serve the current directory on port 8080
    python -m tinyhttpd -port 8080

    # Serve another directory
    python -m tinyhttpd -port 8080 -path /srv/www

    # HTTPS (certificate PEM may include the key)
    python -m tinyhttpd -port 8443 -ssl server.pem
    python -m tinyhttpd -port 8443 -ssl cert.pem -key key.pem

    # Raw request/response dumps
    python -m tinyhttpd -port 8080 -d

Options keep the single-dash long form (-port, -path, -ssl) that tinyhttpd
has always used.

=============================================================================
EXIT CODES
=============================================================================

    0   -h/--help, -v/--version, or a clean shutdown
    1   missing/invalid arguments, invalid configuration, or a fatal
        socket/TLS error (bind, listen, accept, certificate)

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from .config import ServerConfig
from .server import FileServer
from .version import __version__


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad usage; tinyhttpd exits with 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be 1-65535, got {port}")
    return port


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="tinyhttpd",
        description="A minimal threaded HTTP/1.x file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        epilog="""
Examples:
  tinyhttpd -port 8080                        # Serve the current directory
  tinyhttpd -port 8080 -path /srv/www         # Serve /srv/www
  tinyhttpd -port 8443 -ssl server.pem        # HTTPS
  tinyhttpd -port 8080 -d                     # Debug dumps
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-port",
        type=_port,
        required=True,
        help="Port to listen on (required)"
    )

    parser.add_argument(
        "-host",
        default="0.0.0.0",
        help="Address to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "-max-connections",
        dest="max_connections",
        type=_positive_int,
        default=None,
        help="Limit concurrent connections (default: unlimited)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT & TLS ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-path",
        default=".",
        help="Directory to serve (default: .)"
    )

    parser.add_argument(
        "-ssl",
        metavar="CERT_PATH",
        default=None,
        help="Enable HTTPS with this PEM certificate"
    )

    parser.add_argument(
        "-key",
        metavar="KEY_PATH",
        default=None,
        help="PEM private key, if not bundled with the certificate"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Log raw requests and responses"
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"tinyhttpd v{__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        root_directory=args.path,
        port=args.port,
        host=args.host,
        tls_cert_path=args.ssl,
        tls_key_path=args.key,
        max_connections=args.max_connections,
        debug=args.debug,
    )


def main(argv: Optional[List[str]] = None):
    """Parse arguments, build the server and run it until shutdown."""
    args = build_parser().parse_args(argv)

    try:
        server = FileServer(config_from_args(args))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
