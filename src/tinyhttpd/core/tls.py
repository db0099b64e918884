"""
=============================================================================
TLS SUPPORT
=============================================================================

When ServerConfig.tls_cert_path is set, every accepted connection goes
through a TLS handshake before a worker ever sees it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   startup:   create_server_context(cert, key)                        │
    │                 └── bad cert/key? TLSSetupError → server won't start │
    │                                                                      │
    │   per accept:  handshake(context, client_socket)                     │
    │                 ├── ok     → SSLSocket handed to a worker            │
    │                 └── failed → TLSHandshakeError: logged, socket       │
    │                              closed, server keeps accepting          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The handshake runs in the accept loop and blocks it (bounded by the
connection timeout when one is configured).

The certificate file may contain the private key too; in that case no
separate key path is needed.

=============================================================================
"""

import socket
import ssl
from typing import Optional


class TLSSetupError(OSError):
    """The certificate or key could not be loaded. Fatal at startup."""


class TLSHandshakeError(Exception):
    """A client failed the handshake. Affects that connection only."""


def create_server_context(cert_path: str, key_path: Optional[str] = None) -> ssl.SSLContext:
    """
    Build the server-side SSLContext.

    Args:
        cert_path: PEM certificate chain (optionally with the key).
        key_path: PEM private key, if not in cert_path.

    Returns:
        Context ready for wrap_socket(server_side=True).

    Raises:
        TLSSetupError: If the files are missing or invalid.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    try:
        context.load_cert_chain(certfile=cert_path, keyfile=key_path)
    except (OSError, ssl.SSLError) as e:
        raise TLSSetupError(f"Cannot load TLS certificate {cert_path}: {e}") from e
    return context


def handshake(
    context: ssl.SSLContext,
    client_socket: socket.socket,
    timeout: Optional[float] = None,
) -> ssl.SSLSocket:
    """
    Perform the server side of the TLS handshake on an accepted socket.

    Args:
        context: Server context from create_server_context().
        client_socket: Freshly accepted plain socket.
        timeout: Handshake timeout; None blocks.

    Returns:
        The wrapped socket.

    Raises:
        TLSHandshakeError: If the handshake fails or times out. The plain
            socket is left for the caller to close.
    """
    client_socket.settimeout(timeout)
    try:
        tls_socket = context.wrap_socket(
            client_socket,
            server_side=True,
            do_handshake_on_connect=False,
        )
    except (OSError, ssl.SSLError) as e:
        raise TLSHandshakeError(str(e)) from e

    try:
        tls_socket.do_handshake()
    except (OSError, ssl.SSLError) as e:
        tls_socket.close()
        raise TLSHandshakeError(str(e)) from e

    return tls_socket
