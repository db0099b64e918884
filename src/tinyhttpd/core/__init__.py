"""
Core networking: the listening socket, per-connection wrappers and TLS.
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer, ServerSocketError, BindError, ListenError, AcceptError
from .tls import TLSSetupError, TLSHandshakeError, create_server_context, handshake

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ServerSocketError",
    "BindError",
    "ListenError",
    "AcceptError",
    "TLSSetupError",
    "TLSHandshakeError",
    "create_server_context",
    "handshake",
]
