"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket (plain or TLS) with the three operations
the file server performs on it: one read, one or two writes, one close.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection lifecycle                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NEW ──► READING ──► WRITING ──► CLOSED                            │
    │             │            │           ▲                               │
    │          read_once()  send()         │                               │
    │             │            │           │                               │
    │             └── empty / malformed ───┘   (no response at all)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no keep-alive: after the response the connection is closed no
matter what, even if a send failed.

Both blocking points (the read and the send) block without a timeout
unless ServerConfig.timeout is set. A client that connects and stays
silent holds its worker thread until it disconnects.

=============================================================================
"""

import socket
import logging
import time
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)


# Limits on reading leftover client bytes during close().
DRAIN_TIMEOUT = 0.5
MAX_DRAIN_BYTES = 64 * 1024


class ConnectionState(Enum):
    """Where a connection is in its single request/response exchange."""
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    Represents one client connection.

    Attributes:
        socket: The client socket (ssl.SSLSocket when TLS is on).
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current connection state.
        buffer_size: Size of the single read.
        timeout: Socket timeout; None blocks forever.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW

    buffer_size: int = 4096
    timeout: Optional[float] = None

    def __post_init__(self):
        # settimeout(None) puts the socket in blocking mode
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    def read_once(self) -> bytes:
        """
        Perform the connection's single read.

        Whatever the first recv() returns is the whole request as far as
        the server is concerned; nothing is buffered or reassembled.

        Returns:
            The bytes read, or b"" if the client closed, reset or timed out.
        """
        self.state = ConnectionState.READING
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            logger.debug(f"[{self.id}] Read timed out")
            return b""
        except OSError as e:
            logger.debug(f"[{self.id}] Read failed: {e}")
            return b""

    def send(self, data: bytes) -> bool:
        """
        Send one response segment.

        Uses sendall() so a segment is never half-written on success.

        Returns:
            True if the data went out, False if the connection is gone.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self):
        """
        Close the connection.

        1. shutdown(SHUT_WR) sends FIN: the client sees end-of-response.
        2. Drain what the client sent beyond our single read, so the
           kernel doesn't answer the unread bytes with a RST that could
           destroy the response in flight. At most MAX_DRAIN_BYTES,
           for at most DRAIN_TIMEOUT seconds.
        3. close() releases the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < MAX_DRAIN_BYTES:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Includes socket.timeout; we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed")

    def __enter__(self):
        """
        Context manager entry.

            with conn:
                data = conn.read_once()
                conn.send(response)
            # closed here, whatever happened above
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
