"""
=============================================================================
CONNECTION DISPATCHER (TCP SOCKET SERVER)
=============================================================================

Owns the listening socket and the accept loop, and starts one worker
thread per accepted connection.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────┐  socket()      ┌───────┐  listen(3)  ┌───────────┐
    │ Unbound │ ─ setsockopt ─►│ Bound │ ──────────► │ Listening │
    └─────────┘    bind()      └───────┘             └─────┬─────┘
         │                         │                        │
    BindError                 ListenError                   ▼
    (fatal)                   (fatal)              ┌──────────────────┐
                                                   │ Accepting (loop) │◄─┐
                                                   └────────┬─────────┘  │
                                                            │            │
                        ┌───────────────────────────────────┤            │
                        │                                   │            │
                  shutdown event                     accept() returns    │
                        │                                   │            │
                        ▼                          [TLS handshake]       │
                  ┌──────────┐                              │            │
                  │ Stopped  │                     spawn worker thread ──┘
                  └──────────┘
          join workers (grace period),
          close listening socket

Any accept() error other than the polling timeout ends the loop with
AcceptError; the server does not try to recover.

=============================================================================
THREAD PER CONNECTION
=============================================================================

    accept loop (1 thread)
        │
        ├──► Thread: worker for conn A  ─► read ─► resolve ─► send ─► close
        ├──► Thread: worker for conn B  ─► read ─► resolve ─► send ─► close
        └──► Thread: worker for conn C  ...

The accept loop never waits for a worker. Workers share nothing but the
read-only ServerConfig, so no locks are needed. There is no pool and, by
default, no limit: N concurrent clients means N threads. Setting
ServerConfig.max_connections makes the loop wait for a free slot before
starting another worker.

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

A plain accept() blocks forever, so a shutdown request could not be noticed
until the next client arrives. The listening socket gets a short timeout
instead:

    while not shutting down:
        try:
            accept()          # returns within accept_poll_interval
        except timeout:
            continue          # re-check the shutdown event

=============================================================================
"""

import socket
import signal
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection
from .tls import TLSHandshakeError, create_server_context, handshake


logger = logging.getLogger(__name__)


class ServerSocketError(OSError):
    """Base class for fatal listening-socket errors."""


class BindError(ServerSocketError):
    """Socket creation, SO_REUSEADDR or bind() failed."""


class ListenError(ServerSocketError):
    """listen() failed."""


class AcceptError(ServerSocketError):
    """accept() failed while the server was running."""


class SocketServer:
    """
    Low-level TCP server: bind, listen, accept, dispatch.

    Usage:
        def handle_connection(conn: Connection):
            ...  # runs in its own thread

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (port, backlog, TLS, limits).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._tls_context = None
        self._running = False

        # Set by shutdown(); the accept loop checks it every poll interval.
        self._shutdown_event = threading.Event()
        # Set once the listening socket is bound, for callers waiting on startup.
        self._ready_event = threading.Event()
        # Set once start() has fully cleaned up.
        self._stopped_event = threading.Event()

        self._workers: List[threading.Thread] = []
        self._slots: Optional[threading.BoundedSemaphore] = None
        if config.max_connections is not None:
            self._slots = threading.BoundedSemaphore(config.max_connections)

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is accepting connections."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (ip, port); the configured one before start()."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    @property
    def active_workers(self) -> int:
        """Number of worker threads still running."""
        return sum(1 for t in self._workers if t.is_alive())

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until start() has returned. Returns False on timeout."""
        return self._stopped_event.wait(timeout)

    # =========================================================================
    # SOCKET SETUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        """
        Create, configure and bind the listening socket.

        SO_REUSEADDR: restart immediately instead of waiting out TIME_WAIT.
        TCP_NODELAY: the listing is written in two sends; don't let Nagle
                     hold the second one back.

        Raises:
            BindError: On any failure. No retry.
        """
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise BindError(f"Failed to initialize socket: {e}") from e

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            raise BindError(f"Failed to bind to {self.config.host}:{self.config.port}: {e}") from e

        return sock

    def _listen(self):
        """
        Start listening with the configured backlog.

        Raises:
            ListenError: listen() failed; the socket is closed.
        """
        try:
            self._socket.listen(self.config.backlog)
        except OSError as e:
            self._socket.close()
            self._socket = None
            raise ListenError(f"Listener failed: {e}") from e

    def _setup_signals(self):
        """
        Route SIGINT/SIGTERM to shutdown().

        Python only allows signal handlers on the main thread; a server
        started from another thread (tests, embedding) is stopped by
        calling shutdown() directly.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}")
            logger.info("Exiting.")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop until shutdown().

        Args:
            connection_handler: Called with each Connection on a fresh
                worker thread. Exceptions it raises are logged and
                contained in that thread.

        Raises:
            TLSSetupError: The certificate could not be loaded.
            BindError, ListenError, AcceptError: Fatal socket errors.
        """
        self._shutdown_event.clear()
        self._stopped_event.clear()

        try:
            if self.config.tls_enabled:
                logger.info("Enabling SSL support.")
                self._tls_context = create_server_context(
                    self.config.tls_cert_path, self.config.tls_key_path
                )
            self._socket = self._create_socket()
            self._listen()
        except OSError:
            self._stopped_event.set()
            raise

        self._socket.settimeout(self.config.accept_poll_interval)
        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections one at a time and hand each to a new thread.

        Raises:
            AcceptError: If accept() fails while the server is running.
        """
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Poll tick: re-check the shutdown event
            except OSError as e:
                if self._shutdown_event.is_set():
                    break
                raise AcceptError(f"Client socket accept failed: {e}") from e

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            if self._tls_context is not None:
                try:
                    client_socket = handshake(self._tls_context, client_socket, self.config.timeout)
                except TLSHandshakeError as e:
                    logger.warning(f"TLS handshake with {client_address[0]} failed: {e}")
                    client_socket.close()
                    continue

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )

            if not self._acquire_slot():
                conn.close()  # Shutting down while waiting for a slot
                break

            self._spawn_worker(conn, connection_handler)

    def _acquire_slot(self) -> bool:
        """
        Wait for room under max_connections (no-op when unbounded).

        Returns:
            False if shutdown began while waiting.
        """
        if self._slots is None:
            return True
        while not self._shutdown_event.is_set():
            if self._slots.acquire(timeout=self.config.accept_poll_interval):
                return True
        return False

    def _spawn_worker(self, conn: Connection, connection_handler: Callable[[Connection], None]):
        # Forget finished threads so the list doesn't grow with total traffic.
        self._workers = [t for t in self._workers if t.is_alive()]

        thread = threading.Thread(
            target=self._run_worker,
            args=(conn, connection_handler),
            name=f"tinyhttpd-worker-{conn.id}",
            daemon=True,
        )
        self._workers.append(thread)
        thread.start()

    def _run_worker(self, conn: Connection, connection_handler: Callable[[Connection], None]):
        """Worker thread body. Nothing escapes to the accept loop."""
        try:
            connection_handler(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Worker error: {e}")
        finally:
            conn.close()
            if self._slots is not None:
                self._slots.release()

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call from any thread or a signal handler, and more than
        once. Returns immediately; use wait_for_shutdown() to block.
        """
        if not self._shutdown_event.is_set():
            logger.info("Shutting down socket server...")
        self._shutdown_event.set()

    def _drain_workers(self):
        """Join in-flight workers, giving up after the grace period."""
        deadline = time.monotonic() + self.config.shutdown_grace_period
        for thread in self._workers:
            thread.join(max(0.0, deadline - time.monotonic()))

        still_running = self.active_workers
        if still_running:
            logger.warning(f"{still_running} worker(s) still running after grace period")

    def _cleanup(self):
        """Stop accepting, drain workers, then close the listening socket."""
        self._running = False
        self._restore_signals()
        self._drain_workers()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        self._stopped_event.set()
        logger.info("Socket server stopped")
