"""
=============================================================================
FILE SERVER
=============================================================================

Ties the pieces together: one SocketServer accepting connections, and for
each connection the parse → resolve → respond → log pipeline.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   FileServer    │                          │
    │                        │ (Orchestrator)  │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │RequestParser │    │StaticFile-   │        │
    │    │ (accept,     │    │ (one read →  │    │Handler       │        │
    │    │  threads)    │    │ ParsedRequest│    │ (resolve,    │        │
    │    └──────┬───────┘    └──────────────┘    │  respond)    │        │
    │           │                                └──────────────┘        │
    │           ▼                                                         │
    │    ┌──────────────┐                        ┌──────────────┐        │
    │    │  Connection  │                        │  AccessLog   │        │
    │    └──────────────┘                        └──────────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST FLOW (one per connection)
=============================================================================

    1. SocketServer accepts (and TLS-handshakes) the client
    2. A worker thread calls _process_connection(conn)
    3. conn.read_once()                   → up to buffer_size bytes
    4. RequestParser.parse()              → ParsedRequest
          malformed? close, no response, no access line
    5. StaticFileHandler.handle()         → HandlerResult
    6. AccessLog.log_request()            → one access line
    7. send each response segment         (1 for files, 2 for listings)
    8. close the connection

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .access_log import AccessLog
from .config import ServerConfig
from .core.connection import Connection
from .core.socket_server import SocketServer
from .handlers.static import StaticFileHandler
from .http.request import MalformedRequest, RequestParser


logger = logging.getLogger(__name__)


class FileServer:
    """
    The tinyhttpd server.

    Usage:
        server = FileServer(ServerConfig(root_directory="./public", port=8080))
        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()

    From another thread (tests, embedding):
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Validated here, so a bad config
                fails before any socket is created.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(buffer_size=self.config.buffer_size)
        self._handler = StaticFileHandler(
            root_directory=self.config.root_directory,
            port=self.config.port,
            server_name=self.config.server_name,
        )
        self._access_log = AccessLog(debug=self.config.debug)

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            TLSSetupError, BindError, ListenError, AcceptError: Fatal
                startup or accept-loop errors.
        """
        self._setup_logging()

        logger.info(f"Starting {self.config.server_name} server on port {self.config.port}")
        logger.debug(f"Serving {self.config.root_directory}")

        try:
            self._socket_server.start(self._process_connection)
        except KeyboardInterrupt:
            logger.info("Exiting.")
        finally:
            self.shutdown()

    def shutdown(self):
        """Stop accepting; start() drains workers and closes the socket."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = logging.DEBUG if self.config.debug else logging.INFO

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("tinyhttpd").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _process_connection(self, conn: Connection):
        """
        Serve the single request on ``conn``. Runs on a worker thread.

        The connection is always closed on the way out, including after a
        malformed request (which gets no response at all).
        """
        with conn:
            data = conn.read_once()

            try:
                request = self._parser.parse(data, client_ip=conn.client_ip)
            except MalformedRequest as e:
                logger.debug(f"[{conn.id}] Dropping malformed request from {conn.client_ip}: {e}")
                return

            result = self._handler.handle(request)
            self._access_log.log_request(request, result.log_status)

            for segment in result.response.segments():
                if not conn.send(segment):
                    break

            if self._access_log.debug:
                self._access_log.log_response(result.response.to_bytes())


def create_app(config: Optional[ServerConfig] = None) -> FileServer:
    """
    Create a FileServer.

    Example:
        app = create_app(ServerConfig(root_directory="./site", port=3000))
        app.run()
    """
    return FileServer(config)
