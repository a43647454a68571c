"""gRPC server lifecycle"""

import signal
import threading
from concurrent import futures
from enum import Enum
from pathlib import Path
from typing import Optional

import grpc

from .config import Config, ServerConfig, load_config
from .errors import ServerStartError
from .observability import Telemetry, get_logger, setup_logging
from .protocol import add_greeter_servicer_to_server
from .service import GreeterServicer

logger = get_logger(__name__)

# Extra time allowed for grpc to cancel calls still running after the grace period
STOP_MARGIN_SECONDS = 5.0


class ServerState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class GreeterServer:
    """Manages startup and shutdown of the Greeter gRPC server"""

    def __init__(self, servicer: GreeterServicer, config: Optional[ServerConfig] = None):
        self.servicer = servicer
        self.config = config or ServerConfig()
        self.port: Optional[int] = None

        self._server: Optional[grpc.Server] = None
        self._state = ServerState.STOPPED
        self._lock = threading.Lock()

    @property
    def state(self) -> ServerState:
        """Get current server state"""
        with self._lock:
            return self._state

    def _set_state(self, state: ServerState) -> None:
        with self._lock:
            self._state = state

    def start(self) -> int:
        """Bind the listener and start serving; returns the bound port"""
        with self._lock:
            if self._state != ServerState.STOPPED:
                raise ServerStartError(f"Server cannot start while {self._state.value}")
            self._state = ServerState.STARTING

        server = grpc.server(
            futures.ThreadPoolExecutor(max_workers=self.config.max_workers),
            # A port already in use must fail the bind instead of being shared
            options=[("grpc.so_reuseport", 0)],
        )
        add_greeter_servicer_to_server(self.servicer, server)

        address = self.config.address
        try:
            port = server.add_insecure_port(address)
        except RuntimeError as e:
            self._set_state(ServerState.STOPPED)
            raise ServerStartError(f"Failed to bind to {address}") from e

        if port == 0:
            self._set_state(ServerState.STOPPED)
            raise ServerStartError(f"Failed to bind to {address}")

        try:
            server.start()
        except Exception:
            self._set_state(ServerState.STOPPED)
            raise

        with self._lock:
            self._server = server
            self.port = port
            self._state = ServerState.RUNNING

        logger.info(f"Server started, listening on {port}")
        return port

    def stop(self, grace: Optional[float] = None) -> None:
        """Stop accepting calls and wait up to ``grace`` seconds for in-flight ones

        Best-effort: errors or interrupts while waiting are logged, not raised.
        """
        with self._lock:
            if self._state != ServerState.RUNNING:
                return
            self._state = ServerState.STOPPING
            server = self._server

        if grace is None:
            grace = self.config.grace_period

        logger.info("*** shutting down gRPC server since process is shutting down")
        try:
            stopped = server.stop(grace)
            if not stopped.wait(grace + STOP_MARGIN_SECONDS):
                logger.warning(f"Server did not terminate within {grace}s grace period")
        except (Exception, KeyboardInterrupt):
            logger.exception("Interrupted while waiting for server termination")
        finally:
            self._set_state(ServerState.STOPPED)

        logger.info("*** server shut down")

    def block_until_shutdown(self) -> None:
        """Await termination on the calling thread; grpc serves on its own pool"""
        if self._server is not None:
            self._server.wait_for_termination()

    def install_signal_handlers(self) -> None:
        """Stop the server on SIGINT/SIGTERM (main thread only)"""

        def handle_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}")
            self.stop()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)


def serve(config: Optional[Config] = None) -> None:
    """Run the server until a termination signal

    Shutdown order: stop accepting calls, drain in-flight calls within the
    grace period, then flush and shut down the telemetry exporters.
    """
    config = config or Config()

    with Telemetry.from_config(config) as telemetry:
        telemetry.install_global()

        server = GreeterServer(GreeterServicer(telemetry), config.server)
        server.start()
        server.install_signal_handlers()
        logger.info("Serving until SIGINT or SIGTERM")
        try:
            server.block_until_shutdown()
        finally:
            server.stop()


def main(config_path: Optional[Path] = None) -> None:
    """Run the server from the command line"""
    config = load_config(config_path)
    setup_logging(
        level=config.logging.level,
        json_output=config.logging.json_output,
        log_file=config.logging.log_file,
    )
    serve(config)


if __name__ == "__main__":
    main()
