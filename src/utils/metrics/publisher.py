"""
Prometheus endpoint for a running dump.

The endpoint lives for the duration of one command and is shut down
afterwards.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, REGISTRY, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Serves a registry on ``http://<addr>:<port>/metrics``

    Usable as a context manager::

        with MetricsPublisher(port=9091):
            run_dump()
    """

    def __init__(
        self,
        port: int = 9091,
        addr: str = "0.0.0.0",
        registry: Optional[CollectorRegistry] = None,
    ):
        self.port = port
        self.addr = addr
        self.registry = registry or REGISTRY
        self._server = None
        self._thread = None

    def start(self) -> None:
        """
        Start serving in a daemon thread

        Raises:
            RuntimeError: If the port cannot be bound
        """
        if self._server is not None:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            self._server, self._thread = start_http_server(
                self.port, addr=self.addr, registry=self.registry
            )
        except OSError as e:
            raise RuntimeError(
                f"Metrics server cannot listen on port {self.port}: {e}. "
                f"Stop the conflicting process or use a different --metrics-port."
            ) from e

        logger.info(f"Metrics available at http://{self.addr}:{self.port}/metrics")

    def stop(self) -> None:
        if self._server is None:
            return

        self._server.shutdown()
        self._server.server_close()
        self._server = None
        self._thread = None
        logger.debug(f"Metrics server on port {self.port} stopped")

    def is_started(self) -> bool:
        return self._server is not None

    def __enter__(self) -> "MetricsPublisher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
