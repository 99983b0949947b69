"""Gauge sink and scrape endpoint module.

The aggregator only talks to a GaugeSink; PrometheusGaugeSink is the
production implementation backed by prometheus_client gauges that are
served to an external collector over HTTP.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from prometheus_client import CollectorRegistry, Gauge, start_http_server


logger = logging.getLogger(__name__)

ACTUAL_BYTES = "log_file_actual_bytes"
INGESTED_BYTES = "log_file_ingested_bytes"
LOST_BYTES = "log_file_lost_bytes"

LOG_NAME_LABEL = "log_name"

_GAUGE_HELP = {
    ACTUAL_BYTES: "Actual size of log files",
    INGESTED_BYTES: "Number of bytes ingested by the log shipper",
    LOST_BYTES: "Number of bytes lost by the log shipper",
}


class GaugeSink:
    """Interface for anything that receives gauge updates."""

    def set(self, name: str, labels: Mapping[str, str], value: float) -> None:
        raise NotImplementedError

    def add(self, name: str, labels: Mapping[str, str], delta: float) -> None:
        raise NotImplementedError


class PrometheusGaugeSink(GaugeSink):
    """GaugeSink that writes into prometheus_client gauges.

    The three gauge families are registered on the given registry (a fresh
    one is created when none is passed) and labelled by log file name.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        """Initialize the sink and register gauge families.

        Args:
            registry: Registry to register gauges on
        """
        self._registry = registry if registry is not None else CollectorRegistry()
        self._gauges: Dict[str, Gauge] = {
            name: Gauge(name, help_text, [LOG_NAME_LABEL], registry=self._registry)
            for name, help_text in _GAUGE_HELP.items()
        }

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def set(self, name: str, labels: Mapping[str, str], value: float) -> None:
        self._gauges[name].labels(**labels).set(value)

    def add(self, name: str, labels: Mapping[str, str], delta: float) -> None:
        self._gauges[name].labels(**labels).inc(delta)


def start_metrics_server(port: int, registry: CollectorRegistry, addr: str = "") -> Any:
    """Serve the registry on /metrics in the Prometheus text format.

    The server runs in its own daemon thread.

    Args:
        port: TCP port to listen on
        registry: Registry whose metrics are exposed
        addr: Bind address, empty for all interfaces

    Returns:
        Whatever prometheus_client.start_http_server returns (server handle
        on current releases)

    Raises:
        OSError: If the port cannot be bound
    """
    server = start_http_server(port, addr=addr or "0.0.0.0", registry=registry)
    logger.info(f"Serving metrics on {addr or '0.0.0.0'}:{port}/metrics")
    return server
