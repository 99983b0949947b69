"""Tests for metrics.py module."""

import socket
import urllib.request

import pytest
from prometheus_client import CollectorRegistry

import metrics
from metrics import PrometheusGaugeSink


LABELS = {"log_name": "/var/log/app.log"}


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestPrometheusGaugeSink:

    def test_set_and_add(self, registry):
        sink = PrometheusGaugeSink(registry)

        sink.set(metrics.ACTUAL_BYTES, LABELS, 200)
        sink.set(metrics.INGESTED_BYTES, LABELS, 100)
        sink.set(metrics.LOST_BYTES, LABELS, 0)
        sink.add(metrics.LOST_BYTES, LABELS, 50)
        sink.add(metrics.LOST_BYTES, LABELS, 25)

        assert registry.get_sample_value("log_file_actual_bytes", LABELS) == 200
        assert registry.get_sample_value("log_file_ingested_bytes", LABELS) == 100
        assert registry.get_sample_value("log_file_lost_bytes", LABELS) == 75

    def test_all_three_families_are_registered(self, registry):
        PrometheusGaugeSink(registry)

        names = {family.name for family in registry.collect()}

        assert names == {
            "log_file_actual_bytes",
            "log_file_ingested_bytes",
            "log_file_lost_bytes",
        }

    def test_unknown_gauge_name_raises(self, registry):
        sink = PrometheusGaugeSink(registry)

        with pytest.raises(KeyError):
            sink.set("log_file_mystery_bytes", LABELS, 1)

    def test_default_registry_is_private(self):
        first = PrometheusGaugeSink()
        second = PrometheusGaugeSink()

        first.set(metrics.ACTUAL_BYTES, LABELS, 1)

        assert isinstance(first.registry, CollectorRegistry)
        assert second.registry.get_sample_value("log_file_actual_bytes", LABELS) is None


class TestMetricsServer:

    def test_scrape_endpoint_serves_gauges(self, registry):
        sink = PrometheusGaugeSink(registry)
        sink.set(metrics.ACTUAL_BYTES, LABELS, 42)
        port = free_port()

        metrics.start_metrics_server(port, registry, "127.0.0.1")
        body = urllib.request.urlopen(f"http://127.0.0.1:{port}/metrics", timeout=5).read().decode()

        assert 'log_file_actual_bytes{log_name="/var/log/app.log"} 42.0' in body
        assert "# TYPE log_file_lost_bytes gauge" in body

    def test_port_in_use_raises_os_error(self, registry):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 0))
            s.listen(1)
            port = s.getsockname()[1]

            with pytest.raises(OSError):
                metrics.start_metrics_server(port, registry, "127.0.0.1")
