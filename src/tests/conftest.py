"""Pytest configuration and shared fixtures."""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from prometheus_client import CollectorRegistry

from config import Config, MonitoringConfig, PathsConfig


class RecordingSink:
    """Fake GaugeSink that records every call and keeps current values."""

    def __init__(self):
        self.calls = []
        self.values = {}

    def set(self, name, labels, value):
        key = (name, tuple(sorted(labels.items())))
        self.calls.append(("set", name, dict(labels), value))
        self.values[key] = value

    def add(self, name, labels, delta):
        key = (name, tuple(sorted(labels.items())))
        self.calls.append(("add", name, dict(labels), delta))
        self.values[key] = self.values.get(key, 0) + delta

    def value(self, name, log_name):
        return self.values.get((name, (("log_name", log_name),)))


@pytest.fixture
def registry():
    """Provide an isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def log_layout(tmp_path):
    """Provide a tmp layout with two log dirs and a position dir."""
    log_dir = tmp_path / "log"
    containers_dir = log_dir / "containers"
    pos_dir = tmp_path / "pos"
    containers_dir.mkdir(parents=True)
    pos_dir.mkdir()
    return {
        "log_dir": log_dir,
        "containers_dir": containers_dir,
        "pos_dir": pos_dir,
    }


@pytest.fixture
def layout_config(log_layout):
    """Config pointing at the tmp layout with a short probe interval."""
    return Config(
        monitoring=MonitoringConfig(
            probe_interval_seconds=0.05, channel_size=1000, restart_delay_seconds=0.1
        ),
        paths=PathsConfig(
            log_dirs=[str(log_layout["log_dir"]), str(log_layout["containers_dir"])],
            position_dir=str(log_layout["pos_dir"]),
        ),
    )
