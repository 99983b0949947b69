"""Tests for main.py module."""

import threading
import time
import pytest
import sys
import os
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import main as main_module


def stop_immediately(cfg, channel, sink, state_mgr, shutdown_event):
    """Stand-in for start_workers that requests shutdown straight away."""
    shutdown_event.set()
    return []


class TestShutdownBehavior:

    def test_main_heartbeat_exits_within_one_second_of_shutdown(self):
        """
        The heartbeat loop must wake on the shutdown event rather than
        sleeping out its full interval.
        """
        shutdown_event = threading.Event()
        exited_at = []

        def heartbeat_loop():
            while not shutdown_event.wait(timeout=30):
                pass
            exited_at.append(time.time())

        t = threading.Thread(target=heartbeat_loop)
        t.start()
        time.sleep(0.1)

        set_at = time.time()
        shutdown_event.set()
        t.join(timeout=2)

        assert not t.is_alive()
        assert exited_at, "Heartbeat loop never exited"
        assert exited_at[0] - set_at < 1.0

    def test_stop_workers_warns_about_stuck_threads(self, caplog):
        release = threading.Event()
        t = threading.Thread(target=release.wait, name="stuck", daemon=True)
        t.start()

        with caplog.at_level("WARNING"):
            main_module.stop_workers([t], timeout=0.1)

        release.set()
        assert "Thread stuck did not stop within timeout" in caplog.text


class TestRunWithRestart:

    def test_restarts_after_exception(self):
        shutdown_event = threading.Event()
        calls = []

        def flaky(event):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first run fails")
            event.set()

        main_module.run_with_restart(flaky, shutdown_event, "flaky", 0.01, shutdown_event)

        assert len(calls) == 2

    def test_shutdown_during_restart_delay_stops_loop(self):
        shutdown_event = threading.Event()
        calls = []

        def always_fails(event):
            calls.append(1)
            event.set()
            raise RuntimeError("boom")

        main_module.run_with_restart(always_fails, shutdown_event, "fails", 30, shutdown_event)

        assert len(calls) == 1

    def test_returns_immediately_when_already_shut_down(self):
        shutdown_event = threading.Event()
        shutdown_event.set()
        calls = []

        main_module.run_with_restart(calls.append, shutdown_event, "noop", 0, shutdown_event)

        assert calls == []


class TestMainExitCodes:

    def test_invalid_config_returns_1(self, tmp_path, capsys):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("monitoring:\n  channel_size: 0\n")

        result = main_module.main(["--config", str(config_file)])

        assert result == 1
        assert "ERROR: Invalid configuration" in capsys.readouterr().err

    def test_missing_config_file_returns_1(self, tmp_path):
        assert main_module.main(["--config", str(tmp_path / "missing.yaml")]) == 1

    def test_config_path_is_a_directory_returns_1(self, tmp_path, capsys):
        result = main_module.main(["--config", str(tmp_path)])

        assert result == 1
        assert "ERROR: Invalid configuration" in capsys.readouterr().err

    def test_invalid_port_override_returns_1(self):
        assert main_module.main(["--port", "0"]) == 1

    def test_bind_failure_is_fatal(self):
        with patch(
            "main.metrics.start_metrics_server", side_effect=OSError("address in use")
        ), patch("main.start_workers") as start_workers:
            result = main_module.main(["--port", "9999"])

        assert result == 1
        start_workers.assert_not_called()

    def test_clean_shutdown_returns_0(self, tmp_path):
        config_file = tmp_path / "ok.yaml"
        config_file.write_text("exporter:\n  port: 9100\n")

        with patch("main.signal.signal"), \
             patch("main.metrics.start_metrics_server") as start_server, \
             patch("main.start_workers", side_effect=stop_immediately):
            result = main_module.main(["--config", str(config_file), "--port", "9200"])

        assert result == 0
        assert start_server.call_args[0][0] == 9200

    def test_defaults_used_without_config(self):
        with patch("main.signal.signal"), \
             patch("main.metrics.start_metrics_server") as start_server, \
             patch("main.start_workers", side_effect=stop_immediately) as start_workers:
            result = main_module.main([])

        assert result == 0
        assert start_server.call_args[0][0] == 1234
        cfg = start_workers.call_args[0][0]
        assert cfg.paths.log_dirs == ["/var/log", "/var/log/containers"]
        assert cfg.monitoring.channel_size == 100000
