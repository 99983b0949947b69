"""Main entry point module.

Handles CLI arguments, thread lifecycle, signal handling, and clean shutdown.
"""

import argparse
import logging
import signal
import sys
import threading
import time
from typing import Any, List, Optional

import config as config_module
import metrics
import state_manager
from aggregator import DriftAggregator
from events import EventChannel
from sampler import FileSizeSampler, PositionSampler


logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 30
SHUTDOWN_JOIN_TIMEOUT_SECONDS = 10


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def run_with_restart(
    target_func: Any,
    shutdown_event: threading.Event,
    thread_name: str,
    restart_delay: float,
    *args: Any,
) -> None:
    """Run a function with automatic restart on exception.

    Catches any unhandled exception, logs it, waits restart_delay seconds
    (checking shutdown_event during wait), then restarts the function.

    Args:
        target_func: The function to run
        shutdown_event: Event to signal shutdown
        thread_name: Name of the thread for logging
        restart_delay: Seconds to wait before restarting
        *args: Arguments to pass to the function
    """
    while not shutdown_event.is_set():
        try:
            target_func(*args)
        except Exception:
            logger.exception(
                f"Unhandled exception in {thread_name}, waiting to restart..."
            )

            if shutdown_event.wait(timeout=restart_delay):
                break

            logger.info(f"Restarting {thread_name}...")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Log shipper drift monitor: exports actual, ingested and lost bytes per log file"
    )
    parser.add_argument(
        "--config", default=None, help="Path to configuration YAML file (defaults apply if omitted)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Port on which to export metrics (overrides config)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def start_workers(
    cfg: config_module.Config,
    channel: EventChannel,
    sink: metrics.GaugeSink,
    state_mgr: state_manager.StateManager,
    shutdown_event: threading.Event,
) -> List[threading.Thread]:
    """Create and start the sampler and aggregator threads.

    Args:
        cfg: Configuration object
        channel: Shared event channel
        sink: Gauge sink the aggregator writes into
        state_mgr: Shared StateManager
        shutdown_event: Cancellation signal for every worker

    Returns:
        The started threads
    """
    workers = [
        ("file_sampler", FileSizeSampler(cfg, channel, state_mgr)),
        ("position_sampler", PositionSampler(cfg, channel, state_mgr)),
        ("aggregator", DriftAggregator(channel, sink, state_mgr)),
    ]

    threads = []
    for name, worker in workers:
        thread = threading.Thread(
            target=run_with_restart,
            args=(
                worker.run,
                shutdown_event,
                name,
                cfg.monitoring.restart_delay_seconds,
                shutdown_event,
            ),
            name=name,
            daemon=True,
        )
        threads.append(thread)

    for thread in threads:
        thread.start()
        logger.info(f"Started {thread.name} thread")

    return threads


def stop_workers(threads: List[threading.Thread], timeout: float) -> None:
    """Join worker threads against a shared deadline."""
    deadline = time.time() + timeout
    for thread in threads:
        remaining = max(0, deadline - time.time())
        thread.join(timeout=remaining)
        if thread.is_alive():
            logger.warning(f"Thread {thread.name} did not stop within timeout")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for clean shutdown)
    """
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.debug else logging.INFO
    setup_logging(log_level)

    # Load configuration first
    try:
        if args.config is not None:
            cfg = config_module.load_config(args.config)
            logger.info(f"Configuration loaded from {args.config}")
        else:
            cfg = config_module.Config()
            logger.info("No configuration file given, using defaults")
    except config_module.ConfigError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.port is not None:
        if not 1 <= args.port <= 65535:
            print("ERROR: Invalid configuration: --port must be between 1 and 65535", file=sys.stderr)
            return 1
        cfg.exporter.port = args.port

    sink = metrics.PrometheusGaugeSink()

    # Failing to bind the scrape port is the only fatal runtime error
    try:
        metrics.start_metrics_server(cfg.exporter.port, sink.registry, cfg.exporter.address)
    except OSError as e:
        logger.error(f"Failed to start metrics server on port {cfg.exporter.port}: {e}")
        return 1

    channel = EventChannel(cfg.monitoring.channel_size)
    state_mgr = state_manager.StateManager()

    shutdown_event = threading.Event()

    def handle_signal(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, initiating shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    threads = start_workers(cfg, channel, sink, state_mgr, shutdown_event)

    # Main thread heartbeat
    try:
        while not shutdown_event.wait(timeout=HEARTBEAT_INTERVAL_SECONDS):
            last_runs = {
                name: state_mgr.get_thread_last_run(name)
                for name in state_manager.THREAD_NAMES
            }
            logger.debug(
                f"Heartbeat: last_run={last_runs}, "
                f"events={state_mgr.get_event_counts()}, "
                f"channel_depth={channel.qsize()}/{channel.capacity}"
            )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        shutdown_event.set()

    logger.info("Shutting down threads...")
    stop_workers(threads, SHUTDOWN_JOIN_TIMEOUT_SECONDS)

    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
