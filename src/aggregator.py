"""Aggregator thread module for drift detection.

Consumes change events from the channel, keeps per-file gauge state and
infers lost bytes from consecutive samples.

Loss inference:
    When a size sample shows the file grew relative to the previous size
    sample, the gap between the previous size and the previous shipper
    position is presumed unrecoverable and added to the lost-bytes
    accumulator. The rule fires on growth, not on shrink; see DESIGN.md.
"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import metrics
from events import ChangeEvent, EventChannel, EventKind


logger = logging.getLogger(__name__)

# How long a single receive waits before re-checking the shutdown event
RECEIVE_TIMEOUT_SECONDS = 0.5


@dataclass
class FileGauges:
    """Current gauge values for one log file.

    None means no observation of that kind has been seen yet.
    """
    actual_bytes: Optional[int] = None
    ingested_bytes: Optional[int] = None
    lost_bytes: int = 0


class DriftAggregator:
    """Single consumer that turns change events into gauge updates.

    Gauge state is owned by the thread calling apply()/run(); nothing
    else mutates it, so no lock is taken.
    """

    def __init__(
        self,
        channel: EventChannel,
        sink: metrics.GaugeSink,
        state_manager: Any = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            channel: Channel to drain
            sink: Gauge sink receiving set/add updates
            state_manager: Optional StateManager for heartbeat bookkeeping
        """
        self._channel = channel
        self._sink = sink
        self._state_manager = state_manager
        self._files: Dict[str, FileGauges] = {}

    def run(self, shutdown_event: Any) -> None:
        """Drain the channel until shutdown.

        Args:
            shutdown_event: Threading event to signal shutdown
        """
        while not shutdown_event.is_set():
            event = self._channel.receive(timeout=RECEIVE_TIMEOUT_SECONDS)
            if event is None:
                continue

            try:
                self.apply(event)
            except Exception:
                logger.exception(f"Error applying event {event}")
                continue

            if self._state_manager is not None:
                self._state_manager.add_event_count("aggregator", 1)
                self._state_manager.update_thread_last_run("aggregator", time.time())

    def apply(self, event: ChangeEvent) -> None:
        """Apply one event to the gauge state and the sink.

        Args:
            event: The event to apply
        """
        gauges = self._files.get(event.file_name)
        if gauges is None:
            gauges = FileGauges()
            self._files[event.file_name] = gauges
            logger.debug(f"Tracking new log file {event.file_name}")
            self._sink.set(metrics.LOST_BYTES, self._labels(event.file_name), 0)

        prev_actual = gauges.actual_bytes
        prev_ingested = gauges.ingested_bytes
        labels = self._labels(event.file_name)

        if event.kind == EventKind.POSITION_OBSERVED:
            gauges.ingested_bytes = event.observed_size
            self._sink.set(metrics.INGESTED_BYTES, labels, event.observed_size)

        elif event.kind == EventKind.SIZE_OBSERVED:
            gauges.actual_bytes = event.observed_size
            self._sink.set(metrics.ACTUAL_BYTES, labels, event.observed_size)

            if (
                prev_actual is not None
                and prev_ingested is not None
                and prev_actual < event.observed_size
            ):
                delta = max(0, prev_actual - prev_ingested)
                if delta > 0:
                    gauges.lost_bytes += delta
                    self._sink.add(metrics.LOST_BYTES, labels, delta)
                    logger.debug(
                        f"Presumed {delta} bytes lost for {event.file_name} "
                        f"(total {gauges.lost_bytes})"
                    )

    def get_file_gauges(self, file_name: str) -> Optional[FileGauges]:
        """Get a snapshot of one file's gauges, or None if never observed."""
        gauges = self._files.get(file_name)
        return copy.copy(gauges) if gauges is not None else None

    def get_all_file_gauges(self) -> Dict[str, FileGauges]:
        """Get a snapshot copy of all tracked files' gauges."""
        return copy.deepcopy(self._files)

    @staticmethod
    def _labels(file_name: str) -> Dict[str, str]:
        return {metrics.LOG_NAME_LABEL: file_name}
