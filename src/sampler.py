"""Sampler thread module for filesystem observation.

Two samplers run side by side, each in its own thread on the same probe
interval:

- FileSizeSampler stats every log file in the configured log directories
  and publishes its current size.
- PositionSampler reads the log shipper's position files and publishes,
  per source file, the byte offset the shipper has consumed.

Every observation becomes one ChangeEvent on the shared channel. I/O
failures are logged and skipped; they never stop a sampler.
"""

import logging
import os
import re
import stat
import time
from typing import Any, Callable, Iterable, List, Optional, Tuple

from config import Config
from events import ChangeEvent, EventChannel, EventKind


logger = logging.getLogger(__name__)

_HEX_OFFSET = re.compile(r"[0-9a-fA-F]+")


def probe_files(locations: Iterable[str], callback: Callable[[str], None]) -> None:
    """Call callback with the absolute path of every entry in each location.

    Only immediate entries are visited. A location that cannot be listed is
    logged and skipped; the remaining locations are still probed.

    Args:
        locations: Directories to list
        callback: Called once per directory entry with its joined path
    """
    for location in locations:
        try:
            names = sorted(os.listdir(location))
        except OSError as e:
            logger.warning(f"Failed to list files in '{location}': {e}")
            continue

        for name in names:
            callback(os.path.join(location, name))


def has_extension(path: str, extension: str) -> bool:
    return os.path.splitext(path)[1] == extension


def parse_position_line(line: str) -> Optional[Tuple[str, int]]:
    """Parse one line of a position file.

    A well-formed line is ``path<TAB>hex-offset<TAB>...`` with at least
    three fields; anything after the offset is ignored.

    Args:
        line: A single line, without the trailing newline

    Returns:
        (source_path, offset) or None if the line is malformed
    """
    chunks = line.split("\t")
    if len(chunks) < 3:
        return None

    offset_field = chunks[1].strip()
    if not _HEX_OFFSET.fullmatch(offset_field):
        return None

    return chunks[0], int(offset_field, 16)


class _PeriodicSampler:
    """Shared loop for samplers that run once per probe interval."""

    thread_name = "sampler"

    def __init__(
        self, config: Config, channel: EventChannel, state_manager: Any = None
    ) -> None:
        """Initialize the sampler.

        Args:
            config: Configuration object
            channel: Channel to publish events on
            state_manager: Optional StateManager for heartbeat bookkeeping
        """
        self._config = config
        self._channel = channel
        self._state_manager = state_manager
        self._shutdown_event: Any = None

    def run(self, shutdown_event: Any) -> None:
        """Run the sampler loop until shutdown.

        Args:
            shutdown_event: Threading event to signal shutdown
        """
        self._shutdown_event = shutdown_event
        interval = self._config.monitoring.probe_interval_seconds

        while not shutdown_event.is_set():
            cycle_start = time.time()

            try:
                published = self.sample_once()
                if self._state_manager is not None:
                    self._state_manager.add_event_count(self.thread_name, published)
                    self._state_manager.update_thread_last_run(
                        self.thread_name, cycle_start
                    )
            except Exception:
                logger.exception(f"Error during {self.thread_name} cycle")

            # Sleep for remainder of probe interval
            elapsed = time.time() - cycle_start
            sleep_time = interval - elapsed
            if sleep_time > 0:
                shutdown_event.wait(timeout=sleep_time)

    def sample_once(self) -> int:
        """Run one sampling pass.

        Returns:
            Number of events published
        """
        raise NotImplementedError

    def _stopping(self) -> bool:
        return self._shutdown_event is not None and self._shutdown_event.is_set()

    def _publish(self, event: ChangeEvent) -> bool:
        return self._channel.publish(event, self._shutdown_event)


class FileSizeSampler(_PeriodicSampler):
    """Publishes the current size of every log file."""

    thread_name = "file_sampler"

    def sample_once(self) -> int:
        paths = self._config.paths
        published: List[int] = [0]

        def observe(abs_path: str) -> None:
            if self._stopping():
                return
            if not has_extension(abs_path, paths.log_extension):
                return

            try:
                st = os.stat(abs_path)
            except OSError as e:
                logger.warning(f"Failed to stat file {abs_path}: {e}")
                return

            if not stat.S_ISREG(st.st_mode):
                return

            if self._publish(
                ChangeEvent(abs_path, st.st_size, EventKind.SIZE_OBSERVED)
            ):
                published[0] += 1

        probe_files(paths.log_dirs, observe)
        logger.debug(f"File sampler published {published[0]} size events")
        return published[0]


class PositionSampler(_PeriodicSampler):
    """Publishes the shipper's consumed offset for every tracked source file."""

    thread_name = "position_sampler"

    def sample_once(self) -> int:
        paths = self._config.paths
        published: List[int] = [0]

        def observe(abs_path: str) -> None:
            if self._stopping():
                return
            if not has_extension(abs_path, paths.position_extension):
                return

            try:
                with open(abs_path, "r", encoding="utf-8", errors="replace") as f:
                    contents = f.read()
            except OSError as e:
                logger.warning(f"Failed to read file {abs_path}: {e}")
                return

            for pos_line in contents.split("\n"):
                parsed = parse_position_line(pos_line)
                if parsed is None:
                    continue

                file_name, offset = parsed
                if not self._publish(
                    ChangeEvent(file_name, offset, EventKind.POSITION_OBSERVED)
                ):
                    # Shutdown interrupted the publish
                    return
                published[0] += 1

        probe_files([paths.position_dir], observe)
        logger.debug(f"Position sampler published {published[0]} position events")
        return published[0]
