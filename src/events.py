"""Change events and the bounded channel that carries them.

Both samplers publish into a single EventChannel; the aggregator is its
only consumer.
"""

import enum
import queue
import threading
from dataclasses import dataclass
from typing import Optional


# Slice used when blocking on a full or empty channel, so that a pending
# publish/receive notices shutdown promptly.
_WAIT_SLICE_SECONDS = 0.5


class EventKind(enum.Enum):
    """Which sampler produced an event."""
    SIZE_OBSERVED = "size_observed"
    POSITION_OBSERVED = "position_observed"


@dataclass(frozen=True)
class ChangeEvent:
    """A single observed fact about a log file.

    Attributes:
        file_name: Absolute path of the log source
        observed_size: Byte count (file size or shipper offset)
        kind: Producer of the event
    """
    file_name: str
    observed_size: int
    kind: EventKind

    def __post_init__(self) -> None:
        if self.observed_size < 0:
            raise ValueError(
                f"observed_size must be >= 0, got {self.observed_size} for {self.file_name}"
            )


class EventChannel:
    """Bounded FIFO conduit between the samplers and the aggregator.

    Producers block while the channel is full; events are never dropped
    because of capacity.
    """

    def __init__(self, capacity: int) -> None:
        """Initialize the channel.

        Args:
            capacity: Maximum number of buffered events (>= 1)
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._queue: "queue.Queue[ChangeEvent]" = queue.Queue(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def publish(
        self, event: ChangeEvent, shutdown_event: Optional[threading.Event] = None
    ) -> bool:
        """Push an event, blocking while the channel is full.

        Args:
            event: The event to publish
            shutdown_event: Optional event; once set, a blocked publish gives up

        Returns:
            True if the event was enqueued, False if shutdown interrupted the wait
        """
        while True:
            if shutdown_event is not None and shutdown_event.is_set():
                return False
            try:
                self._queue.put(event, timeout=_WAIT_SLICE_SECONDS)
                return True
            except queue.Full:
                continue

    def receive(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Pop the next event.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            The next event, or None if the timeout elapsed first
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def qsize(self) -> int:
        return self._queue.qsize()
