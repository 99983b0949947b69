"""State manager module for thread-safe shared state.

Holds the small amount of bookkeeping that crosses thread boundaries:
when each worker last completed a cycle and how many events each
producer has published. Gauge state itself is not kept here; it belongs
to the aggregator thread alone.
"""

import copy
import threading
from typing import Any, Dict


THREAD_NAMES = ("file_sampler", "position_sampler", "aggregator")


class StateManager:
    """Thread-safe manager for shared in-memory state.

    All access to shared state is protected by an RLock.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._state: Dict[str, Any] = {
            "thread_last_run": {name: 0.0 for name in THREAD_NAMES},
            "event_counts": {name: 0 for name in THREAD_NAMES},
        }

    def update_thread_last_run(self, thread_name: str, timestamp: float) -> None:
        """Update the last run timestamp for a thread.

        Args:
            thread_name: Name of the thread
            timestamp: Unix timestamp
        """
        with self._lock:
            self._state["thread_last_run"][thread_name] = timestamp

    def get_thread_last_run(self, thread_name: str) -> float:
        """Get the last run timestamp for a thread.

        Args:
            thread_name: Name of the thread

        Returns:
            Unix timestamp, or 0 if thread has never run
        """
        with self._lock:
            return self._state["thread_last_run"].get(thread_name, 0.0)

    def add_event_count(self, thread_name: str, count: int) -> None:
        """Add to the number of events a thread has published or consumed.

        Args:
            thread_name: Name of the thread
            count: Number of events to add
        """
        with self._lock:
            counts = self._state["event_counts"]
            counts[thread_name] = counts.get(thread_name, 0) + count

    def get_event_counts(self) -> Dict[str, int]:
        """Get a snapshot copy of the per-thread event counts."""
        with self._lock:
            return copy.deepcopy(self._state["event_counts"])
