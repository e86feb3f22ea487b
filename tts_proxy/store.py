"""In-memory metric store."""

import threading
from typing import Any, Dict, List, Optional, Tuple

from tts_proxy.records import MetricRecord


class MetricStore:
    """
    Append-only, ordered sequence of finalized metric records.

    Appends are serialized with a lock so completions coming from different
    threads (request handlers, background snapshot tasks) cannot interleave.
    Every ``batch_size``-th successful append hands back the full sequence so
    the caller can schedule a snapshot of exactly what the store held at that
    point. Failure records are stored but never complete a batch.
    """

    def __init__(self, batch_size: int = 10):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self._records: List[MetricRecord] = []
        self._successes = 0
        self._lock = threading.Lock()

    def append(self, record: MetricRecord) -> Optional[Tuple[MetricRecord, ...]]:
        """
        Append a record.

        Returns:
            The whole sequence when ``record`` is a success that brings the
            number of successful appends to a multiple of ``batch_size``,
            otherwise None.
        """
        with self._lock:
            self._records.append(record)
            if record.status != "success":
                return None
            self._successes += 1
            if self._successes % self.batch_size == 0:
                return tuple(self._records)
            return None

    def all(self) -> Tuple[MetricRecord, ...]:
        """Read-only view of every record in insertion order."""
        with self._lock:
            return tuple(self._records)

    def size(self) -> int:
        with self._lock:
            return len(self._records)

    def __len__(self) -> int:
        return self.size()

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.all()]

    def reset(self):
        """Drop every record."""
        with self._lock:
            self._records.clear()
            self._successes = 0
