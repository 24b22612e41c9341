"""Read counting for self-destructing snippets. State is in memory only."""

import logging
import threading
from typing import Dict

log = logging.getLogger(__name__)


class ReadCounter:
    """Counts reads per id against an optional maximum.

    Independent of the store's lock: the expiry signal is advisory and the
    caller performs the delete.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}
        self._max_reads: Dict[str, int] = {}

    def set_max_reads(self, snippet_id: str, max_reads: int) -> None:
        """Set (or overwrite) the number of reads after which snippet_id expires."""
        if max_reads < 1:
            raise ValueError(f"max_reads must be positive, got {max_reads}")
        with self._lock:
            self._max_reads[snippet_id] = max_reads
        log.debug("Max reads for %s set to %d", snippet_id, max_reads)

    def record_read_and_check_expiry(self, snippet_id: str) -> bool:
        """
        Count one read of snippet_id. Returns True (and clears its state) when a
        maximum is configured and has been reached; False otherwise.
        """
        with self._lock:
            count = self._counts.get(snippet_id, 0) + 1
            self._counts[snippet_id] = count
            max_reads = self._max_reads.get(snippet_id)
            if max_reads is not None and count >= max_reads:
                del self._counts[snippet_id]
                del self._max_reads[snippet_id]
                return True
            return False

    def forget(self, snippet_id: str) -> None:
        """Drop count and maximum for snippet_id (after it was deleted)."""
        with self._lock:
            self._counts.pop(snippet_id, None)
            self._max_reads.pop(snippet_id, None)
