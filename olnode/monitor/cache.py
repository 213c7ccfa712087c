from __future__ import annotations

import threading
from typing import Optional

from olnode.monitor.models import CacheSnapshot


class CheckCache:
    """Single-writer, many-reader holder of the latest `CacheSnapshot`.

    Snapshots are immutable; `replace` swaps the reference, so a reader holding
    the result of one `read()` always sees fields from exactly one refresh.
    """

    def __init__(self, initial: Optional[CacheSnapshot] = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = initial if initial is not None else CacheSnapshot()
        self._generation = 0

    def read(self) -> CacheSnapshot:
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: CacheSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._generation += 1

    @property
    def generation(self) -> int:
        """Number of replacements so far."""
        with self._lock:
            return self._generation

    @property
    def populated(self) -> bool:
        return self.generation > 0
