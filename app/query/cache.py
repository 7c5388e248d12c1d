# app/query/cache.py
"""Lookup caches for choice-list options and FK labels.

One LookupCache holds both caches. Its lifetime is whatever the owner gives
it: the API keeps one per process, tests build a fresh one per case, and a
ttl_seconds makes entries expire.
"""

import threading
import time
from typing import Dict, Iterable, List, Optional, Tuple

from .schemas import LookupOption


class LookupCache:
    """Options cache keyed by `table.column`, label cache keyed by `lookup_table.label_field`."""

    def __init__(self, ttl_seconds: Optional[float] = None):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._options: Dict[str, Tuple[float, List[LookupOption]]] = {}
        self._labels: Dict[str, Dict[str, str]] = {}
        self._labels_loaded_at: Dict[str, float] = {}

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds is not None and time.monotonic() - stored_at > self.ttl_seconds

    # ===== LOOKUP OPTIONS =====

    def get_options(self, key: str) -> Optional[List[LookupOption]]:
        entry = self._options.get(key)
        if entry is None:
            return None
        stored_at, options = entry
        if self._expired(stored_at):
            with self._lock:
                self._options.pop(key, None)
            return None
        return options

    def set_options(self, key: str, options: List[LookupOption]) -> None:
        with self._lock:
            self._options[key] = (time.monotonic(), options)

    # ===== FK LABELS =====

    def labels(self, key: str) -> Dict[str, str]:
        """Get the id -> label map for a lookup source (a copy)."""
        stored_at = self._labels_loaded_at.get(key)
        if stored_at is not None and self._expired(stored_at):
            with self._lock:
                self._labels.pop(key, None)
                self._labels_loaded_at.pop(key, None)
        return dict(self._labels.get(key, {}))

    def missing_ids(self, key: str, ids: Iterable[str]) -> List[str]:
        """Ids with no cached label, in the order given."""
        known = self.labels(key)
        return [i for i in ids if i not in known]

    def merge_labels(self, key: str, labels: Dict[str, str]) -> None:
        with self._lock:
            self._labels.setdefault(key, {}).update(labels)
            self._labels_loaded_at.setdefault(key, time.monotonic())

    def clear(self) -> None:
        with self._lock:
            self._options.clear()
            self._labels.clear()
            self._labels_loaded_at.clear()

    def stats(self) -> Dict[str, int]:
        return {
            "option_lists": len(self._options),
            "label_sources": len(self._labels),
            "labels": sum(len(v) for v in self._labels.values()),
        }
