"""Accumulated coverage for one running server.

The store is owned by the application (one instance per app) and injected
wherever it is needed. Merges are serialized behind a lock and never modify
a published snapshot in place: each merge builds a new mapping and swaps it
in. A snapshot obtained from ``get()`` is therefore a stable view that
report rendering can read while further merges land.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping
from typing import Any

import structlog

from covhub.coverage.merge import merge_snapshots
from covhub.coverage.models import CoverageSnapshot, MergeResult

logger = structlog.get_logger()


class CoverageStore:
    """Thread-safe holder of the merged coverage snapshot."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: CoverageSnapshot = {}
        self._merge_count = 0

    def get(self) -> CoverageSnapshot:
        """Current snapshot (empty dict if nothing was merged yet).

        Callers must treat the result as read-only.
        """
        with self._lock:
            return self._data

    def snapshot(self) -> CoverageSnapshot:
        """Deep copy of the current state for rendering outside the lock."""
        with self._lock:
            return copy.deepcopy(self._data)

    def reset(self) -> None:
        """Drop all accumulated coverage."""
        with self._lock:
            self._data = {}
            self._merge_count = 0
        logger.info("coverage_reset")

    def merge(self, incoming: Mapping[str, Any] | None) -> MergeResult:
        """Add ``incoming`` hit counts to the store. None is a no-op."""
        with self._lock:
            merged, result = merge_snapshots(self._data, incoming)
            self._data = merged
            if result.changed:
                self._merge_count += 1

        if result.changed:
            logger.info(
                "coverage_merged",
                files_merged=result.files_merged,
                files_added=result.files_added,
                conflicts=len(result.conflicts),
                total_files=len(merged),
            )
        return result

    @property
    def merge_count(self) -> int:
        """Merges that changed the store since creation or the last reset."""
        return self._merge_count

    def is_empty(self) -> bool:
        return not self.get()

    def __len__(self) -> int:
        return len(self.get())
