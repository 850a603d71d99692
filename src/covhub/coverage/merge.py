"""Coverage snapshot merging with additive semantics.

Snapshots posted by different clients (browser tabs, test shards, the
server process itself) describe the same instrumented files, so hits add:

- s[id] = sum of s[id] across snapshots
- f[id] = sum of f[id] across snapshots
- b[id][arm] = sum of b[id][arm] across snapshots (same for bT)

Ids present on one side only are carried over. A structural map missing on
one side is taken from the other.

When both sides carry a structural map for a file and the maps differ
(typically the source was edited and re-instrumented) the counts cannot be
summed meaningfully. The incoming record then replaces the stored one and
the path is reported as a conflict.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Mapping
from typing import Any

import structlog

from covhub.coverage.models import (
    BRANCH_KEYS,
    COUNTER_KEYS,
    STRUCTURE_KEYS,
    CoverageMergeConflict,
    CoverageSnapshot,
    FileCoverageRecord,
    MergeResult,
)

logger = structlog.get_logger()


def _count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    # NaN and Infinity have no hit count
    return 0


def _counter_table(record: Mapping[str, Any], key: str) -> dict[str, int]:
    table = record.get(key)
    if not isinstance(table, Mapping):
        return {}
    return {str(k): _count(v) for k, v in table.items()}


def _branch_table(record: Mapping[str, Any], key: str) -> dict[str, list[int]]:
    table = record.get(key)
    if not isinstance(table, Mapping):
        return {}
    result: dict[str, list[int]] = {}
    for k, arms in table.items():
        if isinstance(arms, list):
            result[str(k)] = [_count(v) for v in arms]
    return result


def check_compatible(path: str, existing: FileCoverageRecord, incoming: FileCoverageRecord) -> None:
    """Raise CoverageMergeConflict if the two records cannot be summed."""
    for key in STRUCTURE_KEYS:
        ours = existing.get(key)
        theirs = incoming.get(key)
        if ours is not None and theirs is not None and ours != theirs:
            raise CoverageMergeConflict(path, f"{key} differs")

    for key in BRANCH_KEYS:
        ours_b = _branch_table(existing, key)
        theirs_b = _branch_table(incoming, key)
        for branch_id in ours_b.keys() & theirs_b.keys():
            if len(ours_b[branch_id]) != len(theirs_b[branch_id]):
                raise CoverageMergeConflict(
                    path, f"branch {branch_id} has {len(ours_b[branch_id])} vs "
                    f"{len(theirs_b[branch_id])} arms"
                )


def merge_file_coverage(
    path: str,
    existing: FileCoverageRecord,
    incoming: FileCoverageRecord,
) -> FileCoverageRecord:
    """Merge two records for the same file.

    Neither input is modified.

    Raises:
        CoverageMergeConflict: If the structural maps disagree.
    """
    check_compatible(path, existing, incoming)

    merged: FileCoverageRecord = copy.deepcopy(existing)

    # Structure and metadata (path, hash, inputSourceMap, ...) missing on our side
    for key, value in incoming.items():
        if key in COUNTER_KEYS or key in BRANCH_KEYS:
            continue
        if merged.get(key) is None and value is not None:
            merged[key] = copy.deepcopy(value)

    for key in COUNTER_KEYS:
        ours = _counter_table(existing, key)
        theirs = _counter_table(incoming, key)
        if key not in existing and key not in incoming:
            continue
        for hit_id, hits in theirs.items():
            ours[hit_id] = ours.get(hit_id, 0) + hits
        merged[key] = ours

    for key in BRANCH_KEYS:
        ours_b = _branch_table(existing, key)
        theirs_b = _branch_table(incoming, key)
        if key not in existing and key not in incoming:
            continue
        for branch_id, arms in theirs_b.items():
            current = ours_b.get(branch_id)
            if current is None:
                ours_b[branch_id] = list(arms)
            else:
                ours_b[branch_id] = [a + b for a, b in zip(current, arms, strict=True)]
        merged[key] = ours_b

    return merged


def merge_snapshots(
    base: CoverageSnapshot,
    incoming: Mapping[str, Any] | None,
) -> tuple[CoverageSnapshot, MergeResult]:
    """Merge ``incoming`` into ``base``, returning a new snapshot.

    ``base`` and its records are left untouched; records for files not in
    ``incoming`` are shared between the old and new snapshot.

    Args:
        base: Current accumulated snapshot.
        incoming: Snapshot posted by a client. None or {} is a no-op.

    Returns:
        (merged snapshot, per-file merge result).
    """
    result = MergeResult()
    if not incoming:
        return base, result

    merged: CoverageSnapshot = dict(base)
    for path, record in incoming.items():
        path = str(path)
        if not isinstance(record, Mapping):
            logger.warning("coverage_record_skipped", path=path, reason="not an object")
            result.skipped.append(path)
            continue

        existing = merged.get(path)
        if existing is None:
            merged[path] = copy.deepcopy(dict(record))
            result.files_added += 1
            continue

        try:
            merged[path] = merge_file_coverage(path, existing, dict(record))
            result.files_merged += 1
        except CoverageMergeConflict as e:
            logger.warning("coverage_structure_conflict", path=path, reason=e.reason)
            merged[path] = copy.deepcopy(dict(record))
            result.conflicts.append(path)

    return merged, result
