"""Istanbul coverage data model.

Snapshots are kept in the Istanbul JSON shape clients post, so the raw
object endpoint and the download bundle can return them verbatim:

{
  "/path/to/file.js": {
    "path": "/path/to/file.js",
    "statementMap": { "0": {"start": {"line": 1, "column": 0}, "end": ...}, ... },
    "s": { "0": 1, "1": 0, ... },  // statement hit counts
    "branchMap": { "0": {"type": "if", "loc": ..., "locations": [...], "line": 5}, ... },
    "b": { "0": [1, 0], ... },  // hit count per branch arm
    "fnMap": { "0": {"name": "foo", "decl": {"start": {"line": 1}}, ...}, ... },
    "f": { "0": 1, ... }  // function hit counts
  }
}

The structural maps are fixed when a file is instrumented; only the hit
tables change between snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

FileCoverageRecord = dict[str, Any]
CoverageSnapshot = dict[str, FileCoverageRecord]

STRUCTURE_KEYS = ("statementMap", "fnMap", "branchMap")
COUNTER_KEYS = ("s", "f")
BRANCH_KEYS = ("b", "bT")


class CoverageMergeConflict(Exception):
    """Two records for the same file disagree on structure."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Incompatible coverage structure for {path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass(slots=True)
class MergeResult:
    """What a store merge did, file by file."""

    files_merged: int = 0
    files_added: int = 0
    conflicts: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.files_merged or self.files_added or self.conflicts)


@dataclass(frozen=True, slots=True)
class CoverageTotals:
    """Covered/total pair for one metric."""

    total: int = 0
    covered: int = 0

    @property
    def pct(self) -> float:
        """Percentage covered; an empty metric counts as fully covered."""
        if self.total == 0:
            return 100.0
        return round(self.covered / self.total * 100.0, 2)

    def __add__(self, other: CoverageTotals) -> CoverageTotals:
        return CoverageTotals(total=self.total + other.total, covered=self.covered + other.covered)


@dataclass(frozen=True, slots=True)
class FileSummary:
    """Per-file statement, branch, function and line totals."""

    path: str
    statements: CoverageTotals
    branches: CoverageTotals
    functions: CoverageTotals
    lines: CoverageTotals


@dataclass(frozen=True, slots=True)
class CoverageSummary:
    """Aggregate totals across a snapshot.

    Computed from a snapshot; immutable summary.
    """

    files: tuple[FileSummary, ...] = ()
    statements: CoverageTotals = CoverageTotals()
    branches: CoverageTotals = CoverageTotals()
    functions: CoverageTotals = CoverageTotals()
    lines: CoverageTotals = CoverageTotals()
