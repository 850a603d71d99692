"""Coverage totals and watermark classification.

Line coverage is derived from statements the way Istanbul does it: each
statement counts toward the line it starts on, and a line's hit count is
the highest count among its statements.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from covhub.coverage.models import (
    CoverageSnapshot,
    CoverageSummary,
    CoverageTotals,
    FileCoverageRecord,
    FileSummary,
)

Watermarks = tuple[float, float]
WatermarkClass = Literal["low", "medium", "high"]

# Below 50% is "low", at or above 80% is "high" for every metric.
DEFAULT_WATERMARKS: Watermarks = (50.0, 80.0)


def _as_int(value: Any) -> int:
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    return int(value) if isinstance(value, int) else 0


def _start_line(location: Any) -> int:
    if isinstance(location, dict):
        start = location.get("start")
        if isinstance(start, dict):
            return _as_int(start.get("line"))
    return 0


def line_hits(record: FileCoverageRecord) -> dict[int, int]:
    """Map line number → hit count, from statement starts."""
    statement_map = record.get("statementMap") or {}
    hits = record.get("s") or {}
    lines: dict[int, int] = {}
    for stmt_id, count in hits.items():
        location = statement_map.get(str(stmt_id), statement_map.get(stmt_id))
        line = _start_line(location)
        if not line:
            continue
        count = _as_int(count)
        if line not in lines or lines[line] < count:
            lines[line] = count
    return dict(sorted(lines.items()))


def branch_line(meta: Any) -> int:
    """Line a branch is reported on."""
    if not isinstance(meta, dict):
        return 0
    line = _as_int(meta.get("line"))
    if line:
        return line
    line = _start_line(meta.get("loc"))
    if line:
        return line
    locations = meta.get("locations") or []
    return _start_line(locations[0]) if locations else 0


def function_line(meta: Any) -> int:
    """Line a function is declared on."""
    if not isinstance(meta, dict):
        return 0
    return (
        _start_line(meta.get("decl"))
        or _start_line(meta.get("loc"))
        or _as_int(meta.get("line"))
    )


def summarize_file(path: str, record: FileCoverageRecord) -> FileSummary:
    statements = list((record.get("s") or {}).values())
    functions = list((record.get("f") or {}).values())
    arms = [arm for counts in (record.get("b") or {}).values() for arm in (counts or [])]
    lines = list(line_hits(record).values())

    def totals(counts: list[Any]) -> CoverageTotals:
        return CoverageTotals(total=len(counts), covered=sum(1 for c in counts if _as_int(c) > 0))

    return FileSummary(
        path=path,
        statements=totals(statements),
        branches=totals(arms),
        functions=totals(functions),
        lines=totals(lines),
    )


def summarize(snapshot: CoverageSnapshot) -> CoverageSummary:
    """Per-file summaries (sorted by path) plus overall totals."""
    files = tuple(summarize_file(path, snapshot[path]) for path in sorted(snapshot))
    statements = branches = functions = lines = CoverageTotals()
    for fs in files:
        statements += fs.statements
        branches += fs.branches
        functions += fs.functions
        lines += fs.lines
    return CoverageSummary(
        files=files,
        statements=statements,
        branches=branches,
        functions=functions,
        lines=lines,
    )


def watermark_class(pct: float, watermarks: Watermarks = DEFAULT_WATERMARKS) -> WatermarkClass:
    low, high = watermarks
    if pct < low:
        return "low"
    if pct >= high:
        return "high"
    return "medium"


def build_text_summary(snapshot: CoverageSnapshot) -> str:
    """One-line summary logged after each report refresh."""
    summary = summarize(snapshot)
    if not summary.files:
        return "No coverage data"
    return (
        f"Coverage: {summary.statements.pct:.1f}% statements "
        f"({summary.statements.covered}/{summary.statements.total}), "
        f"{summary.lines.pct:.1f}% lines across {len(summary.files)} files"
    )
