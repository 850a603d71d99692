"""LCOV writer.

Emits the same record layout as Istanbul's ``lcovonly`` reporter:

    TN:
    SF:<source file path>
    FN:<line>,<name>
    FNF:<functions found>
    FNH:<functions hit>
    FNDA:<hit count>,<name>
    DA:<line>,<hit count>
    LF:<lines found>
    LH:<lines hit>
    BRDA:<line>,<block>,<branch>,<taken>
    BRF:<branches found>
    BRH:<branches hit>
    end_of_record

One record per snapshot key, in path order. diff-cover reads this file to
map changed lines to hit counts.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from covhub.core.errors import NoCoverageDataError
from covhub.coverage.models import CoverageSnapshot, FileCoverageRecord
from covhub.coverage.summary import branch_line, function_line, line_hits

logger = structlog.get_logger()

LCOV_FILE_NAME = "lcov.info"


def _file_record(path: str, record: FileCoverageRecord) -> list[str]:
    out = ["TN:", f"SF:{path}"]

    fn_map = record.get("fnMap") or {}
    fn_hits = record.get("f") or {}
    for fn_id, meta in fn_map.items():
        name = (meta or {}).get("name") or f"(anonymous_{fn_id})"
        out.append(f"FN:{function_line(meta)},{name}")
    out.append(f"FNF:{len(fn_map)}")
    out.append(f"FNH:{sum(1 for fn_id in fn_map if int(fn_hits.get(fn_id, 0) or 0) > 0)}")
    for fn_id, meta in fn_map.items():
        name = (meta or {}).get("name") or f"(anonymous_{fn_id})"
        out.append(f"FNDA:{int(fn_hits.get(fn_id, 0) or 0)},{name}")

    lines = line_hits(record)
    for line, hits in lines.items():
        out.append(f"DA:{line},{hits}")
    out.append(f"LF:{len(lines)}")
    out.append(f"LH:{sum(1 for hits in lines.values() if hits > 0)}")

    branch_map = record.get("branchMap") or {}
    branch_hits = record.get("b") or {}
    found = hit = 0
    for branch_id, arms in branch_hits.items():
        meta = branch_map.get(branch_id)
        if meta is None:
            continue
        line = branch_line(meta)
        for arm, taken in enumerate(arms or []):
            taken = int(taken or 0)
            out.append(f"BRDA:{line},{branch_id},{arm},{taken}")
            found += 1
            hit += 1 if taken > 0 else 0
    out.append(f"BRF:{found}")
    out.append(f"BRH:{hit}")
    out.append("end_of_record")
    return out


def format_lcov(snapshot: CoverageSnapshot) -> str:
    """Render a snapshot as LCOV text."""
    lines: list[str] = []
    for path in sorted(snapshot):
        lines.extend(_file_record(path, snapshot[path]))
    return "\n".join(lines) + "\n"


def render_lcov(snapshot: CoverageSnapshot, output_dir: Path) -> Path:
    """Write ``<output_dir>/lcov.info`` and return its path.

    Raises:
        NoCoverageDataError: If the snapshot is empty.
        OSError: If the file cannot be written.
    """
    if not snapshot:
        raise NoCoverageDataError.empty()

    output_dir.mkdir(parents=True, exist_ok=True)
    lcov_path = output_dir / LCOV_FILE_NAME
    # Replaced whole so a diff-cover run reading the previous file is unaffected
    tmp_path = lcov_path.with_suffix(".info.tmp")
    tmp_path.write_text(format_lcov(snapshot), encoding="utf-8")
    os.replace(tmp_path, lcov_path)
    logger.info("lcov_report_written", path=str(lcov_path), files=len(snapshot))
    return lcov_path
