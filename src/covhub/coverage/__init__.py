"""Coverage accumulation: Istanbul snapshot model, merging and summaries.

Usage:
    from covhub.coverage import CoverageStore, summarize

    store = CoverageStore()
    store.merge(posted_snapshot)
    summary = summarize(store.get())
"""

from covhub.coverage.merge import (
    check_compatible,
    merge_file_coverage,
    merge_snapshots,
)
from covhub.coverage.models import (
    CoverageMergeConflict,
    CoverageSnapshot,
    CoverageSummary,
    CoverageTotals,
    FileCoverageRecord,
    FileSummary,
    MergeResult,
)
from covhub.coverage.store import CoverageStore
from covhub.coverage.summary import (
    DEFAULT_WATERMARKS,
    build_text_summary,
    line_hits,
    summarize,
    summarize_file,
    watermark_class,
)

__all__ = [
    # Models
    "CoverageMergeConflict",
    "CoverageSnapshot",
    "CoverageSummary",
    "CoverageTotals",
    "FileCoverageRecord",
    "FileSummary",
    "MergeResult",
    # Merge
    "check_compatible",
    "merge_file_coverage",
    "merge_snapshots",
    # Store
    "CoverageStore",
    # Summary
    "DEFAULT_WATERMARKS",
    "build_text_summary",
    "line_hits",
    "summarize",
    "summarize_file",
    "watermark_class",
]
