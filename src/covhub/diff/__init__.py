"""Differential coverage: target classification, changed files, diff-cover runs."""

from covhub.diff.extractor import extract, parse_changed_files
from covhub.diff.models import (
    CachedDiffInfo,
    DiffCoverageState,
    DiffInfo,
    DiffInfoResponse,
    DiffTargetType,
    DiffTargetValidation,
)
from covhub.diff.orchestrator import (
    DIFF_INFO_CACHE,
    DIFF_REPORT_FILE,
    DiffCoverageOrchestrator,
)
from covhub.diff.resolver import classify

__all__ = [
    "DIFF_INFO_CACHE",
    "DIFF_REPORT_FILE",
    "CachedDiffInfo",
    "DiffCoverageOrchestrator",
    "DiffCoverageState",
    "DiffInfo",
    "DiffInfoResponse",
    "DiffTargetType",
    "DiffTargetValidation",
    "classify",
    "extract",
    "parse_changed_files",
]
