"""Coverage service: the store plus everything derived from it."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from covhub.config.models import CovhubConfig
from covhub.core.process import CommandRunner
from covhub.core.results import Outcome
from covhub.coverage.models import CoverageSnapshot, MergeResult
from covhub.coverage.store import CoverageStore
from covhub.coverage.summary import build_text_summary
from covhub.diff.models import DiffInfoResponse
from covhub.diff.orchestrator import DIFF_ARTIFACTS, DiffCoverageOrchestrator
from covhub.report.html import render_html
from covhub.report.lcov import render_lcov
from covhub.report.package import PackageResult, build_download_package

logger = structlog.get_logger()


@dataclass(slots=True)
class MergeCycle:
    """What happened after one posted snapshot."""

    result: MergeResult
    html: Outcome
    diff: Outcome

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "filesMerged": self.result.files_merged,
            "filesAdded": self.result.files_added,
            "conflicts": list(self.result.conflicts),
            "html": self.html.to_dict(),
            "diff": self.diff.to_dict(),
        }


@dataclass
class CoverageService:
    """
    Owns the coverage store for one running server.

    Components:
    - CoverageStore: accumulated snapshot, merged under its own lock
    - DiffCoverageOrchestrator: diff-cover pipeline for the configured target

    Files in ``output_dir`` are written under the orchestrator's output lock
    so two renders never interleave. diff-cover itself runs after the lock is
    released, so LCOV and zip requests do not wait on it.
    """

    repo_root: Path
    output_dir: Path
    diff: DiffCoverageOrchestrator
    store: CoverageStore = field(default_factory=CoverageStore)
    _report_lock: threading.Lock = field(init=False)

    def __post_init__(self) -> None:
        self._report_lock = self.diff.output_lock

    @classmethod
    def from_config(
        cls,
        config: CovhubConfig,
        repo_root: Path,
        runner: CommandRunner | None = None,
    ) -> CoverageService:
        """Build the service and classify the configured diff target."""
        output_dir = config.report.resolve_output_dir(repo_root)
        orchestrator = DiffCoverageOrchestrator(
            repo_root,
            output_dir,
            command=config.diff.command,
            timeout_sec=config.diff.timeout_sec,
            runner=runner,
        )
        orchestrator.configure(config.diff.target)
        return cls(repo_root=repo_root, output_dir=output_dir, diff=orchestrator)

    def merge(self, incoming: Mapping[str, Any] | None) -> MergeCycle:
        """Merge a posted snapshot, then refresh the reports.

        Report failures are logged and returned; the merge itself stands.
        """
        result = self.store.merge(incoming)
        if not result.changed:
            skipped = Outcome.skip("Nothing merged")
            return MergeCycle(result=result, html=skipped, diff=skipped)

        with self._report_lock:
            # Latest state, so a merge that waited on the lock renders its successor's data too
            snapshot = self.store.snapshot()
            html = render_html(
                snapshot, self.output_dir, source_root=self.repo_root, preserve=DIFF_ARTIFACTS
            )
        logger.info("coverage_report_updated", summary=build_text_summary(snapshot))
        diff = self.diff.regenerate(snapshot)

        return MergeCycle(result=result, html=html, diff=diff)

    def reset(self) -> None:
        self.store.reset()

    def snapshot(self) -> CoverageSnapshot:
        return self.store.get()

    def lcov(self) -> Path:
        """Write and return ``lcov.info``.

        Raises:
            NoCoverageDataError: If nothing has been merged.
        """
        with self._report_lock:
            return render_lcov(self.store.snapshot(), self.output_dir)

    def download(self) -> PackageResult:
        with self._report_lock:
            return build_download_package(
                self.store.snapshot(),
                self.output_dir,
                renderer=lambda snap, out: render_html(
                    snap, out, source_root=self.repo_root, preserve=DIFF_ARTIFACTS
                ),
            )

    def diff_info(self) -> DiffInfoResponse:
        return self.diff.diff_info()

    def diff_report(self) -> Path | None:
        return self.diff.report_path()
