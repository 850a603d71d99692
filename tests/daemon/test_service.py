"""Tests for the coverage service merge cycle."""

from __future__ import annotations

from collections.abc import Callable
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
from structlog.testing import capture_logs

from covhub.config.models import CovhubConfig
from covhub.core.errors import NoCoverageDataError
from covhub.daemon.service import CoverageService
from covhub.diff.models import DiffCoverageState
from covhub.diff.orchestrator import DIFF_INFO_CACHE, DIFF_REPORT_FILE
from covhub.report.html import INDEX_FILE_NAME
from covhub.report.lcov import LCOV_FILE_NAME

if TYPE_CHECKING:
    from conftest import FakeRunner

RecordFactory = Callable[..., dict[str, Any]]


def _write_report(args: list[str]) -> None:
    fmt = args[args.index("--format") + 1]
    Path(fmt.removeprefix("html:")).write_text("<html>diff</html>")


def _config(out: Path, target: str | None = None) -> CovhubConfig:
    return CovhubConfig(report={"output_dir": str(out)}, diff={"target": target})


class TestFromConfig:
    """Service construction."""

    def test_output_dir_resolved_and_diff_classified(
        self, repo: Path, fake_runner: FakeRunner
    ) -> None:
        config = CovhubConfig(report={"output_dir": "cov"}, diff={"target": "missing.diff"})
        service = CoverageService.from_config(config, repo, runner=fake_runner)
        assert service.output_dir == repo / "cov"
        assert service.diff.state is DiffCoverageState.DISABLED

    def test_no_target_unconfigured(self, repo: Path, fake_runner: FakeRunner) -> None:
        service = CoverageService.from_config(_config(repo / "out"), repo, runner=fake_runner)
        assert service.diff.state is DiffCoverageState.UNCONFIGURED


class TestMergeCycle:
    """merge() renders reports after accepting data."""

    def test_merge_renders_html(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        service = CoverageService.from_config(_config(repo / "out"), repo, runner=fake_runner)

        cycle = service.merge({"a.js": record_factory("a.js")})

        assert cycle.result.files_added == 1
        assert cycle.html.ok and not cycle.html.skipped
        assert cycle.diff.skipped
        assert (repo / "out" / INDEX_FILE_NAME).is_file()
        assert fake_runner.calls == []

    def test_merge_logs_text_summary(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        service = CoverageService.from_config(_config(repo / "out"), repo, runner=fake_runner)

        with capture_logs() as logs:
            service.merge({"a.js": record_factory("a.js", {"0": 1, "1": 0})})

        updated = [e for e in logs if e["event"] == "coverage_report_updated"]
        assert len(updated) == 1
        assert updated[0]["summary"].startswith("Coverage: 50.0% statements (1/2)")

    def test_empty_merge_skips_reports(self, repo: Path, fake_runner: FakeRunner) -> None:
        service = CoverageService.from_config(_config(repo / "out"), repo, runner=fake_runner)
        cycle = service.merge({})
        assert cycle.html.skipped
        assert not (repo / "out" / INDEX_FILE_NAME).exists()

    def test_merge_regenerates_diff_coverage(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        (repo / "pr.diff").write_text("+++ b/a.js\n")
        fake_runner.on("diff-cover", effect=_write_report)
        fake_runner.on("diff-cover", "--version")
        service = CoverageService.from_config(
            _config(repo / "out", "pr.diff"), repo, runner=fake_runner
        )

        cycle = service.merge({"a.js": record_factory("a.js")})

        assert cycle.diff.ok and not cycle.diff.skipped
        out = repo / "out"
        for name in (INDEX_FILE_NAME, LCOV_FILE_NAME, DIFF_INFO_CACHE, DIFF_REPORT_FILE):
            assert (out / name).is_file(), name
        assert service.diff_report() == out / DIFF_REPORT_FILE

    def test_diff_failure_does_not_fail_merge(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        (repo / "pr.diff").write_text("+++ b/a.js\n")
        fake_runner.on("diff-cover", exit_code=127)
        service = CoverageService.from_config(
            _config(repo / "out", "pr.diff"), repo, runner=fake_runner
        )

        cycle = service.merge({"a.js": record_factory("a.js")})

        assert not cycle.diff.ok
        assert cycle.html.ok
        assert len(service.store) == 1
        assert cycle.to_dict()["ok"] is True

    def test_diff_report_survives_failed_cycle(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        """Given a diff report from an earlier successful cycle
        When a later merge re-renders HTML and the diff tool is unavailable
        Then the earlier report is still served.
        """
        (repo / "pr.diff").write_text("+++ b/a.js\n")
        fake_runner.on("diff-cover", effect=_write_report)
        fake_runner.on("diff-cover", "--version")
        service = CoverageService.from_config(
            _config(repo / "out", "pr.diff"), repo, runner=fake_runner
        )
        assert service.merge({"a.js": record_factory("a.js")}).diff.ok

        fake_runner.on("diff-cover", "--version", exit_code=127)
        cycle = service.merge({"b.js": record_factory("b.js")})

        assert not cycle.diff.ok
        assert cycle.html.ok
        assert service.diff_report() == repo / "out" / DIFF_REPORT_FILE
        assert (repo / "out" / DIFF_INFO_CACHE).is_file()

    def test_lcov_not_blocked_by_running_diff_cover(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        """Given a merge whose diff-cover run is still in flight
        When LCOV is requested
        Then it is written without waiting for diff-cover to finish.
        """
        started = threading.Event()
        release = threading.Event()

        def slow_diff_cover(args: list[str]) -> None:
            started.set()
            release.wait(timeout=10)
            _write_report(args)

        (repo / "pr.diff").write_text("+++ b/a.js\n")
        fake_runner.on("diff-cover", effect=slow_diff_cover)
        fake_runner.on("diff-cover", "--version")
        service = CoverageService.from_config(
            _config(repo / "out", "pr.diff"), repo, runner=fake_runner
        )
        cycles: list[Any] = []
        worker = threading.Thread(
            target=lambda: cycles.append(service.merge({"a.js": record_factory("a.js")}))
        )
        worker.start()
        try:
            assert started.wait(timeout=10)

            path = service.lcov()

            assert "SF:a.js" in path.read_text()
            assert worker.is_alive()
        finally:
            release.set()
            worker.join(timeout=10)

        assert cycles[0].diff.ok


class TestExports:
    """LCOV and download on demand."""

    def test_lcov_requires_data(self, repo: Path, fake_runner: FakeRunner) -> None:
        service = CoverageService.from_config(_config(repo / "out"), repo, runner=fake_runner)
        with pytest.raises(NoCoverageDataError):
            service.lcov()

    def test_lcov_after_merge(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        service = CoverageService.from_config(_config(repo / "out"), repo, runner=fake_runner)
        service.merge({"a.js": record_factory("a.js")})
        assert service.lcov().read_text().count("SF:") == 1

    def test_download_after_reset_reports_no_data(
        self, repo: Path, fake_runner: FakeRunner, record_factory: RecordFactory
    ) -> None:
        service = CoverageService.from_config(_config(repo / "out"), repo, runner=fake_runner)
        service.merge({"a.js": record_factory("a.js")})
        service.reset()
        assert isinstance(service.download().error, NoCoverageDataError)
