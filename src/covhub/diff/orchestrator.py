"""Differential coverage pipeline.

Lifecycle for one configured target:

    UNCONFIGURED -> VALIDATING -> DISABLED | READY -> GENERATING -> READY

The target is classified once in ``configure()``. An invalid target
disables the pipeline for the lifetime of the configuration. While READY,
each accepted merge triggers ``regenerate()``:

1. ``<command> --version`` must succeed.
2. ``lcov.info`` is written from the cycle's snapshot.
3. Changed files are extracted and cached in ``diff-info.json``.
4. diff-cover renders ``diff-coverage.html`` from the LCOV file.

Regeneration cycles are serialized. Files in ``output_dir`` are written
under ``output_lock``, which the HTML renderer shares; subprocesses run
without it so report requests are not held up by diff-cover. The cache and
LCOV file are only ever replaced as a whole, so readers see either the
previous or the next version.
"""

from __future__ import annotations

import json
import os
import shlex
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import structlog

from covhub.config.models import DEFAULT_DIFF_COMMAND
from covhub.core.errors import (
    CovhubError,
    DiffReportGenerationError,
    DiffTargetInvalidError,
    DiffToolUnavailableError,
    InternalError,
)
from covhub.core.process import CommandRunner, SubprocessRunner
from covhub.core.results import Outcome
from covhub.coverage.models import CoverageSnapshot
from covhub.diff.extractor import extract
from covhub.diff.models import (
    CachedDiffInfo,
    DiffCoverageState,
    DiffInfo,
    DiffInfoResponse,
    DiffTargetType,
    DiffTargetValidation,
)
from covhub.diff.resolver import classify, resolve_diff_file
from covhub.report.lcov import LCOV_FILE_NAME, render_lcov

logger = structlog.get_logger()

DIFF_INFO_CACHE = "diff-info.json"
DIFF_REPORT_FILE = "diff-coverage.html"
TOOL_CHECK_TIMEOUT_SEC = 30.0
DEFAULT_REPORT_TIMEOUT_SEC = 120.0

# Kept when the HTML report clears output_dir
DIFF_ARTIFACTS = frozenset({LCOV_FILE_NAME, DIFF_INFO_CACHE, DIFF_REPORT_FILE})

LcovRenderer = Callable[[CoverageSnapshot, Path], Path]


def split_command(command: str) -> list[str]:
    """Split a configured command string into argv.

    Raises:
        DiffToolUnavailableError: If the string is empty or badly quoted.
    """
    try:
        argv = shlex.split(command)
    except ValueError as e:
        raise DiffToolUnavailableError.missing(command, str(e)) from e
    if not argv:
        raise DiffToolUnavailableError.missing(command, "empty command")
    return argv


def diff_cover_command(
    command: str,
    lcov_path: Path,
    report_path: Path,
    target: str,
    target_type: DiffTargetType,
    repo_root: Path,
) -> list[str]:
    """Full diff-cover invocation for a classified target."""
    argv = [*split_command(command), str(lcov_path)]
    if target_type is DiffTargetType.DIFF_FILE:
        argv.append(f"--diff-file={resolve_diff_file(target, repo_root)}")
    else:
        argv.append(f"--compare-branch={target}")
    argv.extend(["--format", f"html:{report_path}"])
    return argv


class DiffCoverageOrchestrator:
    """Owns the diff target, its validation and the generated artifacts."""

    def __init__(
        self,
        repo_root: Path,
        output_dir: Path,
        *,
        command: str = DEFAULT_DIFF_COMMAND,
        timeout_sec: float = DEFAULT_REPORT_TIMEOUT_SEC,
        runner: CommandRunner | None = None,
        lcov_renderer: LcovRenderer = render_lcov,
        output_lock: threading.Lock | None = None,
    ) -> None:
        self.repo_root = repo_root
        self.output_dir = output_dir
        self.command = command
        self.timeout_sec = timeout_sec
        self._runner = runner or SubprocessRunner()
        self._render_lcov = lcov_renderer
        self._lock = threading.Lock()
        self.output_lock = output_lock or threading.Lock()
        self._state = DiffCoverageState.UNCONFIGURED
        self._target: str | None = None
        self._validation: DiffTargetValidation | None = None

    @property
    def state(self) -> DiffCoverageState:
        return self._state

    @property
    def target(self) -> str | None:
        return self._target

    @property
    def validation(self) -> DiffTargetValidation | None:
        return self._validation

    @property
    def enabled(self) -> bool:
        return self._state in (DiffCoverageState.READY, DiffCoverageState.GENERATING)

    @property
    def cache_path(self) -> Path:
        return self.output_dir / DIFF_INFO_CACHE

    @property
    def report_file(self) -> Path:
        return self.output_dir / DIFF_REPORT_FILE

    def configure(self, target: str | None) -> DiffTargetValidation | None:
        """Classify ``target`` once and enter READY or DISABLED.

        Returns None when no target is configured.
        """
        with self._lock:
            self._target = target or None
            if self._target is None:
                self._validation = None
                self._state = DiffCoverageState.UNCONFIGURED
                return None

            self._state = DiffCoverageState.VALIDATING
            validation = classify(self._target, repo_root=self.repo_root, runner=self._runner)
            self._validation = validation

            if not validation.is_valid:
                logger.warning(
                    "diff_target_invalid",
                    target=self._target,
                    error=validation.error,
                    message="Differential coverage disabled",
                )
                self._state = DiffCoverageState.DISABLED
            else:
                logger.info(
                    "diff_target_configured",
                    target=self._target,
                    target_type=validation.type.value,
                )
                self._state = DiffCoverageState.READY
            return validation

    # -----------------------------------------------------------------
    # Write path
    # -----------------------------------------------------------------

    def regenerate(self, snapshot: CoverageSnapshot) -> Outcome:
        """Rebuild LCOV, the diff-info cache and the diff-cover report.

        Best-effort: every failure is logged and returned in the outcome.
        """
        if not self.enabled:
            return Outcome.skip("Differential coverage is not enabled")
        if not snapshot:
            return Outcome.skip("No coverage data")

        with self._lock:
            self._state = DiffCoverageState.GENERATING
            try:
                warnings = self._run_cycle(snapshot)
            except CovhubError as e:
                logger.warning(
                    "diff_coverage_failed",
                    target=self._target,
                    code=e.error_name,
                    error=e.message,
                )
                return Outcome.failure(e)
            except OSError as e:
                logger.error("diff_coverage_failed", target=self._target, error=str(e))
                return Outcome.failure(InternalError.unexpected(str(e), target=self._target))
            finally:
                self._state = DiffCoverageState.READY

        logger.info("diff_coverage_generated", target=self._target, report=str(self.report_file))
        return Outcome.success(warnings)

    def _run_cycle(self, snapshot: CoverageSnapshot) -> list[str]:
        assert self._target is not None and self._validation is not None
        self._check_tool()
        with self.output_lock:
            lcov_path = self._render_lcov(snapshot, self.output_dir)

        info = extract(
            self._target,
            self._validation.type,
            repo_root=self.repo_root,
            runner=self._runner,
        )
        with self.output_lock:
            self._write_cache(info)
        return self._run_diff_cover(lcov_path)

    def _check_tool(self) -> None:
        argv = [*split_command(self.command), "--version"]
        result = self._runner.run(argv, self.repo_root, timeout=TOOL_CHECK_TIMEOUT_SEC)
        if not result.ok:
            reason = result.stderr.strip() or f"exit code {result.exit_code}"
            raise DiffToolUnavailableError.missing(self.command, reason)
        logger.debug("diff_tool_available", command=self.command, version=result.stdout.strip())

    def _write_cache(self, info: DiffInfo) -> None:
        cached = CachedDiffInfo(
            target=self._target or "",
            info=info,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )
        self.output_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.cache_path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(cached.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp_path, self.cache_path)
        logger.debug("diff_info_cached", path=str(self.cache_path), files=len(info.changed_files))

    def _run_diff_cover(self, lcov_path: Path) -> list[str]:
        assert self._target is not None and self._validation is not None
        argv = diff_cover_command(
            self.command,
            lcov_path,
            self.report_file,
            self._target,
            self._validation.type,
            self.repo_root,
        )
        result = self._runner.run(argv, self.repo_root, timeout=self.timeout_sec)

        if result.timed_out:
            raise DiffReportGenerationError.failed(
                f"timed out after {self.timeout_sec}s", result.stderr
            )
        if not result.ok:
            raise DiffReportGenerationError.failed(f"exit code {result.exit_code}", result.stderr)
        if not self.report_file.exists():
            raise DiffReportGenerationError.failed(
                f"{DIFF_REPORT_FILE} was not written", result.stderr
            )

        stderr = result.stderr.strip()
        if stderr:
            logger.warning("diff_cover_stderr", target=self._target, stderr=stderr)
            return [stderr]
        return []

    # -----------------------------------------------------------------
    # Read path
    # -----------------------------------------------------------------

    def load_cache(self) -> CachedDiffInfo | None:
        """Cached diff info for the configured target, if any."""
        try:
            raw = self.cache_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            cached = CachedDiffInfo.from_dict(json.loads(raw))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("diff_info_cache_unreadable", path=str(self.cache_path), error=str(e))
            return None

        if cached.target != self._target:
            logger.debug("diff_info_cache_other_target", cached=cached.target, target=self._target)
            return None
        return cached

    def diff_info(self) -> DiffInfoResponse:
        """Changed files for the configured target.

        Serves the cache when present, otherwise computes without writing.

        Raises:
            DiffTargetInvalidError: No target configured or target invalid.
            DiffFileNotFoundError, GitCommandFailedError: Extraction failed.
        """
        if self._target is None or self._validation is None:
            raise DiffTargetInvalidError.not_configured()
        if not self._validation.is_valid:
            raise DiffTargetInvalidError.invalid(
                self._target, self._validation.error or "Invalid diff target"
            )

        cached = self.load_cache()
        if cached is not None:
            return DiffInfoResponse(
                target=self._target,
                info=cached.info,
                cached=True,
                generated_at=cached.generated_at,
            )

        info = extract(
            self._target,
            self._validation.type,
            repo_root=self.repo_root,
            runner=self._runner,
        )
        return DiffInfoResponse(target=self._target, info=info, cached=False)

    def report_path(self) -> Path | None:
        """Path of the diff-cover report when the target is valid and it exists."""
        if not self.enabled:
            return None
        path = self.report_file
        return path if path.is_file() else None
