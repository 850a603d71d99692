"""Diff target classification.

A target is either a path to a unified diff on disk or something git can
resolve (branch, tag, commit). Classification is cheap and stateless, so
nothing is cached here.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from covhub.core.process import CommandRunner, SubprocessRunner
from covhub.diff.models import DiffTargetType, DiffTargetValidation

logger = structlog.get_logger()

GIT_VERIFY_TIMEOUT_SEC = 30.0

# Targets with these suffixes name a diff file; git is not consulted for them.
DIFF_FILE_SUFFIXES = (".diff", ".patch")


def git_verify_command(target: str) -> list[str]:
    return ["git", "rev-parse", "--verify", "--quiet", "--end-of-options", f"{target}^{{commit}}"]


def resolve_diff_file(target: str, repo_root: Path) -> Path:
    """Absolute path for a diff-file target."""
    path = Path(target)
    return path if path.is_absolute() else repo_root / path


def classify(
    target: str | None,
    *,
    repo_root: Path,
    runner: CommandRunner | None = None,
) -> DiffTargetValidation:
    """Classify ``target`` as diff-file, git-ref or invalid.

    An empty target is invalid without touching the filesystem or git.
    """
    if not target:
        return DiffTargetValidation(
            is_valid=False,
            type=DiffTargetType.INVALID,
            error="No diff target provided",
        )

    if resolve_diff_file(target, repo_root).is_file():
        return DiffTargetValidation(is_valid=True, type=DiffTargetType.DIFF_FILE)

    if target.lower().endswith(DIFF_FILE_SUFFIXES):
        return DiffTargetValidation(
            is_valid=False,
            type=DiffTargetType.INVALID,
            error=f"Invalid diff target: diff file '{target}' does not exist",
        )

    runner = runner or SubprocessRunner()
    result = runner.run(git_verify_command(target), repo_root, timeout=GIT_VERIFY_TIMEOUT_SEC)
    if result.ok:
        return DiffTargetValidation(is_valid=True, type=DiffTargetType.GIT_REF)

    logger.debug("diff_target_unresolved", target=target, exit_code=result.exit_code)
    return DiffTargetValidation(
        is_valid=False,
        type=DiffTargetType.INVALID,
        error=(
            f"Invalid diff target: '{target}' is neither an existing diff file "
            "nor a valid git reference"
        ),
    )
