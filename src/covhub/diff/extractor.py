"""Changed-file extraction for a diff target.

For a diff file the unified diff text is scanned for file headers:

    diff --git a/src/old.ts b/src/new.ts
    --- a/src/old.ts
    +++ b/src/new.ts

and the post-image path (``b/...``) is collected. Deleted files
(``+++ /dev/null``) are skipped. For a git reference two read-only git
queries produce the file list and a ``--stat`` summary.

Nothing is retained between calls; the orchestrator owns caching.
"""

from __future__ import annotations

import re
from pathlib import Path

from covhub.core.errors import (
    DiffFileNotFoundError,
    DiffTargetInvalidError,
    GitCommandFailedError,
)
from covhub.core.process import CommandRunner, SubprocessRunner
from covhub.diff.models import DiffInfo, DiffTargetType
from covhub.diff.resolver import resolve_diff_file

GIT_DIFF_TIMEOUT_SEC = 60.0

_DIFF_GIT_HEADER = re.compile(r"^diff --git a/(.+?) b/(.+)$")
_NEW_FILE_HEADER = re.compile(r"^\+\+\+ b/(.+?)\s*$")


def parse_changed_files(diff_text: str) -> list[str]:
    """Post-image paths in first-seen order, deduplicated."""
    seen: dict[str, None] = {}
    for line in diff_text.splitlines():
        if line.startswith("+++ /dev/null"):
            continue
        match = _DIFF_GIT_HEADER.match(line) or _NEW_FILE_HEADER.match(line)
        if match:
            # Tab-separated timestamps trail the path in some diff producers
            path = match.group(match.lastindex or 1).split("\t", 1)[0]
            seen.setdefault(path, None)
    return list(seen)


def git_name_only_command(ref: str) -> list[str]:
    return ["git", "diff", "--name-only", "--end-of-options", ref, "--"]


def git_stat_command(ref: str) -> list[str]:
    return ["git", "diff", "--stat", "--end-of-options", ref, "--"]


def _from_diff_file(target: str, repo_root: Path) -> DiffInfo:
    path = resolve_diff_file(target, repo_root)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError as e:
        raise DiffFileNotFoundError.missing(str(path)) from e

    changed = parse_changed_files(text)
    return DiffInfo(
        changed_files=changed,
        diff_summary=f"Diff file: {target}\n{len(changed)} file(s) changed",
        target_type=DiffTargetType.DIFF_FILE,
    )


def _from_git_ref(target: str, repo_root: Path, runner: CommandRunner) -> DiffInfo:
    name_only = git_name_only_command(target)
    files_result = runner.run(name_only, repo_root, timeout=GIT_DIFF_TIMEOUT_SEC)
    if not files_result.ok:
        raise GitCommandFailedError.failed(target, name_only, files_result.stderr)

    stat = git_stat_command(target)
    stat_result = runner.run(stat, repo_root, timeout=GIT_DIFF_TIMEOUT_SEC)
    if not stat_result.ok:
        raise GitCommandFailedError.failed(target, stat, stat_result.stderr)

    changed: dict[str, None] = {}
    for line in files_result.stdout.splitlines():
        if line.strip():
            changed.setdefault(line.strip(), None)

    return DiffInfo(
        changed_files=list(changed),
        diff_summary=stat_result.stdout.strip(),
        target_type=DiffTargetType.GIT_REF,
    )


def extract(
    target: str,
    target_type: DiffTargetType,
    *,
    repo_root: Path,
    runner: CommandRunner | None = None,
) -> DiffInfo:
    """Compute changed files and a summary for a classified target.

    Raises:
        DiffFileNotFoundError: diff-file target no longer exists.
        GitCommandFailedError: a git query exited non-zero.
        DiffTargetInvalidError: target_type is INVALID.
    """
    if target_type is DiffTargetType.DIFF_FILE:
        return _from_diff_file(target, repo_root)
    if target_type is DiffTargetType.GIT_REF:
        return _from_git_ref(target, repo_root, runner or SubprocessRunner())
    raise DiffTargetInvalidError.invalid(
        target, f"Cannot extract diff info for invalid target '{target}'"
    )
