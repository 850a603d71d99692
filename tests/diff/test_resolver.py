"""Tests for diff target classification."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import patch

from covhub.diff.models import DiffTargetType
from covhub.diff.resolver import classify, git_verify_command

if TYPE_CHECKING:
    from conftest import FakeRunner


class TestClassify:
    """classify() outcomes."""

    def test_empty_target_is_invalid_without_io(self, repo: Path, fake_runner: FakeRunner) -> None:
        """No filesystem or git access for an empty target."""
        with patch("covhub.diff.resolver.resolve_diff_file") as resolve:
            result = classify("", repo_root=repo, runner=fake_runner)

        assert not result.is_valid
        assert result.type is DiffTargetType.INVALID
        assert result.error == "No diff target provided"
        resolve.assert_not_called()
        assert fake_runner.calls == []

    def test_none_target_is_invalid(self, repo: Path, fake_runner: FakeRunner) -> None:
        assert not classify(None, repo_root=repo, runner=fake_runner).is_valid
        assert fake_runner.calls == []

    def test_existing_file_is_diff_file_regardless_of_content(
        self, repo: Path, fake_runner: FakeRunner
    ) -> None:
        (repo / "changes.txt").write_text("this is not a diff at all")

        result = classify("changes.txt", repo_root=repo, runner=fake_runner)

        assert result.is_valid
        assert result.type is DiffTargetType.DIFF_FILE
        assert fake_runner.calls == []

    def test_absolute_diff_file_path(
        self, repo: Path, tmp_path: Path, fake_runner: FakeRunner
    ) -> None:
        diff = tmp_path / "outside.diff"
        diff.write_text("")
        assert classify(str(diff), repo_root=repo, runner=fake_runner).type is (
            DiffTargetType.DIFF_FILE
        )

    def test_missing_diff_file_is_invalid_without_subprocess(
        self, repo: Path, fake_runner: FakeRunner
    ) -> None:
        result = classify("missing.diff", repo_root=repo, runner=fake_runner)

        assert not result.is_valid
        assert result.error is not None
        assert "missing.diff" in result.error
        assert fake_runner.calls == []

    def test_git_ref_verified_with_git(self, repo: Path, fake_runner: FakeRunner) -> None:
        fake_runner.on("git", "rev-parse", stdout="abc123\n")

        result = classify("origin/main", repo_root=repo, runner=fake_runner)

        assert result.is_valid
        assert result.type is DiffTargetType.GIT_REF
        assert fake_runner.calls == [git_verify_command("origin/main")]
        assert fake_runner.cwds == [repo]

    def test_unknown_ref_is_invalid(self, repo: Path, fake_runner: FakeRunner) -> None:
        fake_runner.on("git", "rev-parse", exit_code=1)

        result = classify("no-such-branch", repo_root=repo, runner=fake_runner)

        assert not result.is_valid
        assert result.error == (
            "Invalid diff target: 'no-such-branch' is neither an existing diff file "
            "nor a valid git reference"
        )

    def test_each_call_classifies_again(self, repo: Path, fake_runner: FakeRunner) -> None:
        fake_runner.on("git", "rev-parse")
        classify("main", repo_root=repo, runner=fake_runner)
        classify("main", repo_root=repo, runner=fake_runner)
        assert len(fake_runner.calls) == 2


class TestGitVerifyCommand:
    """Ref verification argv."""

    def test_option_like_refs_are_not_options(self) -> None:
        argv = git_verify_command("--output=x")
        assert argv.index("--end-of-options") < argv.index("--output=x^{commit}")
