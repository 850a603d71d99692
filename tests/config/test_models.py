"""Tests for configuration models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from covhub.config.models import (
    DEFAULT_DIFF_COMMAND,
    CovhubConfig,
    DiffConfig,
    ReportConfig,
    ServerConfig,
)


class TestDefaults:
    """Built-in defaults."""

    def test_server_defaults(self) -> None:
        config = ServerConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 3000
        assert config.max_body_mb == 100
        assert config.reset_on_get is False

    def test_diff_defaults(self) -> None:
        config = DiffConfig()
        assert config.target is None
        assert config.command == DEFAULT_DIFF_COMMAND == "diff-cover"
        assert config.timeout_sec == 120.0

    def test_report_defaults(self) -> None:
        assert ReportConfig().output_dir == "output"

    def test_root_has_all_sections(self) -> None:
        config = CovhubConfig()
        assert config.logging.level == "INFO"
        assert config.server.port == 3000
        assert config.diff.target is None


class TestServerConfig:
    """Server config validation."""

    @pytest.mark.parametrize(
        ("port", "valid"),
        [
            (0, True),
            (3000, True),
            (65535, True),
            (-1, False),
            (65536, False),
        ],
    )
    def test_given_port_when_validated_then_accepts_only_valid_range(
        self, port: int, valid: bool
    ) -> None:
        """Port accepts only valid range (0-65535)."""
        if valid:
            assert ServerConfig(port=port).port == port
        else:
            with pytest.raises(ValidationError):
                ServerConfig(port=port)

    @pytest.mark.parametrize("size", [0, -5])
    def test_given_non_positive_body_limit_then_rejects(self, size: int) -> None:
        with pytest.raises(ValidationError):
            ServerConfig(max_body_mb=size)


class TestDiffConfig:
    """Diff config validation."""

    @pytest.mark.parametrize("target", ["", "   "])
    def test_given_blank_target_then_treated_as_unset(self, target: str) -> None:
        assert DiffConfig(target=target).target is None

    def test_given_git_ref_target_then_kept(self) -> None:
        assert DiffConfig(target="origin/main").target == "origin/main"

    def test_given_empty_command_then_rejects(self) -> None:
        with pytest.raises(ValidationError):
            DiffConfig(command="  ")

    def test_given_wrapper_command_then_kept_verbatim(self) -> None:
        assert DiffConfig(command="pipx run diff-cover").command == "pipx run diff-cover"


class TestReportConfig:
    """Output directory resolution."""

    def test_relative_output_dir_resolves_against_repo(self, tmp_path: Path) -> None:
        config = ReportConfig(output_dir="coverage/out")
        assert config.resolve_output_dir(tmp_path) == tmp_path / "coverage" / "out"

    def test_absolute_output_dir_kept(self, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere"
        config = ReportConfig(output_dir=str(target))
        assert config.resolve_output_dir(tmp_path / "repo") == target
