"""Tests for configuration loading."""

from pathlib import Path

import pytest

from covhub.config import CovhubConfig, load_config
from covhub.config.loader import CONFIG_FILE_NAME, _deep_merge
from covhub.core.errors import ConfigError, ErrorCode


class TestLoadConfig:
    """Precedence: kwargs > env > repo YAML > global YAML > defaults."""

    def test_given_no_config_when_load_then_defaults(self, repo: Path) -> None:
        """Missing config file yields built-in defaults."""
        config = load_config(repo)
        assert isinstance(config, CovhubConfig)
        assert config.server.port == 3000
        assert config.diff.target is None

    def test_given_repo_yaml_when_load_then_values_applied(self, repo: Path) -> None:
        """Repo YAML overrides defaults."""
        # Given
        (repo / CONFIG_FILE_NAME).write_text(
            "server:\n  port: 4000\ndiff:\n  target: main\n  command: pipx run diff-cover\n"
        )

        # When
        config = load_config(repo)

        # Then
        assert config.server.port == 4000
        assert config.server.host == "127.0.0.1"
        assert config.diff.target == "main"
        assert config.diff.command == "pipx run diff-cover"

    def test_given_env_var_when_load_then_overrides_yaml(
        self, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment variables override YAML."""
        # Given
        (repo / CONFIG_FILE_NAME).write_text("server:\n  port: 4000\n")
        monkeypatch.setenv("COVHUB__SERVER__PORT", "5000")

        # When
        config = load_config(repo)

        # Then
        assert config.server.port == 5000

    def test_given_kwargs_when_load_then_override_everything(
        self, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Direct kwargs win over env and YAML, and merge per section."""
        # Given
        (repo / CONFIG_FILE_NAME).write_text("server:\n  port: 4000\n  host: 0.0.0.0\n")
        monkeypatch.setenv("COVHUB__DIFF__TARGET", "develop")

        # When
        config = load_config(repo, server={"port": 6000}, diff={"target": "main"})

        # Then
        assert config.server.port == 6000
        assert config.server.host == "0.0.0.0"
        assert config.diff.target == "main"

    def test_given_global_config_when_load_then_repo_yaml_wins(
        self, repo: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Repo config overrides the per-user global config."""
        # Given
        global_path = tmp_path / "global.yaml"
        global_path.write_text("server:\n  port: 4100\n  reset_on_get: true\n")
        monkeypatch.setattr("covhub.config.loader.GLOBAL_CONFIG_PATH", global_path)
        (repo / CONFIG_FILE_NAME).write_text("server:\n  port: 4200\n")

        # When
        config = load_config(repo)

        # Then
        assert config.server.port == 4200
        assert config.server.reset_on_get is True

    def test_given_invalid_yaml_when_load_then_config_error(self, repo: Path) -> None:
        """Malformed YAML raises ConfigError."""
        (repo / CONFIG_FILE_NAME).write_text("server: [unclosed\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(repo)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_given_non_mapping_yaml_when_load_then_config_error(self, repo: Path) -> None:
        (repo / CONFIG_FILE_NAME).write_text("- just\n- a list\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(repo)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_given_invalid_value_when_load_then_config_error(self, repo: Path) -> None:
        """Validation failures raise ConfigError naming the field."""
        (repo / CONFIG_FILE_NAME).write_text("server:\n  port: 99999\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(repo)
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert "server" in exc_info.value.message


class TestDeepMerge:
    """Nested dict merging for global + repo YAML."""

    def test_nested_keys_merge(self) -> None:
        base = {"server": {"port": 1, "host": "a"}, "diff": {"target": "x"}}
        override = {"server": {"port": 2}}
        assert _deep_merge(base, override) == {
            "server": {"port": 2, "host": "a"},
            "diff": {"target": "x"},
        }

    def test_inputs_not_modified(self) -> None:
        base = {"server": {"port": 1}}
        _deep_merge(base, {"server": {"port": 2}})
        assert base == {"server": {"port": 1}}
