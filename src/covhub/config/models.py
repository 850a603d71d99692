"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (COVHUB__SECTION__KEY)
3. Repo YAML (<repo>/.covhub.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    COVHUB__<SECTION>__<KEY>=<VALUE>

Examples:
    COVHUB__LOGGING__LEVEL=DEBUG
    COVHUB__SERVER__PORT=8080
    COVHUB__REPORT__OUTPUT_DIR=/tmp/coverage
    COVHUB__DIFF__TARGET=main
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_DIFF_COMMAND = "diff-cover"


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        COVHUB__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every subprocess invocation.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ServerConfig(BaseModel):
    """HTTP server configuration.

    Env vars:
        COVHUB__SERVER__HOST: Bind address (default: 127.0.0.1)
        COVHUB__SERVER__PORT: Port number (default: 3000)
        COVHUB__SERVER__MAX_BODY_MB: Largest accepted /merge payload
        COVHUB__SERVER__RESET_ON_GET: Also accept GET /reset
    """

    host: str = Field(
        default="127.0.0.1",
        description="Bind address. Use 0.0.0.0 to accept coverage from other hosts.",
    )
    port: int = Field(default=3000, description="Server port.")
    max_body_mb: int = Field(
        default=100,
        description="Largest coverage payload accepted by /merge (MB). "
        "Instrumented bundles produce large snapshots.",
    )
    reset_on_get: bool = Field(
        default=False,
        description="Allow resetting coverage with GET /reset (handy for browser demos).",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (0 <= v <= 65535):
            raise ValueError(f"Port must be 0-65535, got {v}")
        return v

    @field_validator("max_body_mb")
    @classmethod
    def validate_max_body(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_body_mb must be positive, got {v}")
        return v


class ReportConfig(BaseModel):
    """Report output configuration.

    Env vars:
        COVHUB__REPORT__OUTPUT_DIR: Directory for HTML, lcov.info and diff output
    """

    output_dir: str = Field(
        default="output",
        description="Report directory. Relative paths resolve against the repo root. "
        "The directory is wiped and re-rendered after every merge.",
    )

    def resolve_output_dir(self, repo_root: Path) -> Path:
        path = Path(self.output_dir).expanduser()
        if not path.is_absolute():
            path = repo_root / path
        return path


class DiffConfig(BaseModel):
    """Differential coverage configuration.

    Env vars:
        COVHUB__DIFF__TARGET: Git reference or path to a unified diff file
        COVHUB__DIFF__COMMAND: diff-cover command, may include a wrapper ("pipx run diff-cover")
        COVHUB__DIFF__TIMEOUT_SEC: diff-cover execution timeout
    """

    target: str | None = Field(
        default=None,
        description="Comparison baseline. Unset disables differential coverage.",
    )
    command: str = Field(
        default=DEFAULT_DIFF_COMMAND,
        description="diff-cover command. Use an absolute path for virtualenv installs.",
    )
    timeout_sec: float = Field(
        default=120.0,
        description="diff-cover timeout. Expiry is reported as a generation failure.",
    )

    @field_validator("target")
    @classmethod
    def blank_target_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("diff command must not be empty")
        return v


class CovhubConfig(BaseModel):
    """Root configuration for covhub.

    All settings can be configured via:
    1. Environment variables: COVHUB__SECTION__KEY
    2. YAML config file in the repo (.covhub.yaml)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
