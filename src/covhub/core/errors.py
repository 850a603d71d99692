"""covhub error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Coverage / reports
- 4xxx: Differential coverage
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Coverage / reports (3xxx)
    NO_COVERAGE_DATA = 3001
    ARCHIVE_CREATION_FAILED = 3002

    # Differential coverage (4xxx)
    DIFF_TARGET_INVALID = 4001
    DIFF_TOOL_UNAVAILABLE = 4002
    DIFF_FILE_NOT_FOUND = 4003
    GIT_COMMAND_FAILED = 4004
    DIFF_REPORT_FAILED = 4005

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class CovhubError(Exception):
    """Base error with structured context for HTTP responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'NO_COVERAGE_DATA')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CovhubError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class NoCoverageDataError(CovhubError):
    """The store is empty but the operation needs data."""

    @classmethod
    def empty(cls) -> "NoCoverageDataError":
        return cls(
            code=ErrorCode.NO_COVERAGE_DATA,
            message="No coverage data available",
        )


class ArchiveCreationError(CovhubError):
    """The download bundle could not be written."""

    @classmethod
    def failed(cls, reason: str) -> "ArchiveCreationError":
        return cls(
            code=ErrorCode.ARCHIVE_CREATION_FAILED,
            message=f"Error creating download package: {reason}",
            details={"reason": reason},
        )


class DiffTargetInvalidError(CovhubError):
    """Diff target is missing or resolves to neither a file nor a git ref."""

    @classmethod
    def not_configured(cls) -> "DiffTargetInvalidError":
        return cls(
            code=ErrorCode.DIFF_TARGET_INVALID,
            message="Differential coverage is not configured",
        )

    @classmethod
    def invalid(cls, target: str, reason: str) -> "DiffTargetInvalidError":
        return cls(
            code=ErrorCode.DIFF_TARGET_INVALID,
            message=reason,
            details={"target": target},
        )


class DiffToolUnavailableError(CovhubError):
    """The external diff-coverage tool cannot be executed."""

    @classmethod
    def missing(cls, command: str, reason: str) -> "DiffToolUnavailableError":
        return cls(
            code=ErrorCode.DIFF_TOOL_UNAVAILABLE,
            message=f"diff-cover command not available: {command} ({reason})",
            details={"command": command, "reason": reason},
        )


class DiffFileNotFoundError(CovhubError):
    """A diff-file target disappeared before it could be read."""

    @classmethod
    def missing(cls, path: str) -> "DiffFileNotFoundError":
        return cls(
            code=ErrorCode.DIFF_FILE_NOT_FOUND,
            message=f"Diff file not found: {path}",
            details={"path": path},
        )


class GitCommandFailedError(CovhubError):
    """A read-only git query against the diff target failed."""

    @classmethod
    def failed(cls, target: str, command: list[str], stderr: str) -> "GitCommandFailedError":
        return cls(
            code=ErrorCode.GIT_COMMAND_FAILED,
            message=f"Failed to get git diff info for '{target}': {stderr.strip()}",
            details={"target": target, "command": " ".join(command), "stderr": stderr},
        )


class DiffReportGenerationError(CovhubError):
    """diff-cover ran but did not produce a report."""

    @classmethod
    def failed(cls, reason: str, stderr: str = "") -> "DiffReportGenerationError":
        return cls(
            code=ErrorCode.DIFF_REPORT_FAILED,
            message=f"Differential coverage report failed: {reason}",
            retryable=True,
            details={"stderr": stderr},
        )


class InternalError(CovhubError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
