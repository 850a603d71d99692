"""Core module exports."""

from covhub.core.errors import (
    ArchiveCreationError,
    ConfigError,
    CovhubError,
    DiffFileNotFoundError,
    DiffReportGenerationError,
    DiffTargetInvalidError,
    DiffToolUnavailableError,
    ErrorCode,
    GitCommandFailedError,
    InternalError,
    NoCoverageDataError,
)
from covhub.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)
from covhub.core.process import CommandResult, CommandRunner, SubprocessRunner
from covhub.core.results import Outcome

__all__ = [
    # Errors
    "ArchiveCreationError",
    "ConfigError",
    "CovhubError",
    "DiffFileNotFoundError",
    "DiffReportGenerationError",
    "DiffTargetInvalidError",
    "DiffToolUnavailableError",
    "ErrorCode",
    "GitCommandFailedError",
    "InternalError",
    "NoCoverageDataError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
    # Processes
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    # Results
    "Outcome",
]
