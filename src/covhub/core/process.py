"""Subprocess capability used for git queries and the diff-cover tool.

Everything that shells out goes through a ``CommandRunner`` so tests can
substitute a fake that records calls instead of spawning processes.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SEC = 30.0

# Exit code reported when the process exceeded its timeout.
TIMEOUT_EXIT_CODE = -1
# Exit code reported when the executable could not be started (shell convention).
NOT_FOUND_EXIT_CODE = 127


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one command invocation."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def timed_out(self) -> bool:
        return self.exit_code == TIMEOUT_EXIT_CODE


class CommandRunner(Protocol):
    """Runs a command to completion and captures its output."""

    def run(
        self,
        args: list[str],
        cwd: Path,
        *,
        timeout: float = DEFAULT_TIMEOUT_SEC,
    ) -> CommandResult:
        """Run ``args`` in ``cwd``.

        Implementations never raise for a failing, missing or hanging
        command; the failure is reported through ``exit_code``/``stderr``.
        """
        ...


class SubprocessRunner:
    """``CommandRunner`` backed by ``subprocess.run``."""

    def run(
        self,
        args: list[str],
        cwd: Path,
        *,
        timeout: float = DEFAULT_TIMEOUT_SEC,
    ) -> CommandResult:
        logger.debug("command_start", args=args, cwd=str(cwd))
        try:
            result = subprocess.run(
                args,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("command_timeout", args=args, timeout_sec=timeout)
            return CommandResult(
                stdout="",
                stderr=f"Command timed out after {timeout}s: {' '.join(args)}",
                exit_code=TIMEOUT_EXIT_CODE,
            )
        except (FileNotFoundError, PermissionError) as e:
            return CommandResult(stdout="", stderr=str(e), exit_code=NOT_FOUND_EXIT_CODE)

        logger.debug("command_done", args=args, exit_code=result.returncode)
        return CommandResult(
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            exit_code=result.returncode,
        )
