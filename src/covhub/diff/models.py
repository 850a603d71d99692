"""Differential coverage data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DiffTargetType(str, Enum):
    """How a configured diff target is interpreted."""

    DIFF_FILE = "diff-file"
    GIT_REF = "git-ref"
    INVALID = "invalid"


class DiffCoverageState(str, Enum):
    """Lifecycle of the differential coverage pipeline for one configuration."""

    UNCONFIGURED = "unconfigured"
    VALIDATING = "validating"
    DISABLED = "disabled"
    READY = "ready"
    GENERATING = "generating"


@dataclass(frozen=True, slots=True)
class DiffTargetValidation:
    """Classification of a diff target."""

    is_valid: bool
    type: DiffTargetType
    error: str | None = None


@dataclass(frozen=True, slots=True)
class DiffInfo:
    """Files changed relative to a diff target."""

    changed_files: list[str] = field(default_factory=list)
    diff_summary: str = ""
    target_type: DiffTargetType = DiffTargetType.GIT_REF

    def to_dict(self) -> dict[str, Any]:
        return {
            "targetType": self.target_type.value,
            "changedFiles": list(self.changed_files),
            "diffSummary": self.diff_summary,
        }


@dataclass(frozen=True, slots=True)
class CachedDiffInfo:
    """DiffInfo as persisted after a successful regeneration.

    The cache is keyed only by output directory. Its ``target`` is checked
    on read so a cache written for another target is not served.
    """

    target: str
    info: DiffInfo
    generated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"target": self.target, **self.info.to_dict(), "generatedAt": self.generated_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CachedDiffInfo:
        """Build from cache JSON.

        Raises:
            KeyError, ValueError, TypeError: On malformed cache content.
        """
        changed = data["changedFiles"]
        if not isinstance(changed, list):
            raise TypeError("changedFiles must be a list")
        return cls(
            target=str(data["target"]),
            info=DiffInfo(
                changed_files=[str(p) for p in changed],
                diff_summary=str(data.get("diffSummary", "")),
                target_type=DiffTargetType(data["targetType"]),
            ),
            generated_at=str(data["generatedAt"]),
        )


@dataclass(frozen=True, slots=True)
class DiffInfoResponse:
    """Read-path answer for the diff info endpoint."""

    target: str
    info: DiffInfo
    cached: bool
    generated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "target": self.target,
            **self.info.to_dict(),
            "enableDiffCoverage": True,
            "cached": self.cached,
        }
        if self.generated_at is not None:
            data["generatedAt"] = self.generated_at
        return data
