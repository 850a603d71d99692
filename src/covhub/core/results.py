"""Result type for best-effort operations.

Operations whose failure must reach the caller raise a ``CovhubError``.
Best-effort operations (HTML rendering, diff regeneration after a merge)
return an ``Outcome`` instead: the failure is logged where it happens and
recorded here, but never propagated.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from covhub.core.errors import CovhubError


@dataclass(slots=True)
class Outcome:
    """Result of an operation whose failure is absorbed."""

    ok: bool = True
    skipped: bool = False
    warnings: list[str] = field(default_factory=list)
    error: CovhubError | None = None

    @classmethod
    def success(cls, warnings: list[str] | None = None) -> Outcome:
        return cls(ok=True, warnings=list(warnings or []))

    @classmethod
    def skip(cls, reason: str) -> Outcome:
        return cls(ok=True, skipped=True, warnings=[reason])

    @classmethod
    def failure(cls, error: CovhubError, warnings: list[str] | None = None) -> Outcome:
        return cls(ok=False, warnings=list(warnings or []), error=error)

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "skipped": self.skipped,
            "warnings": self.warnings,
            "error": self.error.to_dict() if self.error else None,
        }
