"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides shared fixtures for coverage snapshots and a scripted
command runner.
"""

import os
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local covhub package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of covhub modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("covhub"):
        del sys.modules[module_name]

from covhub.core.process import CommandResult  # noqa: E402


Effect = Callable[[list[str]], None]


class FakeRunner:
    """CommandRunner that answers from scripted responses and records calls.

    Responses are matched on an argv prefix; the most recently registered
    match wins. Unmatched commands fail with exit code 1.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.cwds: list[Path] = []
        self.timeouts: list[float] = []
        self._responses: list[tuple[list[str], CommandResult, Effect | None]] = []

    def on(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        effect: Effect | None = None,
    ) -> "FakeRunner":
        self._responses.append(
            (list(prefix), CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code), effect)
        )
        return self

    def run(self, args: list[str], cwd: Path, *, timeout: float = 30.0) -> CommandResult:
        self.calls.append(list(args))
        self.cwds.append(cwd)
        self.timeouts.append(timeout)
        for prefix, result, effect in reversed(self._responses):
            if args[: len(prefix)] == prefix:
                if effect is not None:
                    effect(list(args))
                return result
        return CommandResult(stdout="", stderr=f"unexpected command: {args}", exit_code=1)

    def calls_starting_with(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if c[: len(prefix)] == list(prefix)]


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Scripted command runner; nothing is executed."""
    return FakeRunner()


def make_record(
    path: str,
    statements: dict[str, int] | None = None,
    *,
    functions: dict[str, int] | None = None,
    branches: dict[str, list[int]] | None = None,
) -> dict[str, Any]:
    """Istanbul file record with one statement per line (statement N on line N+1)."""
    statements = statements if statements is not None else {"0": 1}
    record: dict[str, Any] = {
        "path": path,
        "statementMap": {
            sid: {
                "start": {"line": int(sid) + 1, "column": 0},
                "end": {"line": int(sid) + 1, "column": 10},
            }
            for sid in statements
        },
        "s": dict(statements),
        "fnMap": {},
        "f": {},
        "branchMap": {},
        "b": {},
    }
    if functions is not None:
        record["fnMap"] = {
            fid: {
                "name": f"fn{fid}",
                "decl": {"start": {"line": int(fid) + 1, "column": 0}},
                "loc": {"start": {"line": int(fid) + 1, "column": 0}},
                "line": int(fid) + 1,
            }
            for fid in functions
        }
        record["f"] = dict(functions)
    if branches is not None:
        record["branchMap"] = {
            bid: {
                "type": "if",
                "line": int(bid) + 1,
                "loc": {"start": {"line": int(bid) + 1, "column": 0}},
                "locations": [{"start": {"line": int(bid) + 1, "column": 0}} for _ in arms],
            }
            for bid, arms in branches.items()
        }
        record["b"] = {bid: list(arms) for bid, arms in branches.items()}
    return record


@pytest.fixture
def record_factory() -> Callable[..., dict[str, Any]]:
    """Factory for Istanbul file records."""
    return make_record


@pytest.fixture
def repo(tmp_path: Path) -> Generator[Path, None, None]:
    """Repository root with a fake .git directory."""
    root = tmp_path / "repo"
    root.mkdir()
    (root / ".git").mkdir()
    yield root


@pytest.fixture(autouse=True)
def _isolate_global_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the per-user config file and COVHUB__* env vars out of tests."""
    monkeypatch.setattr(
        "covhub.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "no-global-config.yaml"
    )
    for key in [k for k in os.environ if k.startswith("COVHUB__")]:
        monkeypatch.delenv(key)
