"""HTML report rendering with Jinja2.

Produces ``index.html`` with a per-file summary table and one detail page
per file under ``files/``. Detail pages show the annotated source when the
file can be read from disk, otherwise just the line hit table.
"""

from __future__ import annotations

import functools
import hashlib
import shutil
from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import structlog
from jinja2 import Environment, PackageLoader

from covhub.core.errors import InternalError
from covhub.core.results import Outcome
from covhub.coverage.models import CoverageSnapshot, FileSummary
from covhub.coverage.summary import (
    DEFAULT_WATERMARKS,
    Watermarks,
    line_hits,
    summarize,
    watermark_class,
)

logger = structlog.get_logger()

INDEX_FILE_NAME = "index.html"
FILES_DIR_NAME = "files"


@functools.lru_cache(maxsize=1)
def templates() -> Environment:
    """Get the Jinja2 environment for the report templates."""
    env = Environment(
        loader=PackageLoader("covhub.report", "templates"),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["watermark"] = watermark_class
    return env


@dataclass(frozen=True, slots=True)
class SourceLine:
    number: int
    text: str
    hits: int | None  # None when no statement starts on this line


def detail_page_name(path: str) -> str:
    """Stable, filesystem-safe page name for a covered file."""
    digest = hashlib.sha1(path.encode("utf-8")).hexdigest()[:10]
    stem = Path(path).name or "file"
    return f"{FILES_DIR_NAME}/{stem}.{digest}.html"


def _read_source(path: str, source_root: Path | None) -> list[str] | None:
    candidate = Path(path)
    if not candidate.is_absolute() and source_root is not None:
        candidate = source_root / candidate
    try:
        return candidate.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return None


def _source_lines(path: str, hits: dict[int, int], source_root: Path | None) -> list[SourceLine]:
    text = _read_source(path, source_root)
    if text is None:
        return []
    return [SourceLine(number=i, text=line, hits=hits.get(i)) for i, line in enumerate(text, 1)]


def _write_detail(
    env: Environment,
    output_dir: Path,
    fs: FileSummary,
    snapshot: CoverageSnapshot,
    source_root: Path | None,
    watermarks: Watermarks,
    generated_at: str,
) -> None:
    hits = line_hits(snapshot[fs.path])
    page = output_dir / detail_page_name(fs.path)
    page.write_text(
        env.get_template("file.html").render(
            file=fs,
            line_hits=hits,
            source=_source_lines(fs.path, hits, source_root),
            watermarks=watermarks,
            generated_at=generated_at,
        ),
        encoding="utf-8",
    )


def _clear_output_dir(output_dir: Path, preserve: Collection[str]) -> None:
    if not output_dir.exists():
        return
    if not preserve:
        shutil.rmtree(output_dir)
        return
    for entry in output_dir.iterdir():
        if entry.name in preserve:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def render_html(
    snapshot: CoverageSnapshot,
    output_dir: Path,
    *,
    source_root: Path | None = None,
    watermarks: Watermarks = DEFAULT_WATERMARKS,
    preserve: Collection[str] = (),
) -> Outcome:
    """Render the HTML report into ``output_dir``.

    The directory is cleared and recreated first. Top-level entries named in
    ``preserve`` survive the clear; they belong to other writers sharing the
    directory. Best-effort: failures are logged and returned in the outcome,
    never raised.
    """
    if not snapshot:
        return Outcome.skip("No coverage data to render")

    try:
        _clear_output_dir(output_dir, preserve)
        (output_dir / FILES_DIR_NAME).mkdir(parents=True, exist_ok=True)

        env = templates()
        summary = summarize(snapshot)
        generated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

        for fs in summary.files:
            _write_detail(env, output_dir, fs, snapshot, source_root, watermarks, generated_at)

        (output_dir / INDEX_FILE_NAME).write_text(
            env.get_template("index.html").render(
                summary=summary,
                page_for=detail_page_name,
                watermarks=watermarks,
                generated_at=generated_at,
            ),
            encoding="utf-8",
        )
    except Exception as e:
        logger.error("html_report_failed", output_dir=str(output_dir), error=str(e), exc_info=True)
        return Outcome.failure(InternalError.unexpected(f"HTML report failed: {e}"))

    logger.info("html_report_written", output_dir=str(output_dir), files=len(summary.files))
    return Outcome.success()
