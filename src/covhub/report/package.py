"""Downloadable coverage bundle.

The zip holds ``coverage.json`` (the raw snapshot) and the rendered HTML
tree under ``html/``. It is written to an anonymous temporary file and
handed back as an open binary handle, so large reports are streamed to
the client instead of being built in memory.
"""

from __future__ import annotations

import json
import tempfile
import zipfile
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import structlog

from covhub.core.errors import ArchiveCreationError, CovhubError, NoCoverageDataError
from covhub.core.results import Outcome
from covhub.coverage.models import CoverageSnapshot
from covhub.report.html import INDEX_FILE_NAME, render_html

logger = structlog.get_logger()

ARCHIVE_FILE_NAME = "coverage.zip"
SNAPSHOT_ENTRY = "coverage.json"
HTML_PREFIX = "html"
CHUNK_SIZE = 64 * 1024


@dataclass(slots=True)
class PackageResult:
    """Either an open archive handle or the reason there is none.

    Callers must check ``error`` before touching ``archive``.
    """

    archive: BinaryIO | None = None
    error: CovhubError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.archive is not None


def build_download_package(
    snapshot: CoverageSnapshot,
    output_dir: Path,
    *,
    renderer: Callable[[CoverageSnapshot, Path], Outcome] = render_html,
) -> PackageResult:
    """Bundle the snapshot and its HTML report into a zip.

    Renders the HTML report first if ``output_dir/index.html`` is missing.
    Errors are returned in the result, not raised.
    """
    if not snapshot:
        return PackageResult(error=NoCoverageDataError.empty())

    if not (output_dir / INDEX_FILE_NAME).exists():
        logger.info("download_rendering_html", output_dir=str(output_dir))
        renderer(snapshot, output_dir)

    handle: BinaryIO = tempfile.TemporaryFile()  # noqa: SIM115
    try:
        with zipfile.ZipFile(
            handle, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
        ) as zf:
            zf.writestr(SNAPSHOT_ENTRY, json.dumps(snapshot, indent=4))
            if output_dir.is_dir():
                for path in sorted(output_dir.rglob("*")):
                    if path.is_file():
                        arcname = f"{HTML_PREFIX}/{path.relative_to(output_dir).as_posix()}"
                        zf.write(path, arcname)
        handle.seek(0)
    except (OSError, ValueError, TypeError, zipfile.BadZipFile) as e:
        handle.close()
        logger.error("download_package_failed", error=str(e))
        return PackageResult(error=ArchiveCreationError.failed(str(e)))

    logger.info("download_package_built", files=len(snapshot))
    return PackageResult(archive=handle)


def iter_archive(handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield the archive in chunks, closing the handle when exhausted."""
    try:
        while chunk := handle.read(chunk_size):
            yield chunk
    finally:
        handle.close()
