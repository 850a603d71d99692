"""Report generation: HTML tree, LCOV file and download bundle."""

from covhub.report.html import INDEX_FILE_NAME, render_html
from covhub.report.lcov import LCOV_FILE_NAME, format_lcov, render_lcov
from covhub.report.package import (
    ARCHIVE_FILE_NAME,
    PackageResult,
    build_download_package,
    iter_archive,
)

__all__ = [
    "ARCHIVE_FILE_NAME",
    "INDEX_FILE_NAME",
    "LCOV_FILE_NAME",
    "PackageResult",
    "build_download_package",
    "format_lcov",
    "iter_archive",
    "render_html",
    "render_lcov",
]
