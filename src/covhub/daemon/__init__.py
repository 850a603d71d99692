"""covhub daemon - HTTP server accumulating coverage and serving reports."""

from covhub.daemon.app import create_app
from covhub.daemon.lifecycle import run_server
from covhub.daemon.service import CoverageService, MergeCycle

__all__ = [
    "CoverageService",
    "MergeCycle",
    "create_app",
    "run_server",
]
