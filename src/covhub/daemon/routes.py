"""HTTP routes for the covhub server.

Coverage intake, reset, raw/LCOV/zip exports, differential coverage and a
health probe. Anything that renders or shells out runs in the threadpool.
"""

from __future__ import annotations

import importlib.metadata
import json
import math
import time
from typing import TYPE_CHECKING, Any

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import (
    FileResponse,
    JSONResponse,
    PlainTextResponse,
    Response,
    StreamingResponse,
)
from starlette.routing import Route

from covhub.core.errors import CovhubError, DiffTargetInvalidError, NoCoverageDataError
from covhub.report.lcov import LCOV_FILE_NAME
from covhub.report.package import ARCHIVE_FILE_NAME, iter_archive

if TYPE_CHECKING:
    from covhub.daemon.service import CoverageService

logger = structlog.get_logger()

NO_DATA_MESSAGE = "No coverage data available. Please run some tests first."
BYTES_PER_MB = 1024 * 1024


def _get_version() -> str:
    """Get package version from installed metadata."""
    try:
        return importlib.metadata.version("covhub")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


class _BodyTooLarge(Exception):
    pass


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number {text} is out of range")
    return value


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise _BodyTooLarge
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise _BodyTooLarge
    return bytes(body)


def create_routes(
    service: CoverageService,
    *,
    max_body_mb: int = 100,
    reset_on_get: bool = False,
) -> list[Route]:
    """Create HTTP routes bound to the coverage service."""
    start_time = time.time()
    version = _get_version()
    body_limit = max_body_mb * BYTES_PER_MB

    async def merge(request: Request) -> Response:
        """Merge a posted Istanbul snapshot into the store."""
        try:
            body = await _read_body(request, body_limit)
        except _BodyTooLarge:
            return PlainTextResponse(
                f"Request body exceeds {max_body_mb} MB limit", status_code=413
            )

        if not body.strip():
            return JSONResponse({"ok": True})

        try:
            # Non-finite numbers could not be summed or served back from /object
            payload: Any = json.loads(
                body, parse_constant=_reject_constant, parse_float=_finite_float
            )
        except ValueError:
            return PlainTextResponse("Invalid JSON body", status_code=400)

        if payload is None:
            return JSONResponse({"ok": True})
        if not isinstance(payload, dict):
            return PlainTextResponse("Coverage data must be a JSON object", status_code=400)
        if not payload:
            return JSONResponse({"ok": True})

        cycle = await run_in_threadpool(service.merge, payload)
        return JSONResponse(cycle.to_dict())

    async def reset(request: Request) -> JSONResponse:
        _ = request  # unused
        service.reset()
        return JSONResponse({"ok": True})

    async def coverage_object(request: Request) -> JSONResponse:
        _ = request  # unused
        return JSONResponse(service.snapshot())

    async def lcov(request: Request) -> Response:
        _ = request  # unused
        try:
            path = await run_in_threadpool(service.lcov)
        except NoCoverageDataError:
            return PlainTextResponse(NO_DATA_MESSAGE, status_code=404)
        except OSError as e:
            logger.error("lcov_report_failed", error=str(e))
            return PlainTextResponse(f"Error creating LCOV report: {e}", status_code=500)
        return FileResponse(path, media_type="text/plain", filename=LCOV_FILE_NAME)

    async def download(request: Request) -> Response:
        _ = request  # unused
        result = await run_in_threadpool(service.download)
        if isinstance(result.error, NoCoverageDataError):
            return PlainTextResponse(NO_DATA_MESSAGE, status_code=404)
        if result.error is not None or result.archive is None:
            message = result.error.message if result.error else "Error creating download package"
            return PlainTextResponse(message, status_code=500)
        return StreamingResponse(
            iter_archive(result.archive),
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{ARCHIVE_FILE_NAME}"'},
        )

    async def diff_info(request: Request) -> JSONResponse:
        """Changed files for the configured diff target."""
        _ = request  # unused
        try:
            info = await run_in_threadpool(service.diff_info)
        except DiffTargetInvalidError as e:
            return JSONResponse({**e.to_dict(), "enableDiffCoverage": False}, status_code=400)
        except CovhubError as e:
            logger.warning("diff_info_failed", code=e.error_name, error=e.message)
            return JSONResponse(e.to_dict(), status_code=500)
        return JSONResponse(info.to_dict())

    async def diff_report(request: Request) -> Response:
        _ = request  # unused
        path = service.diff_report()
        if path is None:
            return PlainTextResponse(
                "Differential coverage report not available", status_code=404
            )
        return FileResponse(path, media_type="text/html")

    async def health(request: Request) -> JSONResponse:
        """Health check endpoint for liveness probes."""
        _ = request  # unused
        return JSONResponse(
            {
                "status": "healthy",
                "version": version,
                "uptime_seconds": round(time.time() - start_time, 1),
                "files": len(service.store),
                "merges": service.store.merge_count,
                "diff": service.diff.state.value,
            }
        )

    reset_methods = ["GET", "POST"] if reset_on_get else ["POST"]

    return [
        Route("/merge", merge, methods=["POST"]),
        Route("/reset", reset, methods=reset_methods),
        Route("/object", coverage_object, methods=["GET"]),
        Route("/lcov", lcov, methods=["GET"]),
        Route("/download", download, methods=["GET"]),
        Route("/diff/info", diff_info, methods=["GET"]),
        Route("/diff", diff_report, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
    ]
