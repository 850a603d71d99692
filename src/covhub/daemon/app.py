"""Starlette application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from starlette.applications import Starlette
from starlette.routing import BaseRoute, Mount
from starlette.staticfiles import StaticFiles

from covhub.config.models import CovhubConfig
from covhub.core.process import CommandRunner
from covhub.daemon.middleware import RequestIdMiddleware
from covhub.daemon.routes import create_routes
from covhub.daemon.service import CoverageService

logger = structlog.get_logger()


def create_app(
    config: CovhubConfig,
    repo_root: Path,
    *,
    runner: CommandRunner | None = None,
    service: CoverageService | None = None,
) -> Starlette:
    """Create the Starlette application serving API routes and the report tree."""
    service = service or CoverageService.from_config(config, repo_root, runner=runner)

    routes: list[BaseRoute] = list(
        create_routes(
            service,
            max_body_mb=config.server.max_body_mb,
            reset_on_get=config.server.reset_on_get,
        )
    )

    # StaticFiles stats the directory on first request, so it has to exist up front
    service.output_dir.mkdir(parents=True, exist_ok=True)
    routes.append(
        Mount(
            "/",
            app=StaticFiles(directory=service.output_dir, html=True, check_dir=False),
            name="report",
        )
    )

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        base_url = f"http://{config.server.host}:{config.server.port}"
        logger.info(
            "server_started",
            output_dir=str(service.output_dir),
            diff_state=service.diff.state.value,
        )
        logger.info("endpoint", name="report", url=f"{base_url}/")
        logger.info("endpoint", name="merge", url=f"{base_url}/merge")
        logger.info("endpoint", name="health", url=f"{base_url}/health")
        yield
        logger.info("server_stopped", files=len(service.store))

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.service = service

    app.add_middleware(RequestIdMiddleware)

    return app
