"""Server lifecycle management."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import structlog
import uvicorn

from covhub.config.models import CovhubConfig
from covhub.core.process import CommandRunner

logger = structlog.get_logger()

# Grace period after the first shutdown signal before connections are dropped
FORCE_EXIT_SEC = 5.0


async def run_server(
    config: CovhubConfig,
    repo_root: Path,
    *,
    runner: CommandRunner | None = None,
) -> None:
    """Run the server until a shutdown signal arrives."""
    from covhub.daemon.app import create_app

    app = create_app(config, repo_root, runner=runner)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning",  # Use structlog instead
        ws="none",
    )
    server = uvicorn.Server(uvicorn_config)

    # Setup signal handlers with force exit on second signal
    loop = asyncio.get_running_loop()
    shutdown_count = 0
    force_exit_task: asyncio.Task[None] | None = None

    async def force_exit_after_timeout() -> None:
        await asyncio.sleep(FORCE_EXIT_SEC)
        logger.info("forcing_exit_after_timeout")
        server.force_exit = True

    def signal_handler() -> None:
        nonlocal shutdown_count, force_exit_task
        shutdown_count += 1
        logger.info("shutdown_signal_received", count=shutdown_count)
        server.should_exit = True
        if shutdown_count == 1:
            force_exit_task = loop.create_task(force_exit_after_timeout())
        else:
            server.force_exit = True
            if force_exit_task:
                force_exit_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await server.serve()
    finally:
        if force_exit_task:
            force_exit_task.cancel()
