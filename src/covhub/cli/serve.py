"""covhub serve command - start the coverage server.

Loads configuration for the repository, applies command-line overrides,
prints a banner with the endpoint URLs and runs in the foreground.
"""

import asyncio
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

import click
from rich.console import Console

from covhub.config.loader import load_config
from covhub.config.models import CovhubConfig
from covhub.core.errors import ConfigError
from covhub.core.logging import configure_logging

_console = Console(stderr=True)


def _version() -> str:
    try:
        return version("covhub")
    except PackageNotFoundError:
        return "dev"


def _print_banner(config: CovhubConfig, repo_root: Path, output_dir: Path) -> None:
    """Print startup banner with endpoint info using Rich."""
    banner_width = 64
    rule_line = "─" * banner_width
    base_url = f"http://{config.server.host}:{config.server.port}"

    _console.print()
    _console.print(rule_line, style="dim cyan", highlight=False)
    _console.print(
        f"covhub v{_version()} · Ready".center(banner_width), style="bold cyan", highlight=False
    )
    _console.print(rule_line, style="dim cyan", highlight=False)
    _console.print()

    _console.print(f"  Coverage Report: {base_url}/", style="green", highlight=False)
    _console.print(f"  Merge Endpoint:  {base_url}/merge", highlight=False)
    _console.print(f"  Reset Endpoint:  {base_url}/reset", highlight=False)
    _console.print(f"  LCOV Download:   {base_url}/lcov", highlight=False)
    _console.print(f"  Zip Download:    {base_url}/download", highlight=False)
    if config.diff.target:
        _console.print(f"  Diff Coverage:   {base_url}/diff", style="green", highlight=False)
        _console.print(f"  Diff Info:       {base_url}/diff/info", highlight=False)
        _console.print(f"  Diff Target:     {config.diff.target}", style="dim", highlight=False)

    _console.print(f"  Repository:      {repo_root}", style="dim", highlight=False)
    _console.print(f"  Output:          {output_dir}", style="dim", highlight=False)
    _console.print()


def _overrides(
    host: str | None,
    port: int | None,
    output_dir: Path | None,
    diff_target: str | None,
    diff_command: str | None,
    reset_on_get: bool,
) -> dict[str, Any]:
    """Nested config kwargs for the options that were actually given."""
    server: dict[str, Any] = {}
    if host is not None:
        server["host"] = host
    if port is not None:
        server["port"] = port
    if reset_on_get:
        server["reset_on_get"] = True

    diff: dict[str, Any] = {}
    if diff_target is not None:
        diff["target"] = diff_target
    if diff_command is not None:
        diff["command"] = diff_command

    overrides: dict[str, Any] = {}
    if server:
        overrides["server"] = server
    if diff:
        overrides["diff"] = diff
    if output_dir is not None:
        overrides["report"] = {"output_dir": str(output_dir)}
    return overrides


@click.command()
@click.argument(
    "path",
    default=None,
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--port", "-p", type=int, help="Override server port")
@click.option("--host", type=str, help="Override bind address")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Report directory (relative paths resolve against PATH)",
)
@click.option("--diff-target", type=str, help="Git reference or diff file to compare against")
@click.option("--diff-command", type=str, help='diff-cover command, e.g. "pipx run diff-cover"')
@click.option("--reset-on-get", is_flag=True, help="Also accept GET /reset")
@click.pass_context
def serve_command(
    ctx: click.Context,
    path: Path | None,
    port: int | None,
    host: str | None,
    output_dir: Path | None,
    diff_target: str | None,
    diff_command: str | None,
    reset_on_get: bool,
) -> None:
    """Start the coverage server for a repository.

    PATH is the repository root used for git queries, source listings and
    relative paths. Defaults to the current directory.
    """
    from covhub.daemon.lifecycle import run_server

    repo_root = (path or Path.cwd()).resolve()

    try:
        config = load_config(
            repo_root,
            **_overrides(host, port, output_dir, diff_target, diff_command, reset_on_get),
        )
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    # -v keeps the DEBUG console set up by the group; otherwise the configured outputs apply
    if not (ctx.obj or {}).get("verbose"):
        configure_logging(config=config.logging)

    _print_banner(config, repo_root, config.report.resolve_output_dir(repo_root))

    try:
        asyncio.run(run_server(config, repo_root))
    except KeyboardInterrupt:
        click.echo("\nStopped")
