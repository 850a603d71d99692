"""Allow ``python -m covhub``."""

from covhub.cli.main import cli

cli()
