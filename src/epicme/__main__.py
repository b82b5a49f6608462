"""Allow ``python -m epicme``."""

from epicme.cli import cli

cli()
