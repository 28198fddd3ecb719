"""Rendering of domain failures for diary commands."""

import logging

import click

from gasdiary.domain.errors import DomainError

logger = logging.getLogger("gasdiary.cli")


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Print ``error`` to stderr and exit with status 1.

    The traceback only goes to the log at DEBUG, so ``--verbose`` shows it.
    """
    logger.debug("Command '%s' failed", ctx.command_path, exc_info=error)
    click.secho(f"Error: {error}", fg="red", err=True)
    ctx.exit(1)
