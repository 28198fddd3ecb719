"""Cache commands."""

import click
from gasdiary.cli.user_resolution import build_ledger
from gasdiary.domain.realtime import AsyncioScheduler


@click.group()
def cache_group():
    """Manage the persisted diary cache."""
    pass


@cache_group.command("clear")
@click.pass_context
def clear_cache(ctx):
    """Remove the cached diary snapshot."""
    ledger = build_ledger(ctx, AsyncioScheduler())
    ledger.clear_cache()
    click.echo("Cleared diary cache")


def register_commands(cli):
    """Register cache commands with main CLI."""
    cli.add_command(cache_group, name="cache")
