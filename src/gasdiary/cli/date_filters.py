"""CLI helpers for date resolution."""

from datetime import date

import click

from gasdiary.utils.date_parser import parse_date


def resolve_as_of(ctx: click.Context, as_of: str | None) -> date:
    """Resolve the reference date for analytics, or exit with a CLI error.

    Accepts anything ``parse_date`` does, including relative dates such as
    'yesterday' or 'last month'. Defaults to today.
    """
    if not as_of:
        return date.today()
    try:
        return parse_date(as_of)
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)
