"""Main CLI entry point."""

import logging
from dataclasses import replace

import click
from gasdiary.config import load_settings
from gasdiary.database.change_feed import ChangeFeed
from gasdiary.database.factories import create_sqlite_database, create_sqlite_store
from gasdiary.domain.errors import ValidationError
from gasdiary.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from gasdiary.cli.commands import (
    diary,
    analytics,
    notifications,
    cache,
    demo_data,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides GASDIARY_DB_PATH environment variable)",
    envvar="GASDIARY_DB_PATH",
)
@click.option(
    "--user-id",
    help="Acting user ID (overrides GASDIARY_USER_ID environment variable)",
    envvar="GASDIARY_USER_ID",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, user_id: str | None, verbose: bool):
    """Gasdiary - business diary for LPG distributors.

    Merges POS sales, due collections, stock purchases, salaries, vehicle
    costs and manual expenses into one ledger, with analytics and alerts.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except ValidationError as e:
            handle_domain_error(ctx, e)
        settings = replace(
            settings,
            database_path=db_path or settings.database_path,
            user_id=user_id or settings.user_id,
        )

        feed = ChangeFeed()
        db = create_sqlite_database(database_path=settings.database_path, change_feed=feed)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["store"] = create_sqlite_store(database_path=settings.database_path)
        ctx.obj["feed"] = feed
        ctx.obj["settings"] = settings
        ctx.obj["user_id"] = settings.user_id


# Register all commands
diary.register_commands(cli)
analytics.register_commands(cli)
notifications.register_commands(cli)
cache.register_commands(cli)
demo_data.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
