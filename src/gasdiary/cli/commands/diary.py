"""Business diary commands."""

import asyncio

import click
from gasdiary.cli.user_resolution import build_ledger
from gasdiary.domain.ledger import LedgerService, RefreshMode
from gasdiary.domain.realtime import AsyncioScheduler
from gasdiary.utils.amounts import format_taka


async def _load_diary(ledger: LedgerService, scheduler: AsyncioScheduler):
    """Mount the ledger and return the streams it painted."""
    mode = await ledger.mount()
    sales, expenses = ledger.sales, ledger.expenses
    # Let the background refresh update the cache for the next run
    await scheduler.drain()
    return mode, sales, expenses, ledger.stale


def load_diary(ctx: click.Context):
    scheduler = AsyncioScheduler()
    ledger = build_ledger(ctx, scheduler)
    return asyncio.run(_load_diary(ledger, scheduler))


def _print_source_note(mode: RefreshMode, stale: bool) -> None:
    if mode == RefreshMode.SOFT:
        click.echo("(served from cache)")
    if stale:
        click.echo("Warning: some sources could not be loaded; showing last known data.", err=True)


@click.group()
def diary_group():
    """View the merged business diary."""
    pass


@diary_group.command("sales")
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum entries to show")
@click.pass_context
def list_sales(ctx, limit: int):
    """List sale entries, newest first."""
    mode, sales, _, stale = load_diary(ctx)
    _print_source_note(mode, stale)

    if not sales:
        click.echo("No sales found.")
        return

    click.echo(
        f"\n{'Time':<17} {'Staff':<8} {'Product':<28} {'Qty':>4} {'Amount':>12} "
        f"{'Status':<8} {'Type':<9} Customer"
    )
    click.echo("-" * 110)
    for entry in sales[:limit]:
        product = entry.product_name[:28]
        click.echo(
            f"{entry.timestamp:%Y-%m-%d %H:%M} {entry.staff_name:<8} {product:<28} "
            f"{entry.quantity:>4} {format_taka(entry.total_amount):>12} "
            f"{entry.payment_status.value:<8} {entry.transaction_type.value:<9} "
            f"{entry.customer_name}"
        )
        if entry.return_cylinders:
            returns = ", ".join(f"{r.quantity}x {r.brand}" for r in entry.return_cylinders)
            click.echo(f"{'':<17} returned: {returns}")

    click.echo("-" * 110)
    shown = min(limit, len(sales))
    click.echo(f"Showing {shown} of {len(sales)} entries")


@diary_group.command("expenses")
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum entries to show")
@click.pass_context
def list_expenses(ctx, limit: int):
    """List expense entries, newest first."""
    mode, _, expenses, stale = load_diary(ctx)
    _print_source_note(mode, stale)

    if not expenses:
        click.echo("No expenses found.")
        return

    click.echo(f"\n{'Time':<17} {'Staff':<8} {'Category':<22} {'Amount':>12} Description")
    click.echo("-" * 100)
    for entry in expenses[:limit]:
        click.echo(
            f"{entry.timestamp:%Y-%m-%d %H:%M} {entry.staff_name:<8} "
            f"{entry.category_icon} {entry.category[:19]:<19} "
            f"{format_taka(entry.amount):>12} {entry.description}"
        )

    click.echo("-" * 100)
    shown = min(limit, len(expenses))
    click.echo(f"Showing {shown} of {len(expenses)} entries")


def register_commands(cli):
    """Register diary commands with main CLI."""
    cli.add_command(diary_group, name="diary")
