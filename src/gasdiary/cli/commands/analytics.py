"""Analytics command."""

import click
from gasdiary.cli.commands.diary import load_diary
from gasdiary.cli.date_filters import resolve_as_of
from gasdiary.domain.analytics import compute_analytics
from gasdiary.utils.amounts import format_taka


def _row(label: str, income, expenses, profit) -> str:
    return (
        f"{label:<12} {format_taka(income):>14} {format_taka(expenses):>14} "
        f"{format_taka(profit):>14}"
    )


@click.command("analytics")
@click.option("--as-of", help="Reference date (YYYY-MM-DD or relative like 'yesterday')")
@click.pass_context
def analytics(ctx, as_of: str | None):
    """Show income, expenses and profit over rolling windows."""
    today = resolve_as_of(ctx, as_of)
    _, sales, expenses, stale = load_diary(ctx)
    if stale:
        click.echo("Warning: some sources could not be loaded; showing last known data.", err=True)

    result = compute_analytics(sales, expenses, today)

    click.echo(f"\nBusiness Diary Analytics (as of {today.isoformat()}):")
    click.echo("-" * 58)
    click.echo(f"{'Period':<12} {'Income':>14} {'Expenses':>14} {'Profit':>14}")
    click.echo("-" * 58)
    click.echo(_row("Today", result.today_income, result.today_expenses, result.today_profit))
    click.echo(_row("This week", result.weekly_income, result.weekly_expenses, result.weekly_profit))
    click.echo(_row("This month", result.monthly_income, result.monthly_expenses, result.monthly_profit))
    click.echo(_row("This year", result.yearly_income, result.yearly_expenses, result.yearly_profit))
    click.echo("-" * 58)
    click.echo(f"Income growth vs last month:   {result.income_growth:+.1f}%")
    click.echo(f"Expense growth vs last month:  {result.expense_growth:+.1f}%")
    click.echo(f"Profit margin this month:      {result.profit_margin:.1f}%")

    if result.top_products:
        click.echo("\nTop products this month:")
        for product in result.top_products:
            click.echo(f"    {product.name:<36} {format_taka(product.amount):>14} ({product.count} sold)")

    if result.top_expense_categories:
        click.echo("\nTop expense categories this month:")
        for category in result.top_expense_categories:
            click.echo(f"    {category.icon} {category.name:<34} {format_taka(category.amount):>14}")

    if result.payment_breakdown:
        click.echo("\nPaid sales by payment method:")
        for payment in result.payment_breakdown:
            click.echo(f"    {payment.method:<36} {format_taka(payment.amount):>14}")


def register_commands(cli):
    """Register analytics command with main CLI."""
    cli.add_command(analytics)
