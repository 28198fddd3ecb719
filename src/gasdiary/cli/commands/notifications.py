"""Notification commands."""

import asyncio

import click
from gasdiary.cli.error_handling import handle_domain_error
from gasdiary.cli.user_resolution import build_notifications
from gasdiary.domain.errors import NotFoundError
from gasdiary.domain.notifications import NotificationService
from gasdiary.domain.realtime import AsyncioScheduler


def _load(ctx) -> NotificationService:
    service = build_notifications(ctx, AsyncioScheduler())
    asyncio.run(service.refresh())
    return service


@click.group()
def notifications_group():
    """View and manage alerts for the acting user."""
    pass


@notifications_group.command("list")
@click.option("--unread", is_flag=True, help="Show only unread notifications")
@click.pass_context
def list_notifications(ctx, unread: bool):
    """List notifications, most urgent first."""
    service = _load(ctx)
    items = [n for n in service.notifications if not (unread and n.read)]

    click.echo(
        f"\n{service.unread_count} unread, {service.critical_count} critical, "
        f"{service.high_priority_count} high priority ({service.role.value} view)"
    )
    if not items:
        click.echo("No notifications.")
        return

    click.echo("-" * 80)
    for notification in items:
        marker = " " if notification.read else "*"
        click.echo(f"{marker} [{notification.priority.value:<8}] {notification.title}")
        click.echo(f"    {notification.message}")
        click.echo(f"    id: {notification.id}")


@notifications_group.command("read")
@click.argument("notification_id")
@click.pass_context
def read_notification(ctx, notification_id: str):
    """Mark a notification as read."""
    service = _load(ctx)
    try:
        service.get(notification_id)
    except NotFoundError as e:
        handle_domain_error(ctx, e)
    service.mark_as_read(notification_id)
    click.echo(f"Marked '{notification_id}' as read")


@notifications_group.command("read-all")
@click.pass_context
def read_all_notifications(ctx):
    """Mark every current notification as read."""
    service = _load(ctx)
    service.mark_all_as_read()
    click.echo(f"Marked {len(service.all_notifications)} notifications as read")


@notifications_group.command("clear")
@click.pass_context
def clear_notifications(ctx):
    """Clear notifications and forget read state."""
    service = build_notifications(ctx, AsyncioScheduler())
    service.clear_notifications()
    click.echo("Cleared notifications")


@notifications_group.command("open")
@click.argument("notification_id")
@click.pass_context
def open_notification(ctx, notification_id: str):
    """Mark a notification read and show the module it points to."""
    service = _load(ctx)
    service.on_navigate(lambda module_id: click.echo(f"Open module: {module_id}"))
    try:
        target = service.open(notification_id)
    except NotFoundError as e:
        handle_domain_error(ctx, e)
    if target is None:
        click.echo("Notification has no action")


def register_commands(cli):
    """Register notification commands with main CLI."""
    cli.add_command(notifications_group, name="notifications")
