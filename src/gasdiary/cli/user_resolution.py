"""CLI helpers for resolving the acting user and building services."""

from __future__ import annotations

import click

from gasdiary.database.base import Database
from gasdiary.domain.entities import StaffRole
from gasdiary.domain.ledger import LedgerService, create_diary_cache
from gasdiary.domain.notifications import NotificationService
from gasdiary.domain.realtime import Scheduler

# Roles a notification consumer can hold; anyone else sees the driver feed
CONSUMER_ROLES = (StaffRole.OWNER, StaffRole.MANAGER, StaffRole.DRIVER)


def resolve_consumer_role(db: Database, user_id: str | None) -> StaffRole:
    """Resolve the acting user's role for notification filtering."""
    if not user_id:
        return StaffRole.DRIVER
    role = db.get_user_role(user_id)
    for consumer_role in CONSUMER_ROLES:
        if role == consumer_role.value:
            return consumer_role
    return StaffRole.DRIVER


def build_ledger(ctx: click.Context, scheduler: Scheduler) -> LedgerService:
    """Create a ledger service over the CLI's database and persisted store."""
    settings = ctx.obj["settings"]
    cache = create_diary_cache(store=ctx.obj["store"], settings=settings)
    return LedgerService(ctx.obj["db"], cache=cache, settings=settings, scheduler=scheduler)


def build_notifications(ctx: click.Context, scheduler: Scheduler) -> NotificationService:
    """Create a notification service for the acting user."""
    db = ctx.obj["db"]
    return NotificationService(
        db,
        ctx.obj["store"],
        role=resolve_consumer_role(db, ctx.obj["user_id"]),
        settings=ctx.obj["settings"],
        scheduler=scheduler,
    )
