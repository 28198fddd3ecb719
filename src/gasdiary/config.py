"""Runtime configuration for gasdiary.

Settings come from environment variables; CLI options override them.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from gasdiary.domain.errors import ValidationError, invalid_setting


@dataclass(frozen=True)
class FetchPolicy:
    """Timeout and retry bounds for backend calls."""

    timeout: float = 10.0
    attempts: int = 3
    backoff: float = 0.5


@dataclass(frozen=True)
class SourceLimits:
    """Maximum rows read per source on each refresh."""

    pos_transactions: int = 500
    customer_payments: int = 200
    pob_transactions: int = 300
    staff_payments: int = 200
    vehicle_costs: int = 200
    daily_expenses: int = 300
    open_orders: int = 10
    due_customers: int = 10
    pending_exchanges: int = 5


@dataclass(frozen=True)
class Settings:
    database_path: Optional[str] = None
    user_id: Optional[str] = None
    cache_ttl: float = 600.0
    debounce: float = 1.0
    fetch_policy: FetchPolicy = field(default_factory=FetchPolicy)
    limits: SourceLimits = field(default_factory=SourceLimits)


def _read(env: Mapping[str, str], name: str, cast, default):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ValidationError(invalid_setting(name, raw))
    if value < 0:
        raise ValidationError(invalid_setting(name, raw))
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from environment variables.

    Raises:
        ValidationError: If a numeric variable cannot be parsed or is negative
    """
    env = os.environ if env is None else env
    defaults = Settings()
    return Settings(
        database_path=env.get("GASDIARY_DB_PATH") or None,
        user_id=env.get("GASDIARY_USER_ID") or None,
        cache_ttl=_read(env, "GASDIARY_CACHE_TTL", float, defaults.cache_ttl),
        debounce=_read(env, "GASDIARY_DEBOUNCE", float, defaults.debounce),
        fetch_policy=FetchPolicy(
            timeout=_read(env, "GASDIARY_FETCH_TIMEOUT", float, defaults.fetch_policy.timeout),
            attempts=_read(env, "GASDIARY_FETCH_ATTEMPTS", int, defaults.fetch_policy.attempts),
            backoff=_read(env, "GASDIARY_RETRY_BACKOFF", float, defaults.fetch_policy.backoff),
        ),
    )
