"""Domain layer for gasdiary application."""

# Services are imported lazily so that the database layer can import
# entities and errors without pulling in the services that depend on it.
_EXPORTS = {
    "LedgerService": "gasdiary.domain.ledger",
    "AnalyticsEngine": "gasdiary.domain.analytics",
    "NotificationService": "gasdiary.domain.notifications",
    "RealtimeSynchronizer": "gasdiary.domain.realtime",
    "TwoTierCache": "gasdiary.domain.cache",
}

__all__ = list(_EXPORTS)


def __getattr__(name):
    if name in _EXPORTS:
        import importlib

        return getattr(importlib.import_module(_EXPORTS[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
