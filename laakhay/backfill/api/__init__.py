"""High-level API facade."""

from .backfill_api import BackfillAPI

__all__ = ["BackfillAPI"]
