"""Swappable record sources for tests and examples."""

from .in_memory import FailureRule, InMemoryRecordSource, QueryCall, synthetic_records

__all__ = ["FailureRule", "InMemoryRecordSource", "QueryCall", "synthetic_records"]
