"""Data models for intervals, records and fetch results.

Architecture:
    Records and caller requests are Pydantic v2 models (frozen) since they
    cross the library boundary and need validation. Internal value types
    (intervals, cursors, task bookkeeping) are plain dataclasses.
"""

from .interval import TimeInterval
from .record import Record, SortCursor
from .request import RangeRequest
from .result import (
    CompletenessWarning,
    FetchResult,
    FetchTask,
    MissingInterval,
    PaginationResult,
    TaskState,
)

__all__ = [
    "CompletenessWarning",
    "FetchResult",
    "FetchTask",
    "MissingInterval",
    "PaginationResult",
    "RangeRequest",
    "Record",
    "SortCursor",
    "TaskState",
    "TimeInterval",
]
