"""Record and sort cursor models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass(frozen=True, order=True)
class SortCursor:
    """Position of a record in the ``(timestamp, record_id)`` total order.

    Dataclass ordering compares ``timestamp`` first, then ``record_id``,
    which breaks ties between records sharing a timestamp.
    """

    timestamp: datetime
    record_id: str

    def __str__(self) -> str:
        return f"({self.timestamp.isoformat()}, {self.record_id})"


class Record(BaseModel):
    """Time-stamped record returned by the query API.

    The payload is opaque; only ``id`` and ``timestamp`` are interpreted.
    """

    id: str = Field(..., min_length=1)
    timestamp: datetime
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Require an explicit UTC offset."""
        if v.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return v

    @property
    def sort_key(self) -> SortCursor:
        return SortCursor(timestamp=self.timestamp, record_id=self.id)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)
