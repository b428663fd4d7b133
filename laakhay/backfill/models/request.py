"""Caller-facing range request model."""

from __future__ import annotations

from datetime import UTC, date, tzinfo

from pydantic import BaseModel, ConfigDict, model_validator

from .interval import TimeInterval


class RangeRequest(BaseModel):
    """Request for every record created between two calendar dates.

    Both dates are inclusive, matching how callers usually phrase a
    reporting range ("from March 1st to March 31st").
    """

    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_order(self) -> RangeRequest:
        """Validate start_date <= end_date."""
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self

    def to_interval(self, tz: tzinfo = UTC) -> TimeInterval:
        """Convert to a half-open interval of whole days in ``tz``."""
        return TimeInterval.from_dates(self.start_date, self.end_date, tz)

    model_config = ConfigDict(frozen=True)
