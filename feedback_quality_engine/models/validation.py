"""Validation of caller-supplied analytics parameters."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .common import ExplicitRange, NamedTimeframe, TimeframeRequest, ensure_utc


NAMED_TIMEFRAMES = (
    "7days", "30days", "90days", "thisMonth", "lastMonth",
    "week", "month", "year", "all",
)


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


class InvalidTimeframeError(ValidationError, ValueError):
    """Raised when a timeframe name or explicit range cannot be resolved."""
    pass


class AnalyticsQueryValidator(BaseModel):
    """Pydantic validator for analytics query parameters."""

    project_id: Optional[str] = Field(None, min_length=1, max_length=100)
    user_id: Optional[str] = Field(None, min_length=1, max_length=100)
    timeframe: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    category_ids: Optional[List[str]] = Field(None, max_length=50)
    quality_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)

    @field_validator('timeframe')
    @classmethod
    def validate_timeframe(cls, v):
        """Only known timeframe names are accepted."""
        if v is not None and v not in NAMED_TIMEFRAMES:
            raise ValueError(f"Timeframe must be one of {list(NAMED_TIMEFRAMES)}")
        return v

    @field_validator('category_ids')
    @classmethod
    def validate_category_ids(cls, v):
        if v is None:
            return v
        cleaned = [c.strip() for c in v if c and c.strip()]
        return cleaned or None

    @model_validator(mode='after')
    def validate_window(self):
        """Either a named timeframe or a complete, ordered explicit range."""
        if self.timeframe is not None and (self.start is not None or self.end is not None):
            raise ValueError("Use either timeframe or start/end, not both")
        if (self.start is None) != (self.end is None):
            raise ValueError("Both start and end are required for an explicit range")
        if self.start is not None and ensure_utc(self.start) > ensure_utc(self.end):
            raise ValueError("start must not be after end")
        return self

    def to_request(self) -> Optional[TimeframeRequest]:
        """Return the tagged timeframe request, or None when no window was given."""
        if self.timeframe is not None:
            return NamedTimeframe(self.timeframe)
        if self.start is not None:
            return ExplicitRange(self.start, self.end)
        return None
