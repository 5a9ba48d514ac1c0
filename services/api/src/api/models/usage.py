"""Usage dashboard models."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from .base import BaseResponse


class DimensionUsageItem(BaseResponse):
    dimension: str
    used: float
    limit: float
    percentage: int = Field(ge=0, le=100)


class UsageSummaryResponse(BaseResponse):
    """Current billing period usage against plan limits."""

    plan: str
    period_start: date
    period_end: date
    days_elapsed: int
    days_remaining: int
    dimensions: list[DimensionUsageItem]
    average_daily_characters: float
    average_daily_generations: float


class UsageHistoryPoint(BaseResponse):
    """Text-to-speech volume on one UTC day."""

    day: date
    label: str = Field(description="Display label, e.g. 'Sat, Mar 14'")
    characters: int = 0
    generations: int = 0


class VoiceUsageItem(BaseResponse):
    voice_id: str
    voice_name: str
    generations: int
    characters: int
    average_length: int = Field(description="Average characters per generation")
    percentage: int = Field(ge=0, le=100, description="Share of all generations")


class ActivityItem(BaseResponse):
    record_id: UUID
    text: str
    voice_id: str
    voice_name: str
    characters: int
    duration_seconds: float = 0.0
    created_at: datetime
    time_ago: str
