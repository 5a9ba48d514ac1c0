"""Usage dashboard service."""

from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, select

from shared.db.models import ClonedVoice, Generation, User

from ..constants import RECENT_ACTIVITY_DEFAULT_LIMIT, USAGE_HISTORY_DEFAULT_DAYS
from ..models.usage import (
    ActivityItem,
    DimensionUsageItem,
    UsageHistoryPoint,
    UsageSummaryResponse,
    VoiceUsageItem,
)
from .quota_ledger import QuotaLedger


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def time_ago(then: datetime, now: datetime) -> str:
    """Short relative time, e.g. ``5m ago`` or ``Yesterday``."""
    elapsed = now - _as_utc(then)
    minutes = int(elapsed.total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days}d ago"
    return f"{then:%b} {then.day}"


def day_label(day: date) -> str:
    return f"{day:%a}, {day:%b} {day.day}"


class UsageService:
    """Current-period usage against plan limits, plus text-to-speech activity.

    The history, per-voice and activity views read the text-to-speech
    records themselves rather than the usage counters, so they cover every
    period and reflect deletions.
    """

    def __init__(self, quota: QuotaLedger):
        self.quota = quota
        self.session = quota.session
        self.clock = quota.clock

    async def summary(self, user: User) -> UsageSummaryResponse:
        summary = await self.quota.usage_summary(user)
        return UsageSummaryResponse(
            plan=summary.plan,
            period_start=summary.period_start,
            period_end=summary.period_end,
            days_elapsed=summary.days_elapsed,
            days_remaining=summary.days_remaining,
            dimensions=[
                DimensionUsageItem(
                    dimension=item.dimension.value,
                    used=item.used,
                    limit=item.limit,
                    percentage=item.percentage,
                )
                for item in summary.dimensions
            ],
            average_daily_characters=summary.average_daily_characters,
            average_daily_generations=summary.average_daily_generations,
        )

    async def history(self, user: User, days: int = USAGE_HISTORY_DEFAULT_DAYS) -> list[UsageHistoryPoint]:
        """Characters and generations per UTC day, oldest first.

        Every day of the window is present, zero-filled when idle. The
        window ends today.
        """
        today = self.clock().date()
        first_day = today - timedelta(days=days - 1)
        since = datetime.combine(first_day, datetime.min.time())

        result = await self.session.execute(
            select(Generation.created_at, Generation.character_count).where(
                Generation.user_id == user.user_id,
                Generation.created_at >= since,
            )
        )
        points = {
            first_day + timedelta(days=offset): UsageHistoryPoint(
                day=first_day + timedelta(days=offset),
                label=day_label(first_day + timedelta(days=offset)),
            )
            for offset in range(days)
        }
        for created_at, characters in result.all():
            point = points.get(_as_utc(created_at).date())
            if point is None:
                continue
            point.characters += characters or 0
            point.generations += 1
        return [points[day] for day in sorted(points)]

    async def _voice_names(self, user: User) -> dict[str, str]:
        result = await self.session.execute(
            select(ClonedVoice.voice_id, ClonedVoice.name).where(ClonedVoice.user_id == user.user_id)
        )
        return {voice_id: name for voice_id, name in result.all()}

    async def by_voice(self, user: User) -> list[VoiceUsageItem]:
        """Generation counts per voice, busiest voice first."""
        generations = func.count(Generation.record_id)
        result = await self.session.execute(
            select(
                Generation.voice_id,
                generations,
                func.coalesce(func.sum(Generation.character_count), 0),
            )
            .where(Generation.user_id == user.user_id)
            .group_by(Generation.voice_id)
            .order_by(generations.desc(), Generation.voice_id)
        )
        rows = result.all()
        total = sum(row[1] for row in rows)
        names = await self._voice_names(user)
        return [
            VoiceUsageItem(
                voice_id=voice_id,
                voice_name=names.get(voice_id, voice_id),
                generations=count,
                characters=int(characters),
                average_length=round(characters / count) if count else 0,
                percentage=round(count / total * 100) if total else 0,
            )
            for voice_id, count, characters in rows
        ]

    async def recent_activity(
        self,
        user: User,
        limit: int = RECENT_ACTIVITY_DEFAULT_LIMIT,
    ) -> list[ActivityItem]:
        """The user's latest text-to-speech generations, newest first."""
        result = await self.session.execute(
            select(Generation)
            .where(Generation.user_id == user.user_id)
            .order_by(Generation.created_at.desc())
            .limit(limit)
        )
        records = result.scalars().all()
        names = await self._voice_names(user)
        now = self.clock()
        return [
            ActivityItem(
                record_id=record.record_id,
                text=record.text,
                voice_id=record.voice_id,
                voice_name=names.get(record.voice_id, record.voice_id),
                characters=record.character_count,
                duration_seconds=record.duration_seconds or 0.0,
                created_at=_as_utc(record.created_at),
                time_ago=time_ago(record.created_at, now),
            )
            for record in records
        ]
