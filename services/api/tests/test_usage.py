"""Tests for the usage dashboard views built from text-to-speech records."""

from datetime import datetime, timedelta, timezone

import pytest

from shared.db.models import ClonedVoice, Generation

from api.services.usage_service import UsageService, day_label, time_ago

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def usage(quota) -> UsageService:
    return UsageService(quota)


@pytest.fixture
def speech(records, user):
    """Insert a text-to-speech record, e.g. ``await speech("Hi", hours_ago=2)``."""
    user_id = user.user_id

    async def _speech(text: str, voice_id: str = "voice-a", hours_ago: float = 0, duration=None):
        created_at = NOW - timedelta(hours=hours_ago)
        return await records.create(
            Generation(
                user_id=user_id,
                audio_path=f"audio/u1/2026/03/{len(text)}-{hours_ago}.mp3",
                text=text,
                voice_id=voice_id,
                character_count=len(text),
                duration_seconds=duration,
                created_at=created_at,
                updated_at=created_at,
            )
        )

    return _speech


# ============================================================================
# Formatting helpers
# ============================================================================


class TestFormatting:
    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=20), "Just now"),
            (timedelta(minutes=5), "5m ago"),
            (timedelta(hours=3), "3h ago"),
            (timedelta(hours=30), "Yesterday"),
            (timedelta(days=4), "4d ago"),
            (timedelta(days=10), "Mar 4"),
        ],
    )
    def test_time_ago(self, delta, expected):
        assert time_ago(NOW - delta, NOW) == expected

    def test_naive_timestamps_are_utc(self):
        assert time_ago(datetime(2026, 3, 14, 9, 0), NOW) == "30m ago"

    def test_day_label(self):
        assert day_label(NOW.date()) == "Sat, Mar 14"


# ============================================================================
# History
# ============================================================================


class TestHistory:
    """Tests for the per-day history."""

    @pytest.mark.asyncio
    async def test_days_are_zero_filled_oldest_first(self, usage, user):
        history = await usage.history(user, days=3)

        assert [point.day.isoformat() for point in history] == [
            "2026-03-12",
            "2026-03-13",
            "2026-03-14",
        ]
        assert all(point.generations == 0 and point.characters == 0 for point in history)

    @pytest.mark.asyncio
    async def test_records_are_grouped_by_day(self, usage, user, speech):
        await speech("Hello", hours_ago=1)
        await speech("Hi", hours_ago=2)
        await speech("Yesterday", hours_ago=24)
        await speech("Too old", hours_ago=24 * 10)

        history = await usage.history(user, days=7)

        by_day = {point.day.isoformat(): point for point in history}
        assert len(history) == 7
        assert (by_day["2026-03-14"].generations, by_day["2026-03-14"].characters) == (2, 7)
        assert (by_day["2026-03-13"].generations, by_day["2026-03-13"].characters) == (1, 9)
        assert sum(point.generations for point in history) == 3


# ============================================================================
# Per voice and recent activity
# ============================================================================


class TestVoiceBreakdown:
    """Tests for usage grouped by voice."""

    @pytest.mark.asyncio
    async def test_busiest_voice_first_with_clone_names(self, usage, records, user, speech):
        await records.create(
            ClonedVoice(
                user_id=user.user_id,
                audio_path="voices/u1/2026/03/clone.mp3",
                voice_id="voice-b",
                name="My Voice",
                samples=[],
            )
        )
        await speech("aaaa", voice_id="voice-a")
        await speech("bb", voice_id="voice-b", hours_ago=1)
        await speech("bbbb", voice_id="voice-b", hours_ago=2)
        await speech("bbbbbb", voice_id="voice-b", hours_ago=3)

        breakdown = await usage.by_voice(user)

        assert [item.voice_id for item in breakdown] == ["voice-b", "voice-a"]
        top = breakdown[0]
        assert top.voice_name == "My Voice"
        assert (top.generations, top.characters, top.average_length, top.percentage) == (3, 12, 4, 75)
        assert breakdown[1].voice_name == "voice-a"
        assert breakdown[1].percentage == 25

    @pytest.mark.asyncio
    async def test_no_records(self, usage, user):
        assert await usage.by_voice(user) == []


class TestRecentActivity:
    """Tests for the latest generations feed."""

    @pytest.mark.asyncio
    async def test_newest_first_and_limited(self, usage, user, speech):
        await speech("oldest", hours_ago=5)
        await speech("newest", hours_ago=0.5, duration=2.5)
        await speech("middle", hours_ago=2)

        activity = await usage.recent_activity(user, limit=2)

        assert [item.text for item in activity] == ["newest", "middle"]
        assert activity[0].time_ago == "30m ago"
        assert activity[0].duration_seconds == 2.5
        assert activity[0].characters == 6
        assert activity[1].duration_seconds == 0.0
