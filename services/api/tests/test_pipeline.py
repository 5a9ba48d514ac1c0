"""Tests for the generation pipeline and its compensation paths."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from shared.blob import ArtifactStoreError
from shared.db.models import Generation, VoiceIsolation
from shared.quota import QuotaDenied, QuotaDimension

from api.errors import PersistenceError, ProviderError, QuotaExceededError, ValidationError
from api.providers import ProviderResult, TranscriptionRequest, UploadedFile
from api.services.dialogue_service import DialogueInput, DialogueJob
from api.services.generation_ledger import GenerationLedger, RecordKind
from api.services.pipeline import GenerationPipeline
from api.services.transcription_service import TranscriptionJob
from api.services.tts_service import TextToSpeechJob
from api.services.voice_isolation_service import VoiceIsolationJob

RECORD_ID = UUID("0f0e0d0c-0b0a-4908-8706-050403020100")


def _pipeline(quota, gateway, store, records, analytics, clock, record_id=RECORD_ID):
    return GenerationPipeline(
        quota=quota,
        gateway=gateway,
        store=store,
        records=records,
        analytics=analytics,
        clock=clock,
        id_factory=lambda: record_id,
    )


def _failing_records(error: Exception | None = None) -> MagicMock:
    records = MagicMock(spec=GenerationLedger)
    records.create = AsyncMock(side_effect=error or SQLAlchemyError("insert failed"))
    records.delete_by_id = AsyncMock(return_value=True)
    return records


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


# ============================================================================
# Happy path
# ============================================================================


class TestSuccessfulRun:
    """Tests for a run where every step succeeds."""

    @pytest.mark.asyncio
    async def test_tts_run_stores_records_and_charges(
        self, quota, gateway, store, records, analytics, clock, user, read_usage
    ):
        """Artifact, record and counters all reflect the generation."""
        user_id = user.user_id
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock)

        result = await pipeline.run(TextToSpeechJob(text="Hello world", voice_id="voice-a"), user)

        path = f"audio/u1/2026/03/{RECORD_ID}.mp3"
        assert result.record_id == RECORD_ID
        assert result.audio_url == f"/api/tts/{RECORD_ID}/audio"
        assert result.character_count == 11
        assert list(store.objects) == [path]

        record = await records.get_owned(RecordKind.TTS, user_id, RECORD_ID)
        assert record is not None
        assert record.audio_path == path
        assert record.audio_file_id == "file-1"

        usage = await read_usage(user_id)
        assert usage[QuotaDimension.GENERATIONS] == 1
        assert usage[QuotaDimension.CHARACTERS] == 11
        assert analytics.names() == ["generation_created"]

    @pytest.mark.asyncio
    async def test_provider_is_called_once_with_job_request(self, pipeline, gateway, user):
        await pipeline.run(TextToSpeechJob(text="Hi", voice_id="voice-a"), user)
        assert len(gateway.calls) == 1
        request, provider = gateway.calls[0]
        assert request.text == "Hi"
        assert provider.value == "elevenlabs"

    @pytest.mark.asyncio
    async def test_run_within_limit_after_prior_usage(self, pipeline, user, set_usage, read_usage):
        """9,990 used plus 5 characters commits to 9,995."""
        user_id = user.user_id
        await set_usage(user, characters=9_990)
        await pipeline.run(TextToSpeechJob(text="abcde", voice_id="v"), user)
        usage = await read_usage(user_id)
        assert usage[QuotaDimension.CHARACTERS] == 9_995


# ============================================================================
# Denials before anything durable happens
# ============================================================================


class TestDenials:
    """Tests for quota and validation rejections."""

    @pytest.mark.asyncio
    async def test_character_limit_denies_before_provider(
        self, pipeline, gateway, store, analytics, user, set_usage, read_usage
    ):
        user_id = user.user_id
        await set_usage(user, characters=9_990)

        with pytest.raises(QuotaExceededError) as exc_info:
            await pipeline.run(TextToSpeechJob(text="x" * 20, voice_id="v"), user)

        denial = exc_info.value.denial
        assert denial.dimension == QuotaDimension.CHARACTERS
        assert denial.attempted == 10_010
        assert denial.limit == 10_000
        assert exc_info.value.status_code == 403
        assert gateway.calls == []
        assert store.uploaded == []
        assert (await read_usage(user_id))[QuotaDimension.CHARACTERS] == 9_990

        distinct_id, event, props = analytics.events[-1]
        assert (distinct_id, event) == ("u1", "usage_limit_hit")
        assert props == {
            "feature": "tts",
            "plan": "free",
            "limitType": "characters",
            "attempted": 10_010,
            "limit": 10_000,
        }

    @pytest.mark.asyncio
    async def test_dialogue_generation_limit_checked_first(
        self, pipeline, gateway, user, set_usage, read_usage
    ):
        """A spent dialogue slot blocks the run and no characters are charged."""
        user_id = user.user_id
        await set_usage(user, dialogue_generations=5)
        job = DialogueJob(
            inputs=[DialogueInput("Hi there", "voice-a"), DialogueInput("Hello", "voice-b")]
        )

        with pytest.raises(QuotaExceededError) as exc_info:
            await pipeline.run(job, user)

        assert exc_info.value.denial.dimension == QuotaDimension.DIALOGUE_GENERATIONS
        assert gateway.calls == []
        usage = await read_usage(user_id)
        assert usage[QuotaDimension.DIALOGUE_CHARACTERS] == 0
        assert usage[QuotaDimension.DIALOGUE_GENERATIONS] == 5

    @pytest.mark.asyncio
    async def test_measured_minutes_denied_before_upload(
        self, pipeline, gateway, store, user, read_usage
    ):
        """Minutes known only after transcription still gate the upload."""
        user_id = user.user_id
        gateway.results[TranscriptionRequest] = ProviderResult(
            metadata={"text": "long talk", "words": [{"text": "talk", "start": 0.0, "end": 400.0}]}
        )
        job = TranscriptionJob(file=UploadedFile("talk.mp3", b"mp3-bytes", "audio/mpeg"))

        with pytest.raises(QuotaExceededError) as exc_info:
            await pipeline.run(job, user)

        assert exc_info.value.denial.dimension == QuotaDimension.TRANSCRIPTION_MINUTES
        assert store.uploaded == []
        assert (await read_usage(user_id))[QuotaDimension.TRANSCRIPTIONS] == 0

    @pytest.mark.asyncio
    async def test_invalid_input_touches_nothing(self, pipeline, gateway, store):
        user = MagicMock()
        with pytest.raises(ValidationError):
            await pipeline.run(TextToSpeechJob(text="   ", voice_id="v"), user)
        assert gateway.calls == []
        assert store.uploaded == []


# ============================================================================
# Failures before persistence
# ============================================================================


class TestProviderAndUploadFailures:
    """Tests for failures that leave nothing behind."""

    @pytest.mark.asyncio
    async def test_provider_failure_leaves_counters_unchanged(
        self, pipeline, gateway, store, session, user, read_usage
    ):
        user_id = user.user_id
        gateway.fail_with(status=500)

        with pytest.raises(ProviderError) as exc_info:
            await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        assert exc_info.value.status_code == 502
        assert store.uploaded == []
        assert await _count(session, Generation) == 0
        usage = await read_usage(user_id)
        assert usage[QuotaDimension.GENERATIONS] == 0
        assert usage[QuotaDimension.CHARACTERS] == 0

    @pytest.mark.asyncio
    async def test_upload_failure_creates_no_record(
        self, pipeline, gateway, store, session, user, read_usage
    ):
        user_id = user.user_id
        store.fail_upload_when = lambda path: True

        with pytest.raises(ArtifactStoreError):
            await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        assert len(gateway.calls) == 1
        assert await _count(session, Generation) == 0
        assert (await read_usage(user_id))[QuotaDimension.GENERATIONS] == 0

    @pytest.mark.asyncio
    async def test_partial_upload_is_rolled_back(
        self, quota, gateway, store, records, analytics, clock, session, user
    ):
        """When one of two uploads fails the other is removed."""
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock, record_id=RECORD_ID)
        store.fail_upload_when = lambda path: path.endswith("_isolated.mp3")
        job = VoiceIsolationJob(file=UploadedFile("take.wav", b"RIFF-wave", "audio/wav"))

        with pytest.raises(ArtifactStoreError):
            await pipeline.run(job, user)

        assert store.removed == [f"voiceisolations/u1/2026/03/{RECORD_ID}_original.wav"]
        assert store.objects == {}
        assert await _count(session, VoiceIsolation) == 0

    @pytest.mark.asyncio
    async def test_partial_upload_cleanup_failure_is_reported(self, pipeline, store, user):
        store.fail_upload_when = lambda path: path.endswith("_isolated.mp3")
        store.fail_remove_when = lambda path: True
        job = VoiceIsolationJob(file=UploadedFile("take.wav", b"RIFF-wave", "audio/wav"))

        with pytest.raises(PersistenceError) as exc_info:
            await pipeline.run(job, user)

        message = str(exc_info.value)
        assert message.startswith("Failed to upload audio (and cleanup also failed)")
        assert "_original.wav" in message

    @pytest.mark.asyncio
    async def test_cancelled_run_removes_finished_uploads(
        self, quota, gateway, store, records, analytics, clock, session, user, read_usage
    ):
        """A run cancelled mid-upload lets the upload land, then removes it."""
        user_id = user.user_id
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock)
        started = asyncio.Event()
        release = asyncio.Event()
        upload = store.upload

        async def slow_upload(key, content, content_type="audio/mpeg"):
            started.set()
            await release.wait()
            return await upload(key, content, content_type)

        store.upload = slow_upload
        task = asyncio.create_task(pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user))
        await started.wait()

        task.cancel()
        await asyncio.sleep(0)
        release.set()

        with pytest.raises(asyncio.CancelledError):
            await task

        path = f"audio/u1/2026/03/{RECORD_ID}.mp3"
        assert store.uploaded == [path]
        assert store.removed == [path]
        assert store.objects == {}
        assert await _count(session, Generation) == 0
        assert (await read_usage(user_id))[QuotaDimension.GENERATIONS] == 0


# ============================================================================
# Compensation after upload
# ============================================================================


class TestPersistFailure:
    """Tests for a failed record write after a successful upload."""

    @pytest.mark.asyncio
    async def test_uploaded_audio_is_removed(
        self, quota, gateway, store, analytics, clock, user, read_usage
    ):
        user_id = user.user_id
        records = _failing_records()
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock, record_id="g1")

        with pytest.raises(PersistenceError) as exc_info:
            await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        assert "Failed to persist generation after uploading audio" in str(exc_info.value)
        assert exc_info.value.status_code == 500
        assert store.removed == ["audio/u1/2026/03/g1.mp3"]
        assert store.objects == {}
        usage = await read_usage(user_id)
        assert usage[QuotaDimension.GENERATIONS] == 0
        assert usage[QuotaDimension.CHARACTERS] == 0
        assert analytics.names() == []

    @pytest.mark.asyncio
    async def test_cleanup_failure_names_both_errors(
        self, quota, gateway, store, analytics, clock, user
    ):
        store.fail_remove_when = lambda path: True
        pipeline = _pipeline(quota, gateway, store, _failing_records(), analytics, clock, record_id="g1")

        with pytest.raises(PersistenceError) as exc_info:
            await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        error = exc_info.value
        assert str(error).startswith(
            "Failed to persist generation after uploading audio (and cleanup also failed)"
        )
        assert "insert failed" in str(error)
        assert "delete audio/u1/2026/03/g1.mp3" in str(error)
        assert len(error.cleanup_errors) == 1
        assert "audio/u1/2026/03/g1.mp3" in store.objects

    @pytest.mark.asyncio
    async def test_record_build_failure_removes_uploads(
        self, quota, gateway, store, records, analytics, clock, session, user
    ):
        """An error assembling the record unwinds like a failed insert."""

        class BrokenRecordJob(TextToSpeechJob):
            def build_record(self, ctx, result, stored):
                raise KeyError("audio")

        pipeline = _pipeline(quota, gateway, store, records, analytics, clock, record_id="g1")

        with pytest.raises(PersistenceError) as exc_info:
            await pipeline.run(BrokenRecordJob(text="Hello", voice_id="v"), user)

        assert "Failed to persist generation after uploading audio" in str(exc_info.value)
        assert store.removed == ["audio/u1/2026/03/g1.mp3"]
        assert store.objects == {}
        assert await _count(session, Generation) == 0


class TestCommitFailure:
    """Tests for a failed quota commit after the record was written."""

    @pytest.mark.asyncio
    async def test_record_and_artifact_are_removed(
        self, quota, gateway, store, records, analytics, clock, session, user
    ):
        user_id = user.user_id
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock)

        with patch.object(quota, "commit", AsyncMock(side_effect=SQLAlchemyError("deadlock"))):
            with pytest.raises(PersistenceError) as exc_info:
                await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        assert str(exc_info.value).startswith("Failed to update user usage")
        assert await records.get_owned(RecordKind.TTS, user_id, RECORD_ID) is None
        assert await _count(session, Generation) == 0
        assert store.objects == {}

    @pytest.mark.asyncio
    async def test_lost_race_is_reported_as_quota_error(
        self, quota, gateway, store, records, analytics, clock, session, user
    ):
        """A commit rejected by a concurrent run surfaces as 403 after cleanup."""
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock)
        denial = QuotaDenied(QuotaDimension.CHARACTERS, attempted=10_005, limit=10_000)

        with patch.object(quota, "commit", AsyncMock(side_effect=QuotaExceededError(denial))):
            with pytest.raises(QuotaExceededError):
                await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        assert await _count(session, Generation) == 0
        assert store.objects == {}
        assert analytics.names() == ["usage_limit_hit"]

    @pytest.mark.asyncio
    async def test_failed_record_cleanup_is_reported(
        self, quota, gateway, store, analytics, clock, user
    ):
        records = MagicMock(spec=GenerationLedger)
        records.create = AsyncMock(side_effect=lambda record: record)
        records.delete_by_id = AsyncMock(side_effect=SQLAlchemyError("db gone"))
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock)

        with patch.object(quota, "commit", AsyncMock(side_effect=SQLAlchemyError("deadlock"))):
            with pytest.raises(PersistenceError) as exc_info:
                await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        assert f"delete record {RECORD_ID}" in str(exc_info.value)
        assert store.objects == {}


# ============================================================================
# Analytics
# ============================================================================


class TestAnalyticsFailure:
    """Analytics problems never fail a committed generation."""

    @pytest.mark.asyncio
    async def test_event_properties_error_is_swallowed(
        self, quota, gateway, store, records, analytics, clock, user, read_usage
    ):
        class BrokenEventJob(TextToSpeechJob):
            def event_properties(self, ctx, result, record):
                raise AttributeError("duration")

        user_id = user.user_id
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock)

        result = await pipeline.run(BrokenEventJob(text="Hello", voice_id="v"), user)

        assert result.record_id == RECORD_ID
        assert await records.get_owned(RecordKind.TTS, user_id, RECORD_ID) is not None
        assert (await read_usage(user_id))[QuotaDimension.CHARACTERS] == 5
        assert analytics.names() == []

    @pytest.mark.asyncio
    async def test_capture_error_is_swallowed(
        self, quota, gateway, store, records, clock, user
    ):
        analytics = MagicMock()
        analytics.capture.side_effect = RuntimeError("collector down")
        pipeline = _pipeline(quota, gateway, store, records, analytics, clock)

        result = await pipeline.run(TextToSpeechJob(text="Hello", voice_id="v"), user)

        assert result.record_id == RECORD_ID
        analytics.capture.assert_called_once()
