"""Tests for HTTP routes: envelopes, status codes and headers."""

import pytest

from api.providers import (
    DubbedAudioRequest,
    DubbingRequest,
    DubbingStatusRequest,
    ProviderResult,
    TranscriptionRequest,
)


# ============================================================================
# Authentication and validation
# ============================================================================


class TestRequestGuards:
    """Tests for rejected requests."""

    @pytest.mark.asyncio
    async def test_missing_identity_is_unauthorized(self, client, gateway):
        response = await client.post("/api/tts", json={"text": "Hi", "voiceId": "v"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Unauthorized"}
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_missing_field_is_bad_request(self, client, auth_headers):
        response = await client.post("/api/tts", json={"text": "Hi"}, headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("voiceId:")

    @pytest.mark.asyncio
    async def test_blank_text_is_bad_request(self, client, auth_headers):
        response = await client.post(
            "/api/tts", json={"text": "   ", "voiceId": "v"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Text is required"

    @pytest.mark.asyncio
    async def test_unknown_provider_is_bad_request(self, client, auth_headers):
        response = await client.post(
            "/api/tts",
            json={"text": "Hi", "voiceId": "v", "provider": "acme"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Unknown provider: acme"

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client):
        response = await client.get("/api/usage", headers={"X-Correlation-ID": "trace-123"})

        assert response.status_code == 401
        assert response.headers["X-Correlation-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_oversized_correlation_id_is_replaced(self, client):
        response = await client.get("/api/health/live", headers={"X-Correlation-ID": "x" * 500})

        assert len(response.headers["X-Correlation-ID"]) == 36


# ============================================================================
# Generation
# ============================================================================


class TestGenerationRoutes:
    """Tests for generation endpoints."""

    @pytest.mark.asyncio
    async def test_tts_success_envelope(self, client, auth_headers, store):
        response = await client.post(
            "/api/tts", json={"text": "Hello world", "voiceId": "voice-a"}, headers=auth_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["characterCount"] == 11
        assert data["audioUrl"] == f"/api/tts/{data['recordId']}/audio"
        assert response.headers["X-Correlation-ID"]
        assert len(store.objects) == 1

    @pytest.mark.asyncio
    async def test_quota_denial_carries_quota_payload(self, client, auth_headers, gateway, store):
        response = await client.post(
            "/api/tts", json={"text": "x" * 10_001, "voiceId": "v"}, headers=auth_headers
        )

        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["quota"] == {"dimension": "characters", "attempted": 10_001, "limit": 10_000}
        assert "characters" in body["error"]
        assert gateway.calls == []
        assert store.uploaded == []

    @pytest.mark.asyncio
    async def test_provider_status_is_passed_through(self, client, auth_headers, gateway):
        gateway.fail_with(status=429, message="rate limited")

        response = await client.post(
            "/api/sfx", json={"text": "rain on a tin roof"}, headers=auth_headers
        )

        assert response.status_code == 429
        assert response.json() == {"success": False, "error": "rate limited"}

    @pytest.mark.asyncio
    async def test_storage_failure_is_server_error(self, client, auth_headers, store):
        store.fail_upload_when = lambda path: True

        response = await client.post(
            "/api/tts", json={"text": "Hello", "voiceId": "v"}, headers=auth_headers
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Storage error"}

    @pytest.mark.asyncio
    async def test_dialogue_route(self, client, auth_headers):
        response = await client.post(
            "/api/text-to-dialogue",
            json={"inputs": [{"text": "Hi", "voiceId": "a"}, {"text": "Hey", "voiceId": "b"}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["characterCount"] == 5

    @pytest.mark.asyncio
    async def test_transcription_upload(self, client, auth_headers, gateway):
        gateway.results[TranscriptionRequest] = ProviderResult(
            metadata={"text": "hi", "words": [{"text": "hi", "end": 1.2}], "speakers": []}
        )

        response = await client.post(
            "/api/stt",
            files={"file": ("clip.mp3", b"mp3-bytes", "audio/mpeg")},
            data={"languageCode": "en", "keyterms": "alpha,beta"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["text"] == "hi"
        request, _ = gateway.calls[0]
        assert request.language_code == "en"
        assert request.keyterms == ("alpha", "beta")

    @pytest.mark.asyncio
    async def test_upload_without_file_is_bad_request(self, client, auth_headers):
        response = await client.post("/api/voice-isolator", data={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Audio file is required"


# ============================================================================
# Library and usage
# ============================================================================


class TestLibraryRoutes:
    """Tests for library endpoints."""

    async def _create(self, client, auth_headers) -> str:
        response = await client.post(
            "/api/tts", json={"text": "Library item", "voiceId": "v"}, headers=auth_headers
        )
        return response.json()["data"]["recordId"]

    @pytest.mark.asyncio
    async def test_audio_is_streamed_with_cache_headers(self, client, auth_headers, gateway):
        record_id = await self._create(client, auth_headers)

        for url in (f"/api/audio/{record_id}", f"/api/tts/{record_id}/audio"):
            response = await client.get(url, headers=auth_headers)
            assert response.status_code == 200
            assert response.content == gateway.default_result.content
            assert response.headers["content-type"] == "audio/mpeg"
            assert response.headers["cache-control"] == "private, max-age=3600"
            assert response.headers["content-length"] == str(len(gateway.default_result.content))

    @pytest.mark.asyncio
    async def test_list_get_favorite_delete(self, client, auth_headers, store):
        record_id = await self._create(client, auth_headers)

        listing = (await client.get("/api/tts?perPage=5", headers=auth_headers)).json()["data"]
        assert listing["pagination"]["total"] == 1
        assert listing["pagination"]["perPage"] == 5
        assert listing["items"][0]["recordId"] == record_id

        favorite = await client.post(f"/api/tts/{record_id}/favorite", headers=auth_headers)
        assert favorite.json()["data"] == {"recordId": record_id, "isFavorite": True}

        item = (await client.get(f"/api/tts/{record_id}", headers=auth_headers)).json()["data"]
        assert item["isFavorite"] is True
        assert item["details"]["text"] == "Library item"

        deleted = await client.delete(f"/api/tts/{record_id}", headers=auth_headers)
        assert deleted.json()["data"]["artifactsDeleted"] == 1
        assert store.objects == {}

        missing = await client.get(f"/api/tts/{record_id}", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_kind_is_not_found(self, client, auth_headers):
        response = await client.get("/api/podcasts", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Unknown record kind: podcasts"}

    @pytest.mark.asyncio
    async def test_malformed_record_id_is_bad_request(self, client, auth_headers):
        response = await client.get("/api/tts/not-a-uuid", headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_other_users_record_is_not_found(self, client, auth_headers):
        record_id = await self._create(client, auth_headers)
        stranger = {"X-User-Id": "someone_else"}

        response = await client.get(f"/api/tts/{record_id}/audio", headers=stranger)

        assert response.status_code == 404


class TestUsageRoute:
    """Tests for the usage endpoints."""

    @pytest.mark.asyncio
    async def test_usage_reflects_generation(self, client, auth_headers):
        await client.post("/api/tts", json={"text": "abcd", "voiceId": "v"}, headers=auth_headers)

        response = await client.get("/api/usage", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["plan"] == "free"
        dimensions = {item["dimension"]: item for item in data["dimensions"]}
        assert dimensions["characters"]["used"] == 4
        assert dimensions["characters"]["limit"] == 10_000
        assert dimensions["generations"]["used"] == 1

    @pytest.mark.asyncio
    async def test_history_voices_and_activity(self, client, auth_headers):
        for text in ("one", "three"):
            await client.post("/api/tts", json={"text": text, "voiceId": "voice-a"}, headers=auth_headers)

        history = (await client.get("/api/usage/history?days=3", headers=auth_headers)).json()["data"]
        voices = (await client.get("/api/usage/voices", headers=auth_headers)).json()["data"]
        activity = (await client.get("/api/usage/activity?limit=1", headers=auth_headers)).json()["data"]

        assert len(history) == 3
        assert history[0]["day"] < history[-1]["day"]
        assert history[-1]["generations"] == 2
        assert history[-1]["characters"] == 8
        assert voices == [
            {
                "voiceId": "voice-a",
                "voiceName": "voice-a",
                "generations": 2,
                "characters": 8,
                "averageLength": 4,
                "percentage": 100,
            }
        ]
        assert len(activity) == 1
        assert activity[0]["timeAgo"] == "Just now"

    @pytest.mark.asyncio
    async def test_history_window_is_bounded(self, client, auth_headers):
        response = await client.get("/api/usage/history?days=0", headers=auth_headers)
        assert response.status_code == 400


# ============================================================================
# Text-to-speech library and older feature paths
# ============================================================================


class TestLibraryPaths:
    """Tests for /api/library, /api/generations and the music paths."""

    async def _create(self, client, auth_headers, text: str, voice_id: str = "v") -> str:
        response = await client.post(
            "/api/tts", json={"text": text, "voiceId": voice_id}, headers=auth_headers
        )
        return response.json()["data"]["recordId"]

    @pytest.mark.asyncio
    async def test_library_search_and_stats(self, client, auth_headers):
        wanted = await self._create(client, auth_headers, "Morning news", voice_id="voice-a")
        await self._create(client, auth_headers, "Evening show", voice_id="voice-b")

        response = await client.get(
            "/api/library?search=MORNING&sortBy=oldest&limit=5", headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [item["recordId"] for item in data["items"]] == [wanted]
        assert data["pagination"]["perPage"] == 5
        assert data["stats"] == {
            "totalItems": 2,
            "totalFavorites": 0,
            "voices": ["voice-a", "voice-b"],
        }

    @pytest.mark.asyncio
    async def test_library_voice_filter(self, client, auth_headers):
        await self._create(client, auth_headers, "First", voice_id="voice-a")
        wanted = await self._create(client, auth_headers, "Second", voice_id="voice-b")

        data = (await client.get("/api/library?voiceId=voice-b", headers=auth_headers)).json()["data"]

        assert [item["recordId"] for item in data["items"]] == [wanted]

    @pytest.mark.asyncio
    async def test_unknown_sort_is_bad_request(self, client, auth_headers):
        response = await client.get("/api/tts?sortBy=loudest", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"].startswith("sortBy must be one of")

    @pytest.mark.asyncio
    async def test_library_favorite(self, client, auth_headers):
        record_id = await self._create(client, auth_headers, "Keep me")

        response = await client.post(f"/api/library/{record_id}/favorite", headers=auth_headers)

        assert response.json()["data"] == {"recordId": record_id, "isFavorite": True}
        stats = (await client.get("/api/library", headers=auth_headers)).json()["data"]["stats"]
        assert stats["totalFavorites"] == 1

    @pytest.mark.asyncio
    async def test_library_bulk_delete(self, client, auth_headers, store):
        first = await self._create(client, auth_headers, "One")
        second = await self._create(client, auth_headers, "Two")
        kept = await self._create(client, auth_headers, "Three")

        response = await client.request(
            "DELETE", "/api/library", json={"ids": [first, second]}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "requested": 2,
            "deletedCount": 2,
            "artifactsDeleted": 2,
            "artifactsFailed": 0,
        }
        assert len(store.objects) == 1
        listing = (await client.get("/api/generations", headers=auth_headers)).json()["data"]
        assert [item["recordId"] for item in listing["items"]] == [kept]

    @pytest.mark.asyncio
    async def test_bulk_delete_without_ids_is_bad_request(self, client, auth_headers):
        response = await client.request("DELETE", "/api/library", json={"ids": []}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No IDs provided"}

    @pytest.mark.asyncio
    async def test_generations_list_and_get(self, client, auth_headers):
        record_id = await self._create(client, auth_headers, "Spoken")

        listing = (await client.get("/api/generations?limit=3", headers=auth_headers)).json()["data"]
        item = (await client.get(f"/api/generations/{record_id}", headers=auth_headers)).json()["data"]

        assert listing["pagination"]["perPage"] == 3
        assert [entry["recordId"] for entry in listing["items"]] == [record_id]
        assert item["details"]["text"] == "Spoken"

    @pytest.mark.asyncio
    async def test_music_generate_and_history(self, client, auth_headers):
        created = await client.post(
            "/api/music/generate", json={"prompt": "slow jazz"}, headers=auth_headers
        )

        assert created.status_code == 200
        record_id = created.json()["data"]["recordId"]
        history = (await client.get("/api/music/history", headers=auth_headers)).json()["data"]
        assert [item["recordId"] for item in history["items"]] == [record_id]
        assert history["items"][0]["details"]["prompt"] == "slow jazz"


class TestDubbedAudioRoute:
    """Tests for streaming a finished dub."""

    @pytest.mark.asyncio
    async def test_dub_is_streamed_as_attachment(self, client, auth_headers, gateway):
        gateway.results[DubbingRequest] = ProviderResult(
            metadata={"dubbing_id": "dub-7", "expected_duration_sec": 12}
        )
        created = await client.post(
            "/api/dubbing",
            files={"file": ("talk.mp3", b"mp3-bytes", "audio/mpeg")},
            data={"targetLanguages": "es"},
            headers=auth_headers,
        )
        record_id = created.json()["data"]["recordId"]

        early = await client.get(f"/api/dubbing/{record_id}/audio/es", headers=auth_headers)
        assert early.status_code == 400

        gateway.results[DubbingStatusRequest] = ProviderResult(metadata={"status": "dubbed"})
        await client.get(f"/api/dubbing/{record_id}/status", headers=auth_headers)
        gateway.results[DubbedAudioRequest] = ProviderResult(content=b"hola")

        response = await client.get(f"/api/dubbing/{record_id}/audio/es", headers=auth_headers)

        assert response.status_code == 200
        assert response.content == b"hola"
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.headers["content-disposition"] == 'attachment; filename="talk_es.mp3"'
