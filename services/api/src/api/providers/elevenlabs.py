"""ElevenLabs API client."""

import json
import os
import re

from .base import (
    BaseProvider,
    DialogueRequest,
    DubbedAudioRequest,
    DubbingRequest,
    DubbingStatusRequest,
    Handler,
    MusicRequest,
    ProviderName,
    ProviderResult,
    SoundEffectRequest,
    SpeechRequest,
    TranscriptionRequest,
    VoiceCloneRequest,
    VoiceConversionRequest,
    VoiceIsolationRequest,
)

DEFAULT_BASE_URL = "https://api.elevenlabs.io/v1"
MUSIC_MODEL = "music_v1"
VOICE_ALIAS_PREFIX = "ELEVENLABS_VOICE_"


def resolve_voice_id(voice_id: str) -> str:
    """Resolve a voice alias through ``ELEVENLABS_VOICE_<ALIAS>``.

    Unknown aliases are returned unchanged and treated as provider ids.
    """
    alias = re.sub(r"[^A-Z0-9]+", "_", voice_id.upper()).strip("_")
    return os.environ.get(f"{VOICE_ALIAS_PREFIX}{alias}", voice_id)


def _form_bool(value: bool) -> str:
    return "true" if value else "false"


class ElevenLabsProvider(BaseProvider):
    """Speech, audio, music, dubbing and voice cloning via ElevenLabs."""

    name = ProviderName.ELEVENLABS
    display_name = "ElevenLabs"
    api_key_env = "ELEVENLABS_API_KEY"

    def handlers(self) -> dict[type, Handler]:
        return {
            SpeechRequest: self.text_to_speech,
            TranscriptionRequest: self.speech_to_text,
            SoundEffectRequest: self.sound_generation,
            MusicRequest: self.compose_music,
            VoiceIsolationRequest: self.isolate_voice,
            VoiceConversionRequest: self.speech_to_speech,
            DialogueRequest: self.text_to_dialogue,
            DubbingRequest: self.create_dubbing,
            DubbingStatusRequest: self.get_dubbing,
            DubbedAudioRequest: self.get_dubbed_audio,
            VoiceCloneRequest: self.add_voice,
        }

    @property
    def headers(self) -> dict[str, str]:
        return {"xi-api-key": self.api_key}

    async def text_to_speech(self, request: SpeechRequest) -> ProviderResult:
        voice_id = resolve_voice_id(request.voice_id)
        response = await self.client.post(
            f"{self.base_url}/text-to-speech/{voice_id}",
            headers={**self.headers, "Accept": "audio/mpeg"},
            json={
                "text": request.text,
                "model_id": request.model_id,
                "voice_settings": {
                    "stability": request.stability,
                    "similarity_boost": request.similarity_boost,
                },
            },
        )
        self.check_response(response)
        return ProviderResult(
            content=response.content,
            content_type="audio/mpeg",
            metadata={"voice_id": voice_id, "model_id": request.model_id},
        )

    async def speech_to_text(self, request: TranscriptionRequest) -> ProviderResult:
        data = {
            "model_id": request.model_id,
            "tag_audio_events": _form_bool(request.tag_audio_events),
            "diarize": _form_bool(request.diarize),
        }
        if request.language_code:
            data["language_code"] = request.language_code
        if request.keyterms:
            data["keyterms"] = json.dumps(list(request.keyterms))

        response = await self.client.post(
            f"{self.base_url}/speech-to-text",
            headers=self.headers,
            data=data,
            files={"file": request.file.as_multipart()},
        )
        self.check_response(response)

        payload = response.json()
        words = payload.get("words") or []
        speakers = payload.get("speakers") or sorted(
            {w["speaker_id"] for w in words if w.get("speaker_id")}
        )
        return ProviderResult(
            metadata={
                "text": payload.get("text", ""),
                "language_code": payload.get("language_code"),
                "language_probability": payload.get("language_probability"),
                "words": words,
                "speakers": speakers,
            }
        )

    async def sound_generation(self, request: SoundEffectRequest) -> ProviderResult:
        body: dict = {
            "text": request.text,
            "prompt_influence": request.prompt_influence,
        }
        if request.duration_seconds is not None:
            body["duration_seconds"] = request.duration_seconds

        response = await self.client.post(
            f"{self.base_url}/sound-generation",
            headers={**self.headers, "Accept": "audio/mpeg"},
            json=body,
        )
        self.check_response(response)
        return ProviderResult(content=response.content)

    async def compose_music(self, request: MusicRequest) -> ProviderResult:
        response = await self.client.post(
            f"{self.base_url}/music",
            headers=self.headers,
            json={
                "prompt": request.prompt,
                "music_length_ms": request.duration_ms,
                "model_id": MUSIC_MODEL,
                "force_instrumental": request.instrumental,
            },
        )
        self.check_response(response)
        return ProviderResult(
            content=response.content,
            metadata={"duration_ms": request.duration_ms, "lyrics": request.lyrics or ""},
        )

    async def isolate_voice(self, request: VoiceIsolationRequest) -> ProviderResult:
        response = await self.client.post(
            f"{self.base_url}/audio-isolation",
            headers=self.headers,
            files={"audio": request.file.as_multipart()},
        )
        self.check_response(response)
        return ProviderResult(content=response.content)

    async def speech_to_speech(self, request: VoiceConversionRequest) -> ProviderResult:
        voice_id = resolve_voice_id(request.voice_id)
        response = await self.client.post(
            f"{self.base_url}/speech-to-speech/{voice_id}",
            headers=self.headers,
            params={"output_format": request.output_format},
            data={
                "model_id": request.model_id,
                "voice_settings": json.dumps(request.voice_settings),
                "remove_background_noise": _form_bool(request.remove_background_noise),
            },
            files={"audio": request.file.as_multipart()},
        )
        self.check_response(response)
        return ProviderResult(content=response.content, metadata={"voice_id": voice_id})

    async def text_to_dialogue(self, request: DialogueRequest) -> ProviderResult:
        response = await self.client.post(
            f"{self.base_url}/text-to-dialogue",
            headers={**self.headers, "Accept": "audio/mpeg"},
            json={
                "inputs": [
                    {"text": line.text, "voice_id": resolve_voice_id(line.voice_id)}
                    for line in request.inputs
                ]
            },
        )
        self.check_response(response)
        return ProviderResult(content=response.content)

    async def create_dubbing(self, request: DubbingRequest) -> ProviderResult:
        data = {
            "name": request.name,
            "target_lang": ",".join(request.target_languages),
            "source_lang": request.source_language or "auto",
        }
        if request.num_speakers:
            data["num_speakers"] = str(request.num_speakers)

        response = await self.client.post(
            f"{self.base_url}/dubbing",
            headers=self.headers,
            data=data,
            files={"file": request.file.as_multipart()},
        )
        self.check_response(response)

        payload = response.json()
        return ProviderResult(
            metadata={
                "dubbing_id": payload.get("dubbing_id"),
                "expected_duration_sec": payload.get("expected_duration_sec"),
            }
        )

    async def get_dubbing(self, request: DubbingStatusRequest) -> ProviderResult:
        response = await self.client.get(
            f"{self.base_url}/dubbing/{request.dubbing_id}",
            headers=self.headers,
        )
        self.check_response(response)

        payload = response.json()
        return ProviderResult(
            metadata={
                "status": payload.get("status"),
                "target_languages": payload.get("target_languages") or [],
                "error": payload.get("error"),
            }
        )

    async def get_dubbed_audio(self, request: DubbedAudioRequest) -> ProviderResult:
        response = await self.client.get(
            f"{self.base_url}/dubbing/{request.dubbing_id}/audio/{request.language_code}",
            headers=self.headers,
        )
        self.check_response(response)
        return ProviderResult(
            content=response.content,
            content_type=response.headers.get("content-type") or "audio/mpeg",
            metadata={"language_code": request.language_code},
        )

    async def add_voice(self, request: VoiceCloneRequest) -> ProviderResult:
        data = {"name": request.name}
        if request.description:
            data["description"] = request.description

        response = await self.client.post(
            f"{self.base_url}/voices/add",
            headers=self.headers,
            data=data,
            files=[("files", sample.as_multipart()) for sample in request.files],
        )
        self.check_response(response)

        payload = response.json()
        return ProviderResult(metadata={"voice_id": payload.get("voice_id")})
