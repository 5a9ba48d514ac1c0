"""Minimax speech and music API client."""

from ..errors import ProviderError
from .base import (
    BaseProvider,
    Handler,
    MusicRequest,
    ProviderName,
    ProviderResult,
    SpeechRequest,
)

DEFAULT_BASE_URL = "https://api.minimax.io/v1"

SPEECH_MODEL = "speech-2.8-hd"
MUSIC_MODEL = "music-2.5"

SPEECH_AUDIO_SETTING = {
    "sample_rate": 32000,
    "bitrate": 128000,
    "format": "mp3",
    "channel": 1,
}
MUSIC_AUDIO_SETTING = {
    "sample_rate": 44100,
    "bitrate": 256000,
    "format": "mp3",
}


class MinimaxProvider(BaseProvider):
    """Speech and music generation via Minimax.

    Minimax reports failures inside a 200 response through
    ``base_resp.status_code``; anything other than 0 is an error.
    Audio comes back hex encoded.
    """

    name = ProviderName.MINIMAX
    display_name = "Minimax"
    api_key_env = "MINIMAX_API_KEY"

    def handlers(self) -> dict[type, Handler]:
        return {
            SpeechRequest: self.text_to_speech,
            MusicRequest: self.generate_music,
        }

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _post(self, path: str, body: dict, label: str | None = None) -> dict:
        response = await self.client.post(
            f"{self.base_url}/{path}", headers=self.headers, json=body
        )
        self.check_response(response)
        payload = response.json()
        self._check_base_resp(payload, label)
        return payload

    def _check_base_resp(self, payload: dict, label: str | None = None) -> None:
        base_resp = payload.get("base_resp") or {}
        status_code = base_resp.get("status_code")
        if status_code == 0:
            return
        api = f"{self.display_name} {label} API" if label else f"{self.display_name} API"
        raise ProviderError(
            self.name.value,
            f"{api} error ({status_code}): {base_resp.get('status_msg') or 'Unknown error'}",
        )

    def _decode_audio(self, payload: dict) -> bytes:
        audio = (payload.get("data") or {}).get("audio")
        if not audio:
            raise ProviderError(self.name.value, "Minimax returned no audio")
        try:
            return bytes.fromhex(audio)
        except ValueError as e:
            raise ProviderError(self.name.value, "Minimax returned malformed audio") from e

    async def text_to_speech(self, request: SpeechRequest) -> ProviderResult:
        text = f"[{request.emotion}] {request.text}" if request.emotion else request.text
        model = request.model_id if request.model_id.startswith("speech-") else SPEECH_MODEL

        payload = await self._post(
            "t2a_v2",
            {
                "model": model,
                "text": text,
                "stream": False,
                "output_format": "hex",
                "voice_setting": {
                    "voice_id": request.voice_id,
                    "speed": 1,
                    "vol": 1,
                    "pitch": 0,
                },
                "audio_setting": SPEECH_AUDIO_SETTING,
                "language_boost": "auto",
            },
        )

        extra = payload.get("extra_info") or {}
        audio_length_ms = extra.get("audio_length")
        return ProviderResult(
            content=self._decode_audio(payload),
            metadata={
                "model_id": model,
                "voice_id": request.voice_id,
                "duration_seconds": audio_length_ms / 1000 if audio_length_ms else None,
                "usage_characters": extra.get("usage_characters"),
            },
        )

    async def generate_lyrics(self, prompt: str) -> str:
        """Write full-song lyrics for a prompt."""
        payload = await self._post(
            "lyrics_generation",
            {"mode": "write_full_song", "prompt": prompt},
            label="Lyrics",
        )
        lyrics = (payload.get("lyrics") or "").strip()
        if not lyrics:
            raise ProviderError(
                self.name.value, "Minimax did not return lyrics. Please try again."
            )
        return lyrics

    async def generate_music(self, request: MusicRequest) -> ProviderResult:
        lyrics = (request.lyrics or "").strip()
        if not lyrics:
            lyrics = await self.generate_lyrics(request.prompt)

        payload = await self._post(
            "music_generation",
            {
                "model": MUSIC_MODEL,
                "prompt": request.prompt,
                "lyrics": lyrics,
                "stream": False,
                "output_format": "hex",
                "audio_setting": MUSIC_AUDIO_SETTING,
            },
        )

        extra = payload.get("extra_info") or {}
        return ProviderResult(
            content=self._decode_audio(payload),
            metadata={
                "lyrics": lyrics,
                "duration_ms": extra.get("music_duration") or request.duration_ms,
            },
        )


