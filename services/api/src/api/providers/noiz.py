"""Noiz text-to-speech API client."""

import httpx

from ..errors import ProviderError
from .base import BaseProvider, Handler, ProviderName, ProviderResult, SpeechRequest

DEFAULT_BASE_URL = "https://noiz.ai/v1"

# Noiz falls back to its built-in voice when no voice_id is sent
BUILT_IN_VOICE = "built-in-default"
QUALITY_PRESET = 1


class NoizProvider(BaseProvider):
    """Speech generation via Noiz."""

    name = ProviderName.NOIZ
    display_name = "Noiz"
    api_key_env = "NOIZ_API_KEY"

    def handlers(self) -> dict[type, Handler]:
        return {SpeechRequest: self.text_to_speech}

    def check_response(self, response: httpx.Response) -> None:
        """Noiz reports errors as ``{"message": ...}`` JSON."""
        if response.is_success:
            return
        try:
            message = response.json().get("message") or "Unknown error"
        except ValueError:
            message = "Unknown error"
        raise ProviderError(
            self.name.value,
            f"{self.display_name} API error ({response.status_code}): {message}",
            upstream_status=response.status_code,
            body=response.text,
        )

    async def text_to_speech(self, request: SpeechRequest) -> ProviderResult:
        data = {
            "text": request.text,
            "quality_preset": str(QUALITY_PRESET),
            "output_format": "mp3",
            "speed": "1",
        }
        if request.voice_id and request.voice_id != BUILT_IN_VOICE:
            data["voice_id"] = request.voice_id

        # Noiz expects multipart; (None, value) parts are plain form fields
        response = await self.client.post(
            f"{self.base_url}/text-to-speech",
            headers={"Authorization": self.api_key},
            files={key: (None, value) for key, value in data.items()},
        )
        self.check_response(response)
        return ProviderResult(
            content=response.content,
            metadata={"voice_id": request.voice_id},
        )
