"""Generation endpoints that take a JSON body."""

from fastapi import APIRouter, Depends

from shared.db.models import User

from ..constants import MUSIC_PROVIDERS
from ..dependencies import get_current_account, get_default_provider, get_pipeline
from ..models import (
    ApiResponse,
    DialogueBody,
    DialogueResult,
    MusicBody,
    MusicResult,
    SoundEffectBody,
    SoundEffectResult,
    SpeechResult,
    TextToSpeechBody,
)
from ..providers import ProviderName
from ..services.dialogue_service import DialogueInput, DialogueJob
from ..services.music_service import MusicJob
from ..services.pipeline import GenerationPipeline
from ..services.sound_effect_service import SoundEffectJob
from ..services.tts_service import TextToSpeechJob
from ..services.validation import parse_provider

router = APIRouter(prefix="/api", tags=["Generation"])


@router.post(
    "/tts",
    response_model=ApiResponse[SpeechResult],
    summary="Text to speech",
)
async def text_to_speech(
    body: TextToSpeechBody,
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
    default_provider: ProviderName = Depends(get_default_provider),
) -> ApiResponse[SpeechResult]:
    job = TextToSpeechJob(
        text=body.text,
        voice_id=body.voice_id,
        provider=parse_provider(body.provider, default_provider),
        model_id=body.model_id,
        stability=body.stability,
        similarity_boost=body.similarity_boost,
        emotion=body.emotion,
    )
    return ApiResponse.of(await pipeline.run(job, user))


@router.post(
    "/text-to-dialogue",
    response_model=ApiResponse[DialogueResult],
    summary="Multi-speaker dialogue",
)
async def text_to_dialogue(
    body: DialogueBody,
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[DialogueResult]:
    job = DialogueJob(
        inputs=[DialogueInput(text=line.text, voice_id=line.voice_id) for line in body.inputs],
        title=body.title,
    )
    return ApiResponse.of(await pipeline.run(job, user))


@router.post(
    "/sfx",
    response_model=ApiResponse[SoundEffectResult],
    summary="Sound effect",
)
async def sound_effect(
    body: SoundEffectBody,
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[SoundEffectResult]:
    job = SoundEffectJob(
        text=body.text,
        duration_seconds=body.duration_seconds,
        prompt_influence=body.prompt_influence,
    )
    return ApiResponse.of(await pipeline.run(job, user))


@router.post(
    "/music",
    response_model=ApiResponse[MusicResult],
    summary="Music generation",
)
@router.post(
    "/music/generate",
    response_model=ApiResponse[MusicResult],
    summary="Music generation (legacy path)",
)
async def music(
    body: MusicBody,
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[MusicResult]:
    job = MusicJob(
        prompt=body.prompt,
        provider=parse_provider(body.provider, ProviderName.ELEVENLABS, allowed=MUSIC_PROVIDERS),
        duration_ms=body.duration_ms,
        instrumental=body.force_instrumental,
        lyrics=body.lyrics,
    )
    return ApiResponse.of(await pipeline.run(job, user))
