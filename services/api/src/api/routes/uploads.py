"""Generation endpoints that take multipart uploads."""

import json

from fastapi import APIRouter, Depends, File, Form, UploadFile

from shared.db.models import User

from ..constants import (
    DUBBING_MAX_FILE_SIZE,
    STT_MAX_FILE_SIZE,
    VOICE_CHANGER_MAX_FILE_SIZE,
    VOICE_CLONE_MAX_SAMPLE_SIZE,
    VOICE_ISOLATOR_MAX_FILE_SIZE,
)
from ..dependencies import get_current_account, get_pipeline
from ..errors import ValidationError
from ..models import (
    ApiResponse,
    DubbingResult,
    TranscriptionResult,
    VoiceCloneResult,
    VoiceConversionResult,
    VoiceIsolationResult,
)
from ..services.dubbing_service import DubbingJob
from ..services.pipeline import GenerationPipeline
from ..services.transcription_service import TranscriptionJob
from ..services.voice_clone_service import VoiceCloneJob
from ..services.voice_conversion_service import VoiceConversionJob
from ..services.voice_isolation_service import VoiceIsolationJob
from .forms import parse_list, read_upload

router = APIRouter(prefix="/api", tags=["Generation"])


@router.post(
    "/stt",
    response_model=ApiResponse[TranscriptionResult],
    summary="Speech to text",
)
async def speech_to_text(
    file: UploadFile | None = File(default=None),
    language_code: str | None = Form(default=None, alias="languageCode"),
    tag_audio_events: bool = Form(default=True, alias="tagAudioEvents"),
    diarize: bool = Form(default=False),
    keyterms: str | None = Form(default=None),
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[TranscriptionResult]:
    job = TranscriptionJob(
        file=await read_upload(file, STT_MAX_FILE_SIZE),
        language_code=language_code,
        tag_audio_events=tag_audio_events,
        diarize=diarize,
        keyterms=parse_list(keyterms, "keyterms"),
    )
    return ApiResponse.of(await pipeline.run(job, user))


@router.post(
    "/voice-isolator",
    response_model=ApiResponse[VoiceIsolationResult],
    summary="Isolate voice from background noise",
)
async def voice_isolator(
    file: UploadFile | None = File(default=None),
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[VoiceIsolationResult]:
    job = VoiceIsolationJob(file=await read_upload(file, VOICE_ISOLATOR_MAX_FILE_SIZE))
    return ApiResponse.of(await pipeline.run(job, user))


@router.post(
    "/voice-changer",
    response_model=ApiResponse[VoiceConversionResult],
    summary="Speech to speech voice conversion",
)
async def voice_changer(
    file: UploadFile | None = File(default=None),
    voice_id: str = Form(default="", alias="targetVoiceId"),
    model_id: str | None = Form(default=None, alias="modelId"),
    voice_settings: str | None = Form(default=None, alias="voiceSettings"),
    stability: float | None = Form(default=None),
    similarity_boost: float | None = Form(default=None, alias="similarityBoost"),
    style: float | None = Form(default=None, alias="styleExaggeration"),
    remove_background_noise: bool = Form(default=False, alias="removeBackgroundNoise"),
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[VoiceConversionResult]:
    settings = None
    if voice_settings:
        try:
            settings = json.loads(voice_settings)
        except json.JSONDecodeError as e:
            raise ValidationError("voiceSettings must be a JSON object") from e
        if not isinstance(settings, dict):
            raise ValidationError("voiceSettings must be a JSON object")

    overrides = {"stability": stability, "similarity_boost": similarity_boost, "style": style}
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if overrides:
        settings = {**(settings or {}), **overrides}

    job = VoiceConversionJob(
        file=await read_upload(file, VOICE_CHANGER_MAX_FILE_SIZE),
        voice_id=voice_id,
        model_id=model_id or "",
        voice_settings=settings,
        remove_background_noise=remove_background_noise,
    )
    return ApiResponse.of(await pipeline.run(job, user))


@router.post(
    "/dubbing",
    response_model=ApiResponse[DubbingResult],
    summary="Start a dubbing project",
)
async def create_dubbing(
    file: UploadFile | None = File(default=None),
    target_languages: str | None = Form(default=None, alias="targetLanguages"),
    source_language: str | None = Form(default=None, alias="sourceLanguage"),
    project_name: str | None = Form(default=None, alias="projectName"),
    num_speakers: int = Form(default=0, alias="numSpeakers"),
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[DubbingResult]:
    job = DubbingJob(
        file=await read_upload(file, DUBBING_MAX_FILE_SIZE, label="Media file"),
        target_languages=parse_list(target_languages, "targetLanguages"),
        source_language=source_language,
        name=project_name,
        num_speakers=num_speakers,
    )
    return ApiResponse.of(await pipeline.run(job, user))


@router.post(
    "/voices/clone",
    response_model=ApiResponse[VoiceCloneResult],
    summary="Instant voice clone",
)
async def clone_voice(
    name: str = Form(default=""),
    description: str | None = Form(default=None),
    files: list[UploadFile] | None = File(default=None),
    user: User = Depends(get_current_account),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> ApiResponse[VoiceCloneResult]:
    samples = [
        await read_upload(f, VOICE_CLONE_MAX_SAMPLE_SIZE, label="Sample") for f in files or []
    ]
    samples = [sample for sample in samples if sample is not None]
    job = VoiceCloneJob(name=name, files=samples, description=description)
    return ApiResponse.of(await pipeline.run(job, user))
