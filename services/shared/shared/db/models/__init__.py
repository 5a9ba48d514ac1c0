"""SQLAlchemy database models for VoiceForge."""

from .audio import MusicGeneration, SoundEffect, Transcription, VoiceConversion, VoiceIsolation
from .base import Base, GenerationRecordMixin, TimestampMixin, generate_uuid, utcnow
from .dubbing import DubbingProject
from .speech import DialogueGeneration, Generation
from .usage import UsageCounter, UsageRecord
from .user import User
from .voice import ClonedVoice

__all__ = [
    "Base",
    "ClonedVoice",
    "DialogueGeneration",
    "DubbingProject",
    "Generation",
    "GenerationRecordMixin",
    "MusicGeneration",
    "SoundEffect",
    "TimestampMixin",
    "Transcription",
    "UsageCounter",
    "UsageRecord",
    "User",
    "VoiceConversion",
    "VoiceIsolation",
    "generate_uuid",
    "utcnow",
]
