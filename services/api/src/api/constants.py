"""Feature limits and provider defaults."""

MB = 1024 * 1024

AUDIO_FORMATS = ("mp3", "wav", "m4a", "flac", "ogg", "webm")
VIDEO_FORMATS = ("mp4", "avi", "mov", "mkv")

# Assumed bitrate for byte-size duration estimates (128 kbps)
ESTIMATE_BYTES_PER_SECOND = 128 * 1024 / 8

# Text to speech
TTS_MAX_TEXT_LENGTH = 40_000
TTS_DEFAULT_MODEL = "eleven_multilingual_v2"
TTS_DEFAULT_STABILITY = 0.5
TTS_DEFAULT_SIMILARITY_BOOST = 0.75

# Speech to text
STT_MAX_FILE_SIZE = 100 * MB
STT_FORMATS = AUDIO_FORMATS
STT_MODEL = "scribe_v1"
STT_MAX_KEYTERMS = 100

# Sound effects
SFX_MAX_PROMPT_LENGTH = 500
SFX_MIN_DURATION = 0.5
SFX_MAX_DURATION = 22.0
SFX_DEFAULT_PROMPT_INFLUENCE = 0.3
# Bytes per second used when the caller did not fix a duration
SFX_ESTIMATE_BYTES_PER_SECOND = 16_000

# Music
MUSIC_MIN_DURATION_MS = 3_000
MUSIC_MAX_DURATION_MS = 600_000
MUSIC_DEFAULT_DURATION_MS = 30_000
MUSIC_MAX_PROMPT_LENGTH = 2_000
MUSIC_PROVIDERS = ("elevenlabs", "minimax")

# Voice changer
VOICE_CHANGER_MAX_FILE_SIZE = 50 * MB
VOICE_CHANGER_FORMATS = AUDIO_FORMATS
VOICE_CHANGER_MODEL = "eleven_multilingual_sts_v2"
VOICE_CHANGER_OUTPUT_FORMAT = "mp3_44100_128"
VOICE_CHANGER_DEFAULT_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}

# Voice isolator
VOICE_ISOLATOR_MAX_FILE_SIZE = 50 * MB
VOICE_ISOLATOR_FORMATS = AUDIO_FORMATS + ("mp4",)

# Dubbing
DUBBING_MAX_FILE_SIZE = 1000 * MB
DUBBING_FORMATS = AUDIO_FORMATS + VIDEO_FORMATS

# Text to dialogue
DIALOGUE_MAX_LINES = 20
DIALOGUE_MAX_CHARS_PER_LINE = 1_000
DIALOGUE_MAX_TOTAL_CHARS = 5_000
DIALOGUE_WORDS_PER_MINUTE = 150
DIALOGUE_CHARS_PER_WORD = 5

# Voice cloning
VOICE_CLONE_MAX_SAMPLES = 25
VOICE_CLONE_MAX_SAMPLE_SIZE = 10 * MB
VOICE_CLONE_FORMATS = AUDIO_FORMATS

# Library
AUDIO_CACHE_CONTROL = "private, max-age=3600"
LIBRARY_DEFAULT_PAGE_SIZE = 12
LIBRARY_MAX_PAGE_SIZE = 50

# Usage dashboard
USAGE_HISTORY_DEFAULT_DAYS = 7
USAGE_HISTORY_MAX_DAYS = 90
RECENT_ACTIVITY_DEFAULT_LIMIT = 10
RECENT_ACTIVITY_MAX_LIMIT = 50
