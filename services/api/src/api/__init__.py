"""VoiceForge HTTP API."""
