"""Shared infrastructure for the VoiceForge services."""
