"""Filtering for Whisper's "no speech" placeholder outputs."""

from __future__ import annotations

import re

NO_SPEECH_PATTERNS = (
    re.compile(r"^\s*\[BLANK_AUDIO\]\s*$", re.IGNORECASE),
    re.compile(r"^\s*\[SILENCE\]\s*$", re.IGNORECASE),
    re.compile(r"^\s*\[ Silence \]\s*$", re.IGNORECASE),
    re.compile(r"^\s*no speech detected\s*\.?\s*$", re.IGNORECASE),
    re.compile(r"^\s*\(no speech\)\s*$", re.IGNORECASE),
    re.compile(r"^\s*\.\s*$"),
)


def is_sentinel(text: str | None) -> bool:
    if not text or not text.strip():
        return True
    stripped = text.strip()
    return any(pattern.match(stripped) for pattern in NO_SPEECH_PATTERNS)


def normalize_transcript(text: str | None) -> str:
    """Collapse placeholder output to ``""``; otherwise return trimmed text."""
    if is_sentinel(text):
        return ""
    return text.strip()


__all__ = ["NO_SPEECH_PATTERNS", "is_sentinel", "normalize_transcript"]
