"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Summary

TRANSCRIPTION_COUNTER = Counter(
    "voicelog_transcriptions_total",
    "Transcription requests by outcome",
    labelnames=("status",),
)

INFERENCE_LATENCY = Histogram(
    "voicelog_inference_latency_seconds",
    "Time spent inside the speech model per request",
)

MODEL_CONSTRUCTION_COUNTER = Counter(
    "voicelog_model_constructions_total",
    "Speech model construction attempts",
    labelnames=("status",),
)

CAPTURED_AUDIO_SECONDS = Summary(
    "voicelog_captured_audio_seconds",
    "Duration of finalized capture sessions",
)
