"""Message types exchanged with the inference worker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Union

from ..audio.types import SampleBuffer


@dataclass(slots=True)
class TranscribeRequest:
    """Inbound request; the worker owns ``audio`` once it is queued."""

    id: str
    audio: SampleBuffer
    language: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ProgressMessage:
    status: ClassVar[str] = "progress"

    id: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CompleteMessage:
    status: ClassVar[str] = "complete"

    id: str
    transcript: str


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    status: ClassVar[str] = "error"

    id: str
    message: str
    kind: str = "inference"


@dataclass(frozen=True, slots=True)
class WorkerCrashed:
    """Posted once when the worker loop dies outside a single request."""

    status: ClassVar[str] = "crashed"

    reason: str


WorkerMessage = Union[ProgressMessage, CompleteMessage, ErrorMessage, WorkerCrashed]

__all__ = [
    "CompleteMessage",
    "ErrorMessage",
    "ProgressMessage",
    "TranscribeRequest",
    "WorkerCrashed",
    "WorkerMessage",
]
