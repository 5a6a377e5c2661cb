"""
Transcript fusion models for HireLoop
"""

from enum import Enum

from pydantic import BaseModel


class TranscriptSource(str, Enum):
    """Where a candidate transcript came from."""

    BATCH = "batch"  # High-fidelity recognition over the full recording
    INCREMENTAL = "incremental"  # Accumulated final results of the streaming recognizer
    MANUAL = "manual"  # Typed or edited by the candidate


class FusionResult(BaseModel):
    """The single answer text produced from all capture sources."""

    text: str
    raw_text: str
    source: TranscriptSource | None = None  # None when nothing was captured
    refined: bool = False
