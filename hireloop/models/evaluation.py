"""
Evaluation models for HireLoop

Per-answer evaluations drive the skill-phase orchestrator; the interview
verdict summarizes a finished session.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AnswerEvaluation(BaseModel):
    """Evaluation of a single candidate answer. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    feedback: str = ""
    needs_probe: bool = False
    probe_text: str | None = None

    # False when the evaluator had no result and a canned default was used
    evaluated: bool = True

    @model_validator(mode="before")
    @classmethod
    def _probe_requires_text(cls, data):
        if isinstance(data, dict):
            probe_text = (data.get("probe_text") or "").strip()
            if data.get("needs_probe") and not probe_text:
                data = {**data, "needs_probe": False, "probe_text": None}
            elif not data.get("needs_probe"):
                data = {**data, "probe_text": None}
            else:
                data = {**data, "probe_text": probe_text}
        return data


class InterviewVerdict(BaseModel):
    """Overall result of a completed interview."""

    score: int = Field(..., ge=0, le=100)
    feedback: str
    communication: int | None = Field(default=None, ge=0, le=10)
    evaluated: bool = True
