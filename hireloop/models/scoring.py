"""
Composite score and application models for HireLoop
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import BaseModel, Field, computed_field


class ApplicationStatus(str, Enum):
    """Status of a candidate's application to a position."""

    APPLIED = "APPLIED"
    SHORTLISTED = "SHORTLISTED"
    ELIGIBLE = "ELIGIBLE"
    REJECTED = "REJECTED"


# Statuses that a qualifying composite score moves to SHORTLISTED
PROMOTABLE_STATUSES = (ApplicationStatus.APPLIED, ApplicationStatus.ELIGIBLE)


def next_status(status: ApplicationStatus, final_score: int | None, elite_threshold: int) -> ApplicationStatus:
    """Status after a recompute. SHORTLISTED and REJECTED are never changed."""
    if final_score is not None and final_score >= elite_threshold and status in PROMOTABLE_STATUSES:
        return ApplicationStatus.SHORTLISTED
    return status


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CompositeScore(BaseModel):
    """Resume, assessment and interview scores folded into one number."""

    resume_match: int | None = Field(default=None, ge=0, le=100)
    assessment_score: int | None = Field(default=None, ge=0, le=100)
    interview_score: int | None = Field(default=None, ge=0, le=100)

    @computed_field
    @property
    def final_score(self) -> int | None:
        """Mean of the present inputs, rounded; None when nothing is present."""
        present = [
            score
            for score in (self.resume_match, self.assessment_score, self.interview_score)
            if score is not None
        ]
        if not present:
            return None
        return round_half_up(sum(present) / len(present))


class InterviewAnswer(BaseModel):
    """A question/answer pair kept on the application for review."""

    question: str
    answer: str
    score: int | None = None
    feedback: str | None = None


class InterviewLogEntry(BaseModel):
    """Append-only audit entry recorded while the interview runs."""

    question: str
    answer: str
    recorded_at: datetime = Field(default_factory=datetime.utcnow)


class ApplicationRecord(BaseModel):
    """Persisted application document, one per (candidate, position)."""

    candidate_id: str
    position_id: str
    applicant_name: str | None = None

    resume_match: int | None = None
    assessment_score: int | None = None
    interview_score: int | None = None
    final_score: int | None = None
    status: ApplicationStatus = ApplicationStatus.APPLIED

    interview_answers: list[InterviewAnswer] = Field(default_factory=list)
    interview_log: list[InterviewLogEntry] = Field(default_factory=list)
    communication_delta: int | None = None

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def composite(self) -> CompositeScore:
        return CompositeScore(
            resume_match=self.resume_match,
            assessment_score=self.assessment_score,
            interview_score=self.interview_score,
        )
