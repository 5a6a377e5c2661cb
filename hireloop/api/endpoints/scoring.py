"""
Scoring API endpoints

Composite score finalization for an application.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import Field

from hireloop.api.dependencies import get_orchestrator
from hireloop.api.schemas import CamelModel
from hireloop.core.interview_orchestrator import InterviewOrchestrator

router = APIRouter()


class FinalizeRequest(CamelModel):
    """Component scores to merge into the application; omitted scores keep stored values."""
    position_id: str
    subject_id: str
    resume_match: int | None = Field(default=None, ge=0, le=100)
    assessment_score: int | None = Field(default=None, ge=0, le=100)
    interview_score: int | None = Field(default=None, ge=0, le=100)
    applicant_name: str | None = None


@router.post("/finalize")
async def finalize_scores(
    request: FinalizeRequest,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """
    Recompute the composite score and status of an application.

    Idempotent: repeating the call with the same inputs yields the same
    record and pays no reward twice.
    """
    record = await orchestrator.finalize_scores(
        request.position_id,
        request.subject_id,
        resume_match=request.resume_match,
        assessment_score=request.assessment_score,
        interview_score=request.interview_score,
        applicant_name=request.applicant_name,
    )
    return {
        "candidateId": record.candidate_id,
        "positionId": record.position_id,
        "applicantName": record.applicant_name,
        "resumeMatch": record.resume_match,
        "assessmentScore": record.assessment_score,
        "interviewScore": record.interview_score,
        "finalScore": record.final_score,
        "status": record.status.value,
        "interviewAnswers": [answer.model_dump() for answer in record.interview_answers],
        "updatedAt": record.updated_at.isoformat(),
    }
