"""
Score Aggregator for HireLoop

Folds the resume match, assessment and interview scores into the composite
final score, decides the application status and pays one-time rewards.

Persisting is one upsert keyed by (candidate, position), so retried or
duplicated finalize calls converge on the same record. Rewards use
once-only ledger credits whose reason string is the idempotency key.
"""

import logging
from typing import Any

from hireloop.core.coin_ledger import CoinLedger
from hireloop.core.errors import InvalidInputError
from hireloop.models.scoring import ApplicationRecord, ApplicationStatus, InterviewAnswer
from hireloop.storage.base import ApplicationStore, CandidateDirectory

logger = logging.getLogger(__name__)


def elite_reward_reason(candidate_id: str, position_id: str) -> str:
    return f"Elite Find Bonus: Candidate {candidate_id} ({position_id})"


def high_score_reward_reason(position_id: str) -> str:
    return f"High Score Reward: {position_id}"


def _check_score(name: str, value: int | None) -> None:
    if value is not None and not 0 <= value <= 100:
        raise InvalidInputError(f"{name} must be between 0 and 100, got {value}")


class ScoreAggregator:
    """Computes and persists the composite score of an application."""

    def __init__(
        self,
        applications: ApplicationStore,
        directory: CandidateDirectory,
        ledger: CoinLedger,
        elite_threshold: int = 60,
        elite_reward_coins: int = 100,
        high_score_threshold: int = 80,
        high_score_reward_coins: int = 20,
    ):
        self.applications = applications
        self.directory = directory
        self.ledger = ledger
        self.elite_threshold = elite_threshold
        self.elite_reward_coins = elite_reward_coins
        self.high_score_threshold = high_score_threshold
        self.high_score_reward_coins = high_score_reward_coins

    async def finalize(
        self,
        candidate_id: str,
        position_id: str,
        resume_match: int | None = None,
        assessment_score: int | None = None,
        interview_score: int | None = None,
        applicant_name: str | None = None,
        interview_answers: list[InterviewAnswer] | None = None,
        communication_delta: int | None = None,
    ) -> ApplicationRecord:
        """
        Merge new component scores into the application and recompute.

        Missing inputs keep their stored values. A composite at or above the
        elite threshold shortlists the application and credits the
        position's recruiter once.
        """
        if not candidate_id or not position_id:
            raise InvalidInputError("subjectId and positionId are required")
        _check_score("resumeMatch", resume_match)
        _check_score("assessmentScore", assessment_score)
        _check_score("interviewScore", interview_score)

        fields: dict[str, Any] = {}
        if applicant_name:
            fields["applicant_name"] = applicant_name
        if interview_answers:
            fields["interview_answers"] = [answer.model_dump() for answer in interview_answers]
        if communication_delta is not None:
            fields["communication_delta"] = communication_delta

        # Merge and recompute happen inside the store so concurrent finalizes cannot lose a score
        record = await self.applications.upsert_scores(
            candidate_id,
            position_id,
            {
                "resume_match": resume_match,
                "assessment_score": assessment_score,
                "interview_score": interview_score,
            },
            fields,
            self.elite_threshold,
        )
        logger.info(
            f"Finalized application {candidate_id}/{position_id}: final score {record.final_score} "
            f"({record.resume_match}, {record.assessment_score}, {record.interview_score}) -> {record.status.value}"
        )

        elite = record.final_score is not None and record.final_score >= self.elite_threshold
        if elite and record.status == ApplicationStatus.SHORTLISTED:
            await self._reward_recruiter(candidate_id, position_id, record.final_score)
        if record.assessment_score is not None and record.assessment_score >= self.high_score_threshold:
            await self.ledger.credit(
                candidate_id,
                self.high_score_reward_coins,
                high_score_reward_reason(position_id),
                once=True,
            )

        return record

    async def _reward_recruiter(self, candidate_id: str, position_id: str, final_score: int) -> None:
        position = await self.directory.get_position(position_id)
        if position is None or not position.recruiter_id:
            logger.warning(f"Elite candidate {candidate_id} ({final_score}) but position {position_id} has no recruiter")
            return
        logger.info(f"Elite candidate {candidate_id} ({final_score}), crediting recruiter {position.recruiter_id}")
        await self.ledger.credit(
            position.recruiter_id,
            self.elite_reward_coins,
            elite_reward_reason(candidate_id, position_id),
            once=True,
        )
