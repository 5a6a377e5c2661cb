"""
Storage interfaces the interview engine reads and writes.

Backing implementations live in `memory` (in-process, default) and `mongo`
(MongoDB document store).
"""

from abc import ABC, abstractmethod
from typing import Any

from hireloop.models.candidate import Position, ResumeAnalysis
from hireloop.models.ledger import LedgerAccount, LedgerEntry, LedgerResult
from hireloop.models.scoring import ApplicationRecord, InterviewLogEntry


class ApplicationStore(ABC):
    """Application documents keyed by (candidate_id, position_id)."""

    @abstractmethod
    async def get(self, candidate_id: str, position_id: str) -> ApplicationRecord | None:
        ...

    @abstractmethod
    async def upsert_scores(
        self,
        candidate_id: str,
        position_id: str,
        scores: dict[str, int | None],
        fields: dict[str, Any],
        elite_threshold: int,
    ) -> ApplicationRecord:
        """
        Create or update the application in one atomic operation.

        Only the component scores that are not None are written; the others
        keep their stored values. `final_score` and `status` are recomputed
        from the merged document inside the same operation, so concurrent
        calls for one application never overwrite each other's scores.
        Repeating the same call converges on the same document.
        """

    @abstractmethod
    async def append_log(self, candidate_id: str, position_id: str, entry: InterviewLogEntry) -> None:
        """Append to the application's interview audit log, creating it if needed."""


class LedgerStore(ABC):
    """Coin balances and histories of user accounts."""

    @abstractmethod
    async def get_account(self, account_id: str) -> LedgerAccount | None:
        ...

    @abstractmethod
    async def apply(
        self,
        account_id: str,
        entry: LedgerEntry,
        default_balance: int,
        once: bool = False,
    ) -> LedgerResult:
        """
        Atomically change the balance and record the entry.

        Debits are never applied against an insufficient balance. With
        `once`, an entry whose reason is already in the history is not
        applied again.
        """


class CandidateDirectory(ABC):
    """Read-only lookups into records owned by other services."""

    @abstractmethod
    async def get_resume_analysis(self, subject_id: str, position_id: str) -> ResumeAnalysis | None:
        ...

    @abstractmethod
    async def get_position(self, position_id: str) -> Position | None:
        ...
