"""
In-process storage backends.

Used when no MongoDB URI is configured, and by the test suite. Each store
serializes its mutations with an asyncio lock so read-modify-write sequences
stay atomic across concurrent requests.
"""

import asyncio
from datetime import datetime
from typing import Any

from hireloop.models.candidate import Position, ResumeAnalysis
from hireloop.models.ledger import (
    LedgerAccount,
    LedgerDirection,
    LedgerEntry,
    LedgerErrorKind,
    LedgerResult,
)
from hireloop.models.scoring import ApplicationRecord, InterviewLogEntry, next_status
from hireloop.storage.base import ApplicationStore, CandidateDirectory, LedgerStore


class InMemoryApplicationStore(ApplicationStore):

    def __init__(self):
        self._records: dict[tuple[str, str], ApplicationRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, candidate_id: str, position_id: str) -> ApplicationRecord | None:
        record = self._records.get((candidate_id, position_id))
        return record.model_copy(deep=True) if record else None

    async def upsert_scores(
        self,
        candidate_id: str,
        position_id: str,
        scores: dict[str, int | None],
        fields: dict[str, Any],
        elite_threshold: int,
    ) -> ApplicationRecord:
        async with self._lock:
            key = (candidate_id, position_id)
            current = self._records.get(key) or ApplicationRecord(
                candidate_id=candidate_id, position_id=position_id
            )
            data = current.model_dump()
            data.update(fields)
            data.update({name: value for name, value in scores.items() if value is not None})
            data.update(candidate_id=candidate_id, position_id=position_id, updated_at=datetime.utcnow())
            record = ApplicationRecord.model_validate(data)
            record.final_score = record.composite().final_score
            record.status = next_status(record.status, record.final_score, elite_threshold)
            self._records[key] = record
            return record.model_copy(deep=True)

    async def append_log(self, candidate_id: str, position_id: str, entry: InterviewLogEntry) -> None:
        async with self._lock:
            key = (candidate_id, position_id)
            record = self._records.get(key) or ApplicationRecord(
                candidate_id=candidate_id, position_id=position_id
            )
            record.interview_log.append(entry)
            record.updated_at = datetime.utcnow()
            self._records[key] = record


class InMemoryLedgerStore(LedgerStore):

    def __init__(self):
        self._accounts: dict[str, LedgerAccount] = {}
        self._lock = asyncio.Lock()

    def add_account(self, account_id: str, coins: int | None = None, email: str | None = None) -> LedgerAccount:
        account = LedgerAccount(account_id=account_id, coins=coins, email=email)
        self._accounts[account_id] = account
        return account

    def _find(self, account_id: str) -> LedgerAccount | None:
        account = self._accounts.get(account_id)
        if account:
            return account
        # Accounts may also be addressed by email
        for candidate in self._accounts.values():
            if candidate.email and candidate.email == account_id:
                return candidate
        return None

    async def get_account(self, account_id: str) -> LedgerAccount | None:
        account = self._find(account_id)
        return account.model_copy(deep=True) if account else None

    async def apply(
        self,
        account_id: str,
        entry: LedgerEntry,
        default_balance: int,
        once: bool = False,
    ) -> LedgerResult:
        async with self._lock:
            account = self._find(account_id)
            if account is None:
                return LedgerResult(applied=False, balance=0, error=LedgerErrorKind.ACCOUNT_NOT_FOUND)

            if account.coins is None:
                account.coins = default_balance

            if once and account.has_reason(entry.reason):
                return LedgerResult(applied=False, balance=account.coins, error=LedgerErrorKind.DUPLICATE)

            if entry.direction == LedgerDirection.DEBIT:
                if account.coins < entry.amount:
                    return LedgerResult(
                        applied=False, balance=account.coins, error=LedgerErrorKind.INSUFFICIENT_FUNDS
                    )
                account.coins -= entry.amount
            else:
                account.coins += entry.amount

            account.coin_history.append(entry)
            return LedgerResult(applied=True, balance=account.coins)


class InMemoryCandidateDirectory(CandidateDirectory):

    def __init__(self):
        self._analyses: dict[tuple[str, str], ResumeAnalysis] = {}
        self._positions: dict[str, Position] = {}

    def add_resume_analysis(self, analysis: ResumeAnalysis) -> None:
        self._analyses[(analysis.subject_id, analysis.position_id)] = analysis

    def add_position(self, position: Position) -> None:
        self._positions[position.position_id] = position

    async def get_resume_analysis(self, subject_id: str, position_id: str) -> ResumeAnalysis | None:
        return self._analyses.get((subject_id, position_id))

    async def get_position(self, position_id: str) -> Position | None:
        return self._positions.get(position_id)
