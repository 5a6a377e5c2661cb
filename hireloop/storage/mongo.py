"""
MongoDB storage backends.

Collections:
- applications: one document per (candidate_id, position_id)
- users: coin balance (`coins`) and `coinHistory`
- resume_analyses: resume analyzer output keyed by userId/jobId
- jobs: job postings with title, skills and recruiterId

pymongo is blocking, so every call runs in the default executor.
"""

import asyncio
import logging
from datetime import datetime
from functools import partial
from typing import Any, Callable

from bson import ObjectId
from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database

from hireloop.models.candidate import Position, ResumeAnalysis
from hireloop.models.ledger import (
    LedgerAccount,
    LedgerDirection,
    LedgerEntry,
    LedgerErrorKind,
    LedgerResult,
)
from hireloop.models.scoring import (
    PROMOTABLE_STATUSES,
    ApplicationRecord,
    ApplicationStatus,
    InterviewLogEntry,
)
from hireloop.storage.base import ApplicationStore, CandidateDirectory, LedgerStore

logger = logging.getLogger(__name__)


def connect(uri: str, database: str) -> Database:
    """Open a client and return the configured database."""
    client = MongoClient(uri, serverSelectionTimeoutMS=5000)
    logger.info(f"Connected to MongoDB database '{database}'")
    return client.get_database(database)


async def _run(fn: Callable, *args, **kwargs) -> Any:
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, partial(fn, *args, **kwargs))


def _id_query(value: str, *fields: str) -> dict[str, Any]:
    """Match a document by any of `fields`, or by `_id` when `value` is an ObjectId."""
    clauses: list[dict[str, Any]] = [{field: value} for field in fields]
    if ObjectId.is_valid(value):
        clauses.append({"_id": ObjectId(value)})
    return {"$or": clauses}


class MongoApplicationStore(ApplicationStore):

    def __init__(self, db: Database):
        self.collection = db["applications"]

    @staticmethod
    def _to_record(doc: dict[str, Any] | None) -> ApplicationRecord | None:
        if not doc:
            return None
        doc = dict(doc)
        doc.pop("_id", None)
        return ApplicationRecord.model_validate(doc)

    async def get(self, candidate_id: str, position_id: str) -> ApplicationRecord | None:
        doc = await _run(
            self.collection.find_one,
            {"candidate_id": candidate_id, "position_id": position_id},
        )
        return self._to_record(doc)

    async def upsert_scores(
        self,
        candidate_id: str,
        position_id: str,
        scores: dict[str, int | None],
        fields: dict[str, Any],
        elite_threshold: int,
    ) -> ApplicationRecord:
        supplied = {name: value for name, value in scores.items() if value is not None}

        # Round-trip through the model so enums and nested models serialize
        defaults = ApplicationRecord(candidate_id=candidate_id, position_id=position_id)
        merged = ApplicationRecord.model_validate({**defaults.model_dump(), **fields, **supplied})
        changes = merged.model_dump(mode="json", include=set(fields) | set(supplied))
        changes["updated_at"] = datetime.utcnow()

        # $literal keeps answer text such as "$5 per seat" from reading as a field path
        stage: dict[str, Any] = {key: {"$literal": value} for key, value in changes.items()}
        for key, value in defaults.model_dump(mode="json").items():
            if key not in stage and key not in ("candidate_id", "position_id", "final_score", "updated_at"):
                stage[key] = {"$ifNull": [f"${key}", {"$literal": value}]}

        pipeline = [
            {"$set": stage},
            # Half-up mean of the present scores; $avg skips missing ones
            {"$set": {"final_score": {"$floor": {"$add": [
                {"$avg": ["$resume_match", "$assessment_score", "$interview_score"]},
                0.5,
            ]}}}},
            {"$set": {"status": {"$cond": [
                {"$and": [
                    {"$ne": ["$final_score", None]},
                    {"$gte": ["$final_score", elite_threshold]},
                    {"$in": ["$status", [status.value for status in PROMOTABLE_STATUSES]]},
                ]},
                ApplicationStatus.SHORTLISTED.value,
                "$status",
            ]}}},
        ]

        doc = await _run(
            self.collection.find_one_and_update,
            {"candidate_id": candidate_id, "position_id": position_id},
            pipeline,
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_record(doc)

    async def append_log(self, candidate_id: str, position_id: str, entry: InterviewLogEntry) -> None:
        await _run(
            self.collection.update_one,
            {"candidate_id": candidate_id, "position_id": position_id},
            {
                "$push": {"interview_log": entry.model_dump()},
                "$set": {"updated_at": datetime.utcnow()},
                "$setOnInsert": {"status": "APPLIED"},
            },
            upsert=True,
        )


class MongoLedgerStore(LedgerStore):

    def __init__(self, db: Database):
        self.collection = db["users"]

    def _query(self, account_id: str) -> dict[str, Any]:
        return _id_query(account_id, "uid", "email")

    @staticmethod
    def _to_account(account_id: str, doc: dict[str, Any]) -> LedgerAccount:
        history = [
            LedgerEntry(
                amount=item.get("amount", 0),
                direction=item.get("type", LedgerDirection.CREDIT.value),
                reason=item.get("reason", ""),
                created_at=item.get("createdAt") or datetime.utcnow(),
            )
            for item in doc.get("coinHistory", [])
        ]
        return LedgerAccount(
            account_id=account_id,
            email=doc.get("email"),
            coins=doc.get("coins"),
            coin_history=history,
        )

    async def get_account(self, account_id: str) -> LedgerAccount | None:
        doc = await _run(self.collection.find_one, self._query(account_id))
        return self._to_account(account_id, doc) if doc else None

    async def apply(
        self,
        account_id: str,
        entry: LedgerEntry,
        default_balance: int,
        once: bool = False,
    ) -> LedgerResult:
        query = self._query(account_id)

        # Accounts created before the ledger existed start at the default balance
        await _run(
            self.collection.update_one,
            {**query, "coins": {"$exists": False}},
            {"$set": {"coins": default_balance}},
        )

        guarded: dict[str, Any] = dict(query)
        if once:
            guarded["coinHistory.reason"] = {"$ne": entry.reason}
        delta = entry.amount
        if entry.direction == LedgerDirection.DEBIT:
            guarded["coins"] = {"$gte": entry.amount}
            delta = -entry.amount

        doc = await _run(
            self.collection.find_one_and_update,
            guarded,
            {
                "$inc": {"coins": delta},
                "$push": {
                    "coinHistory": {
                        "amount": entry.amount,
                        "type": entry.direction.value,
                        "reason": entry.reason,
                        "createdAt": entry.created_at,
                    }
                },
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc:
            return LedgerResult(applied=True, balance=doc.get("coins", 0))

        # Nothing matched: find out which guard stopped the update
        current = await _run(self.collection.find_one, query)
        if not current:
            return LedgerResult(applied=False, balance=0, error=LedgerErrorKind.ACCOUNT_NOT_FOUND)
        balance = current.get("coins", default_balance)
        if once and any(item.get("reason") == entry.reason for item in current.get("coinHistory", [])):
            return LedgerResult(applied=False, balance=balance, error=LedgerErrorKind.DUPLICATE)
        return LedgerResult(applied=False, balance=balance, error=LedgerErrorKind.INSUFFICIENT_FUNDS)


class MongoCandidateDirectory(CandidateDirectory):

    def __init__(self, db: Database):
        self.analyses = db["resume_analyses"]
        self.jobs = db["jobs"]

    async def get_resume_analysis(self, subject_id: str, position_id: str) -> ResumeAnalysis | None:
        job_ids: list[Any] = [position_id]
        if ObjectId.is_valid(position_id):
            job_ids.append(ObjectId(position_id))
        doc = await _run(
            self.analyses.find_one,
            {"userId": subject_id, "jobId": {"$in": job_ids}},
            sort=[("createdAt", -1)],
        )
        if not doc:
            return None
        return ResumeAnalysis(
            subject_id=subject_id,
            position_id=position_id,
            match_percentage=doc.get("matchPercentage"),
            structured=doc.get("structured") or {},
            explanation=doc.get("explanation"),
        )

    async def get_position(self, position_id: str) -> Position | None:
        doc = await _run(self.jobs.find_one, _id_query(position_id, "jobId"))
        if not doc:
            return None
        recruiter = doc.get("recruiterId")
        return Position(
            position_id=position_id,
            title=doc.get("title") or "Software Engineer",
            recruiter_id=str(recruiter) if recruiter else None,
            skills=[str(skill) for skill in doc.get("skills") or []],
        )
