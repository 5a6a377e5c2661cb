"""
Coin ledger models for HireLoop
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class LedgerDirection(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class LedgerErrorKind(str, Enum):
    """Why a ledger operation was not applied."""

    ACCOUNT_NOT_FOUND = "account_not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    DUPLICATE = "duplicate"  # Once-only credit already recorded


class LedgerEntry(BaseModel):
    """One line of an account's coin history."""

    amount: int
    direction: LedgerDirection
    reason: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class LedgerAccount(BaseModel):
    """Coin balance and history of one user account."""

    account_id: str
    email: str | None = None
    coins: int | None = None  # None means the account predates the ledger
    coin_history: list[LedgerEntry] = Field(default_factory=list)

    def has_reason(self, reason: str) -> bool:
        return any(entry.reason == reason for entry in self.coin_history)


class LedgerResult(BaseModel):
    """
    Explicit result of a debit or credit.

    Soft failures are values, not exceptions: callers decide whether an
    unapplied operation matters to them.
    """

    applied: bool
    balance: int
    error: LedgerErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
