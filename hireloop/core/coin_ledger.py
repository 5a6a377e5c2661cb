"""
Coin Ledger for HireLoop

Debits and credits against user coin balances. Failures are soft: an unknown
account or an insufficient balance is logged and reported in the returned
LedgerResult, never raised, so a candidate's flow is not blocked by the coin
economy.
"""

import logging

from hireloop.core.errors import InvalidInputError
from hireloop.models.ledger import (
    LedgerAccount,
    LedgerDirection,
    LedgerEntry,
    LedgerErrorKind,
    LedgerResult,
)
from hireloop.storage.base import LedgerStore

logger = logging.getLogger(__name__)


class CoinLedger:

    def __init__(self, store: LedgerStore, default_balance: int = 50):
        self.store = store
        self.default_balance = default_balance

    async def account(self, account_id: str) -> LedgerAccount | None:
        return await self.store.get_account(account_id)

    async def balance(self, account_id: str) -> int:
        """Current balance; accounts without one report the default."""
        account = await self.store.get_account(account_id)
        if account is None:
            logger.warning(f"Balance requested for unknown account {account_id}")
            return 0
        return account.coins if account.coins is not None else self.default_balance

    async def debit(self, account_id: str, amount: int, reason: str) -> LedgerResult:
        """Spend coins; insufficient balance leaves the account untouched."""
        return await self._apply(account_id, amount, reason, LedgerDirection.DEBIT)

    async def charge(self, account_id: str, cost: int, reason: str) -> LedgerResult:
        """Debit a configured cost. A cost of 0 means the step is free and nothing is recorded."""
        if cost == 0:
            return LedgerResult(applied=False, balance=await self.balance(account_id))
        return await self.debit(account_id, cost, reason)

    async def credit(self, account_id: str, amount: int, reason: str, once: bool = False) -> LedgerResult:
        """
        Add coins.

        With `once=True` the reason string is an idempotency key: a credit
        whose reason already appears in the account history is not repeated.
        """
        return await self._apply(account_id, amount, reason, LedgerDirection.CREDIT, once=once)

    async def _apply(
        self,
        account_id: str,
        amount: int,
        reason: str,
        direction: LedgerDirection,
        once: bool = False,
    ) -> LedgerResult:
        if not account_id:
            raise InvalidInputError("accountId is required")
        if amount <= 0:
            raise InvalidInputError(f"Ledger amount must be positive, got {amount}")

        entry = LedgerEntry(amount=amount, direction=direction, reason=reason)
        result = await self.store.apply(account_id, entry, self.default_balance, once=once)

        if result.error == LedgerErrorKind.ACCOUNT_NOT_FOUND:
            logger.warning(f"{direction.value} of {amount} skipped: account {account_id} not found")
        elif result.error == LedgerErrorKind.INSUFFICIENT_FUNDS:
            logger.warning(
                f"Debit of {amount} skipped for {account_id}: balance {result.balance} ({reason})"
            )
        elif result.error == LedgerErrorKind.DUPLICATE:
            logger.info(f"Credit '{reason}' already applied to {account_id}, skipping")
        else:
            logger.info(f"{direction.value} {amount} coins for {account_id} ({reason}), balance {result.balance}")
        return result
