"""
Coin ledger API endpoints

Balances, debits and credits. Unknown accounts and insufficient balances
are reported in the result body, not as HTTP errors.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from hireloop.api.dependencies import get_ledger
from hireloop.api.schemas import CamelModel
from hireloop.config import get_settings
from hireloop.core.coin_ledger import CoinLedger
from hireloop.models.ledger import LedgerResult

router = APIRouter()


class LedgerRequest(CamelModel):
    account_id: str
    amount: int
    reason: str = ""


def _result(result: LedgerResult) -> dict[str, Any]:
    return {
        "ok": result.ok,
        "applied": result.applied,
        "balance": result.balance,
        "error": result.error.value if result.error else None,
    }


@router.get("/{account_id}")
async def get_balance(account_id: str, ledger: CoinLedger = Depends(get_ledger)) -> dict[str, Any]:
    """Get an account's coin balance and history."""
    account = await ledger.account(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return {
        "accountId": account_id,
        "balance": account.coins if account.coins is not None else ledger.default_balance,
        "history": [
            {
                "amount": entry.amount,
                "type": entry.direction.value,
                "reason": entry.reason,
                "createdAt": entry.created_at.isoformat(),
            }
            for entry in account.coin_history
        ],
    }


@router.post("/debit")
async def debit(request: LedgerRequest, ledger: CoinLedger = Depends(get_ledger)) -> dict[str, Any]:
    return _result(await ledger.debit(request.account_id, request.amount, request.reason or "Debit"))


@router.post("/credit")
async def credit(request: LedgerRequest, ledger: CoinLedger = Depends(get_ledger)) -> dict[str, Any]:
    return _result(await ledger.credit(request.account_id, request.amount, request.reason or "Manual Top-up"))


@router.post("/{account_id}/unlock-assessment")
async def unlock_assessment(account_id: str, ledger: CoinLedger = Depends(get_ledger)) -> dict[str, Any]:
    """Spend coins to unlock a skill assessment."""
    return _result(await ledger.charge(account_id, get_settings().assessment_unlock_cost, "Skill Assessment"))


@router.post("/{account_id}/profile-bonus")
async def profile_bonus(account_id: str, ledger: CoinLedger = Depends(get_ledger)) -> dict[str, Any]:
    """One-time reward for completing the profile."""
    return _result(
        await ledger.credit(
            account_id, get_settings().profile_completion_bonus, "Profile Completion Bonus", once=True
        )
    )
