import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from betguard.core.errors import DepositLimitExceeded, InvalidWager
from betguard.models.transaction import WalletTransaction
from betguard.services import ledger
from betguard.services.bet_service import check_amount
from betguard.services.ledger import PendingAudit, PendingTransaction, to_money

logger = logging.getLogger(__name__)


@dataclass
class DepositDecision:
    allowed: bool
    remaining: Decimal
    reason: Optional[str] = None


def format_money(value: Decimal) -> str:
    value = to_money(value)
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value:.2f}"


def check_deposit(deposit_limit, amount, deposits_today) -> DepositDecision:
    """Allow or reject a deposit against the account's daily cap."""
    limit = Decimal(str(deposit_limit))
    today = Decimal(str(deposits_today))
    remaining = max(limit - today, Decimal("0"))

    try:
        amount = Decimal(str(amount))
    except ArithmeticError:
        return DepositDecision(False, remaining, "amount must be positive")
    if not amount.is_finite() or amount <= 0:
        return DepositDecision(False, remaining, "amount must be positive")

    if today + amount > limit:
        return DepositDecision(False, remaining, f"remaining {format_money(limit - today)}")
    return DepositDecision(True, remaining - amount)


def utc_day_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Current UTC calendar day as naive UTC datetimes, [start, end)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def deposits_today(db: Session, user_id: int, now: Optional[datetime] = None) -> Decimal:
    start, end = utc_day_window(now)
    total = (
        db.query(func.coalesce(func.sum(WalletTransaction.amount), 0))
        .filter(
            WalletTransaction.user_id == user_id,
            WalletTransaction.type == "deposit",
            WalletTransaction.created_at >= start,
            WalletTransaction.created_at < end,
        )
        .scalar()
    )
    return to_money(Decimal(str(total)))


def deposit_status(db: Session, user, now: Optional[datetime] = None) -> dict:
    today = deposits_today(db, user.id, now)
    limit = to_money(user.deposit_limit)
    return {
        "deposit_limit": limit,
        "deposited_today": today,
        "remaining": max(limit - today, Decimal("0")),
    }


def deposit(db: Session, user_id: int, amount, now: Optional[datetime] = None) -> ledger.CommittedLedgerState:
    with ledger.account_lock(user_id):
        user = ledger.lock_account_row(db, user_id)
        if user.is_banned:
            raise InvalidWager(user.ban_reason or "Account is banned")

        amount = ledger.parse_amount(amount)
        decision = check_deposit(user.deposit_limit, amount, deposits_today(db, user_id, now))
        if not decision.allowed:
            logger.info("Deposit of %s rejected for account %s: %s", amount, user_id, decision.reason)
            raise DepositLimitExceeded(
                f"Daily deposit limit exceeded, {decision.reason}",
                remaining=decision.remaining,
            )

        return ledger.commit(
            db,
            user_id,
            amount,
            [PendingTransaction("deposit", amount, created_at=_naive_utc(now))],
            [PendingAudit(f"deposit of {amount}")],
        )


def withdraw(db: Session, user_id: int, amount) -> ledger.CommittedLedgerState:
    with ledger.account_lock(user_id):
        user = ledger.lock_account_row(db, user_id)
        amount = check_amount(user, amount)
        return ledger.commit(
            db,
            user_id,
            -amount,
            [PendingTransaction("withdrawal", amount)],
            [PendingAudit(f"withdrawal of {amount}")],
        )


def list_transactions(db: Session, user_id: int, limit: int = 50):
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(limit)
        .all()
    )


def _naive_utc(now: Optional[datetime]) -> Optional[datetime]:
    if now is None or now.tzinfo is None:
        return now
    return now.astimezone(timezone.utc).replace(tzinfo=None)
