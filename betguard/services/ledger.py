"""
Ledger writer.

The only code path that mutates an account's balance. A commit writes the
balance change, its transaction rows, its audit rows and (for wagers) the
settlement row in a single database transaction. Transaction rows are the
source of truth; ``users.balance`` is a cache that ``reconcile`` can rebuild
from them at any time.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_DOWN, Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from betguard.core.config import settings
from betguard.core.errors import DuplicateAttempt, InvalidWager, LedgerCommitFailure, NotFound
from betguard.models.audit import AuditLog
from betguard.models.bet import Bet
from betguard.models.transaction import WalletTransaction
from betguard.models.user import User

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
SIGNS = {"deposit": 1, "win": 1, "bet": -1, "withdrawal": -1}


# largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")


def to_money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_DOWN)


def parse_amount(value) -> Decimal:
    """Positive amount with at most two decimal places, else InvalidWager."""
    try:
        amount = Decimal(str(value))
    except ArithmeticError:
        raise InvalidWager("Invalid amount")
    if not amount.is_finite() or amount <= 0:
        raise InvalidWager("Amount must be positive")
    if amount > MAX_AMOUNT:
        raise InvalidWager("Amount is too large")
    if amount != to_money(amount):
        raise InvalidWager("Amount can have at most two decimal places")
    return amount


@dataclass
class PendingTransaction:
    type: str
    amount: Decimal
    created_at: Optional[datetime] = None


@dataclass
class PendingAudit:
    action: str


@dataclass
class CommittedLedgerState:
    user_id: int
    balance: Decimal
    transaction_ids: List[int] = field(default_factory=list)
    bet_id: Optional[int] = None


def signed_sum(transactions: Iterable) -> Decimal:
    total = Decimal("0")
    for t in transactions:
        total += Decimal(t.amount) * SIGNS[t.type]
    return total


def balance_from_transactions(transactions: Iterable) -> Decimal:
    """deposits + wins - bets - withdrawals"""
    return to_money(signed_sum(transactions))


# =========================
#  PER-ACCOUNT ORDERING
# =========================
_locks: Dict[int, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(user_id: int) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(user_id)
        if lock is None:
            lock = _locks[user_id] = threading.Lock()
        return lock


@contextmanager
def account_lock(user_id: int, timeout: Optional[float] = None):
    """Serialize ledger work for one account inside this process."""
    lock = _lock_for(user_id)
    wait = settings.DB_TIMEOUT_SECONDS if timeout is None else timeout
    if not lock.acquire(timeout=wait):
        logger.warning("Timed out waiting for account %s ledger lock", user_id)
        raise LedgerCommitFailure("Account is busy, try again")
    try:
        yield
    finally:
        lock.release()


def lock_account_row(db: Session, user_id: int) -> User:
    """Fresh read of the account, row-locked where the database supports it."""
    try:
        user = (
            db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
    except OperationalError as e:
        # lock_timeout on the server side
        db.rollback()
        logger.warning("Could not lock account %s: %s", user_id, e)
        raise LedgerCommitFailure("Account is busy, try again")
    if user is None:
        raise NotFound("Account not found")
    return user


def find_settlement(db: Session, user_id: int, attempt_key: str) -> Optional[Bet]:
    return (
        db.query(Bet)
        .filter(Bet.user_id == user_id, Bet.attempt_key == attempt_key)
        .one_or_none()
    )


# =========================
#  COMMIT
# =========================
def commit(
    db: Session,
    user_id: int,
    delta: Decimal,
    transactions: List[PendingTransaction],
    audit_entries: List[PendingAudit],
    bet: Optional[Bet] = None,
    extra: Iterable = (),
) -> CommittedLedgerState:
    """
    Apply ``delta`` and append the given rows in one database transaction.

    ``extra`` holds ORM objects (game state) that must persist together with
    the money movement.
    """
    for t in transactions:
        if t.type not in SIGNS:
            raise ValueError(f"unknown transaction type {t.type!r}")
        if t.amount <= 0:
            raise ValueError("transaction amounts must be positive")
    if to_money(delta) != to_money(signed_sum(transactions)):
        raise ValueError("balance delta does not match the transaction rows")

    try:
        user = lock_account_row(db, user_id)
        new_balance = to_money(Decimal(user.balance) + delta)
        if new_balance < 0:
            raise InvalidWager("Insufficient balance")

        if bet is not None:
            bet.user_id = user_id
            db.add(bet)
            db.flush()

        rows = []
        for t in transactions:
            row = WalletTransaction(
                user_id=user_id,
                amount=to_money(t.amount),
                type=t.type,
                bet_id=bet.id if bet is not None else None,
            )
            if t.created_at is not None:
                row.created_at = t.created_at
            rows.append(row)
        db.add_all(rows)
        db.add_all(AuditLog(user_id=user_id, action=a.action) for a in audit_entries)
        db.add_all(list(extra))

        user.balance = new_balance
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if bet is not None and find_settlement(db, user_id, bet.attempt_key) is not None:
            logger.info("Attempt %s for account %s already settled", bet.attempt_key, user_id)
            raise DuplicateAttempt("Wager attempt already settled")
        logger.error("Ledger commit for account %s violated a constraint: %s", user_id, e)
        raise LedgerCommitFailure("Ledger write failed, balance unchanged")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Ledger commit for account %s failed: %s", user_id, e)
        raise LedgerCommitFailure("Ledger write failed, balance unchanged")
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Committed %s for account %s, delta %s, balance %s",
        ",".join(t.type for t in transactions) or "audit",
        user_id,
        to_money(delta),
        new_balance,
    )
    return CommittedLedgerState(
        user_id=user_id,
        balance=new_balance,
        transaction_ids=[r.id for r in rows],
        bet_id=bet.id if bet is not None else None,
    )


def append_audit(db: Session, user_id: Optional[int], action: str) -> None:
    """Audit entry for actions that do not move money."""
    try:
        db.add(AuditLog(user_id=user_id, action=action))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Audit write failed for account %s: %s", user_id, e)
        raise LedgerCommitFailure("Audit write failed")


# =========================
#  RECONCILIATION
# =========================
def replay_balance(db: Session, user_id: int) -> Decimal:
    rows = (
        db.query(WalletTransaction.type, func.coalesce(func.sum(WalletTransaction.amount), 0))
        .filter(WalletTransaction.user_id == user_id)
        .group_by(WalletTransaction.type)
        .all()
    )
    total = Decimal("0")
    for type_, amount in rows:
        total += Decimal(str(amount)) * SIGNS[type_]
    return to_money(total)


def reconcile(db: Session, user_id: int) -> dict:
    """Rebuild the cached balance from the transaction log."""
    with account_lock(user_id):
        try:
            user = lock_account_row(db, user_id)
            cached = to_money(user.balance)
            replayed = replay_balance(db, user_id)
            corrected = cached != replayed
            if corrected:
                logger.warning(
                    "Account %s balance drifted: cached %s, ledger %s", user_id, cached, replayed
                )
                user.balance = replayed
                db.add(AuditLog(user_id=user_id, action=f"balance_reconciled: {cached} -> {replayed}"))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Reconciliation for account %s failed: %s", user_id, e)
            raise LedgerCommitFailure("Reconciliation failed")

    return {"user_id": user_id, "cached": cached, "ledger": replayed, "corrected": corrected}
