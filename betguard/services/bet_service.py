import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from betguard.core import payouts
from betguard.core.config import settings
from betguard.core.errors import DuplicateAttempt, InvalidWager
from betguard.core.game import (
    COIN_SIDES,
    DIE_FACES,
    GUESS_NUMBERS,
    ROULETTE_POCKETS,
    SLOT_REELS,
    SLOT_SYMBOLS,
    OutcomeSource,
    get_outcome_source,
)
from betguard.models.bet import Bet
from betguard.services import ledger
from betguard.services.ledger import PendingAudit, PendingTransaction, to_money

logger = logging.getLogger(__name__)


@dataclass
class Wager:
    game: str
    amount: Decimal
    prediction: Any = None
    outcome: Any = None
    # sports only: server-stored odds of the backed outcome
    odds: Optional[Decimal] = None


@dataclass
class SettlementResult:
    game: str
    amount: Decimal
    prediction: Any
    outcome: Any
    multiplier: Decimal
    payout: Decimal
    delta: Decimal
    transactions: List[PendingTransaction] = field(default_factory=list)
    audit_entries: List[PendingAudit] = field(default_factory=list)

    @property
    def won(self) -> bool:
        return self.multiplier > 0


@dataclass
class BetReceipt:
    bet_id: int
    game: str
    amount: Decimal
    prediction: Any
    outcome: Any
    multiplier: Decimal
    payout: Decimal
    delta: Decimal
    won: bool
    balance: Decimal
    replayed: bool = False


def check_amount(account, amount) -> Decimal:
    """Preconditions shared by every money-out operation."""
    if account.is_banned:
        raise InvalidWager(account.ban_reason or "Account is banned")
    amount = ledger.parse_amount(amount)
    if amount > Decimal(account.balance):
        raise InvalidWager("Insufficient balance")
    return amount


def check_wager(account, amount) -> Decimal:
    amount = check_amount(account, amount)
    if amount < settings.MIN_BET:
        raise InvalidWager(f"Minimum bet is {settings.MIN_BET}")
    return amount


def resolve(game: str, prediction: Any, source: OutcomeSource) -> Any:
    if game == "dice":
        return source.draw(DIE_FACES)
    if game == "coinflip":
        return source.draw(COIN_SIDES)
    if game == "number":
        return source.draw(GUESS_NUMBERS)
    if game == "slots":
        return source.draw_many(SLOT_SYMBOLS, SLOT_REELS)
    if game == "roulette":
        return payouts.roulette_outcome(source.draw(ROULETTE_POCKETS))
    raise InvalidWager(f"{game} is not an instant game")


def settle(account, wager: Wager) -> SettlementResult:
    """
    Compute the write set of a resolved wager without touching storage.

    A win is recorded gross: a ``bet`` row for the stake and a ``win`` row
    for ``amount * multiplier``. A loss is a single ``bet`` row.
    """
    amount = check_wager(account, wager.amount)
    if wager.outcome is None:
        raise ValueError("wager must be resolved before settlement")

    m = payouts.multiplier(wager.game, wager.outcome, wager.prediction, odds=wager.odds)
    payout = to_money(amount * m)

    transactions = [PendingTransaction("bet", amount)]
    if payout > 0:
        transactions.append(PendingTransaction("win", payout))

    result_text = f"won {payout}" if payout > 0 else "lost"
    action = (
        f"{wager.game} bet {amount} on {wager.prediction if wager.prediction is not None else '-'}: "
        f"{result_text} [{payouts.describe_outcome(wager.game, wager.outcome)}]"
    )

    return SettlementResult(
        game=wager.game,
        amount=amount,
        prediction=wager.prediction,
        outcome=wager.outcome,
        multiplier=m,
        payout=payout,
        delta=payout - amount,
        transactions=transactions,
        audit_entries=[PendingAudit(action)],
    )


def receipt_from_bet(bet: Bet, balance: Decimal, replayed: bool = False) -> BetReceipt:
    amount = Decimal(bet.amount)
    payout = Decimal(bet.payout)
    return BetReceipt(
        bet_id=bet.id,
        game=bet.game,
        amount=amount,
        prediction=bet.prediction,
        outcome=bet.outcome,
        multiplier=Decimal(bet.multiplier),
        payout=payout,
        delta=payout - amount,
        won=payout > 0,
        balance=to_money(balance),
        replayed=replayed,
    )


def replay(db: Session, user_id: int, attempt_key: str) -> Optional[BetReceipt]:
    existing = ledger.find_settlement(db, user_id, attempt_key)
    if existing is None:
        return None
    user = ledger.lock_account_row(db, user_id)
    return receipt_from_bet(existing, user.balance, replayed=True)


def commit_settlement(db: Session, user_id: int, result: SettlementResult, attempt_key: str) -> BetReceipt:
    bet = Bet(
        attempt_key=attempt_key,
        game=result.game,
        amount=result.amount,
        prediction=result.prediction,
        outcome=result.outcome,
        multiplier=result.multiplier,
        payout=result.payout,
    )
    try:
        state = ledger.commit(db, user_id, result.delta, result.transactions, result.audit_entries, bet=bet)
    except DuplicateAttempt:
        return replay(db, user_id, attempt_key)

    return BetReceipt(
        bet_id=state.bet_id,
        game=result.game,
        amount=result.amount,
        prediction=result.prediction,
        outcome=result.outcome,
        multiplier=result.multiplier,
        payout=result.payout,
        delta=result.delta,
        won=result.won,
        balance=state.balance,
    )


def place_bet(
    db: Session,
    user_id: int,
    game: str,
    amount,
    prediction: Any,
    attempt_key: str,
    source: Optional[OutcomeSource] = None,
) -> BetReceipt:
    if game not in payouts.INSTANT_GAMES:
        raise InvalidWager(f"{game} is not an instant game")
    prediction = payouts.validate_prediction(game, prediction)
    source = source or get_outcome_source()

    with ledger.account_lock(user_id):
        previous = replay(db, user_id, attempt_key)
        if previous is not None:
            logger.info("Replaying settled attempt %s for account %s", attempt_key, user_id)
            return previous

        user = ledger.lock_account_row(db, user_id)
        try:
            amount = check_wager(user, amount)
        except InvalidWager as e:
            logger.info("Rejected %s wager for account %s: %s", game, user_id, e.message)
            raise

        wager = Wager(game=game, amount=amount, prediction=prediction)
        wager.outcome = resolve(game, prediction, source)
        result = settle(user, wager)
        return commit_settlement(db, user_id, result, attempt_key)
