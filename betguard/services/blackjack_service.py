import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from betguard.core import payouts
from betguard.core.errors import InvalidWager, LedgerCommitFailure, NotFound
from betguard.core.game import CARD_DECK, OutcomeSource, get_outcome_source
from betguard.models.bet import Bet
from betguard.models.blackjack import BlackjackHand
from betguard.services import ledger
from betguard.services.bet_service import check_wager
from betguard.services.ledger import PendingAudit, PendingTransaction, to_money

logger = logging.getLogger(__name__)

DEALER_STANDS_ON = 17


def _find_by_attempt(db: Session, user_id: int, attempt_key: str) -> Optional[BlackjackHand]:
    return (
        db.query(BlackjackHand)
        .filter(BlackjackHand.user_id == user_id, BlackjackHand.attempt_key == attempt_key)
        .one_or_none()
    )


def get_hand(db: Session, user_id: int, hand_id: int) -> BlackjackHand:
    hand = (
        db.query(BlackjackHand)
        .filter(BlackjackHand.id == hand_id, BlackjackHand.user_id == user_id)
        .populate_existing()
        .one_or_none()
    )
    if hand is None:
        raise NotFound("Hand not found")
    return hand


def settlement_key(hand: BlackjackHand) -> str:
    # ":" never appears in client attempt ids
    return f"blackjack:{hand.id}"


def payout_of(db: Session, hand: BlackjackHand) -> Decimal:
    if hand.is_open:
        return Decimal("0.00")
    bet = ledger.find_settlement(db, hand.user_id, settlement_key(hand))
    return to_money(bet.payout) if bet is not None else Decimal("0.00")


def deal(db: Session, user_id: int, amount, attempt_key: str, source: Optional[OutcomeSource] = None) -> BlackjackHand:
    """Take the stake and open a hand in the same ledger commit."""
    source = source or get_outcome_source()

    with ledger.account_lock(user_id):
        existing = _find_by_attempt(db, user_id, attempt_key)
        if existing is not None:
            return existing

        user = ledger.lock_account_row(db, user_id)
        amount = check_wager(user, amount)

        hand = BlackjackHand(
            user_id=user_id,
            attempt_key=attempt_key,
            amount=amount,
            player_cards=source.draw_many(CARD_DECK, 2),
            dealer_cards=source.draw_many(CARD_DECK, 2),
            status="open",
        )
        ledger.commit(
            db,
            user_id,
            -amount,
            [PendingTransaction("bet", amount)],
            [PendingAudit(f"blackjack bet {amount}")],
            extra=[hand],
        )
        return hand


def _check_not_banned(db: Session, user_id: int) -> None:
    # a banned account cannot play on; the hand stays open until unbanned
    user = ledger.lock_account_row(db, user_id)
    if user.is_banned:
        raise InvalidWager(user.ban_reason or "Account is banned")


def _save(db: Session, hand: BlackjackHand) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Could not save blackjack hand %s: %s", hand.id, e)
        raise LedgerCommitFailure("Could not save hand")


def _finish(db: Session, hand: BlackjackHand) -> BlackjackHand:
    outcome = {"player": list(hand.player_cards), "dealer": list(hand.dealer_cards)}
    m = payouts.multiplier("blackjack", outcome)
    amount = Decimal(hand.amount)
    payout = to_money(amount * m)

    hand.status = "won" if payout > 0 else "lost"
    hand.finished_at = datetime.utcnow()

    bet = Bet(
        attempt_key=settlement_key(hand),
        game="blackjack",
        amount=amount,
        prediction=None,
        outcome=outcome,
        multiplier=m,
        payout=payout,
    )
    transactions = [PendingTransaction("win", payout)] if payout > 0 else []
    result_text = f"won {payout}" if payout > 0 else "lost"
    action = f"blackjack {result_text} on {amount} [{payouts.describe_outcome('blackjack', outcome)}]"

    ledger.commit(db, hand.user_id, payout, transactions, [PendingAudit(action)], bet=bet, extra=[hand])
    return hand


def hit(db: Session, user_id: int, hand_id: int, source: Optional[OutcomeSource] = None) -> BlackjackHand:
    source = source or get_outcome_source()

    with ledger.account_lock(user_id):
        hand = get_hand(db, user_id, hand_id)
        if not hand.is_open:
            raise InvalidWager("Hand is already finished")
        _check_not_banned(db, user_id)

        # reassign so the JSON column is flagged dirty
        hand.player_cards = list(hand.player_cards) + [source.draw(CARD_DECK)]
        if payouts.hand_total(hand.player_cards) > 21:
            return _finish(db, hand)

        _save(db, hand)
        return hand


def stand(db: Session, user_id: int, hand_id: int, source: Optional[OutcomeSource] = None) -> BlackjackHand:
    source = source or get_outcome_source()

    with ledger.account_lock(user_id):
        hand = get_hand(db, user_id, hand_id)
        if not hand.is_open:
            return hand
        _check_not_banned(db, user_id)

        dealer = list(hand.dealer_cards)
        while payouts.hand_total(dealer) < DEALER_STANDS_ON:
            dealer.append(source.draw(CARD_DECK))
        hand.dealer_cards = dealer
        return _finish(db, hand)


def hand_view(db: Session, hand: BlackjackHand, balance: Decimal) -> dict:
    """Response payload; the dealer's hole card stays hidden while the hand is open."""
    dealer_cards = list(hand.dealer_cards)
    if hand.is_open:
        dealer_cards = dealer_cards[:1] + ["?"]
        dealer_total = None
    else:
        dealer_total = payouts.hand_total(hand.dealer_cards)

    return {
        "id": hand.id,
        "amount": to_money(hand.amount),
        "status": hand.status,
        "player_cards": list(hand.player_cards),
        "player_total": payouts.hand_total(hand.player_cards),
        "dealer_cards": dealer_cards,
        "dealer_total": dealer_total,
        "payout": payout_of(db, hand),
        "balance": to_money(balance),
        "created_at": hand.created_at,
    }
