from decimal import Decimal

import pytest

from betguard.core.errors import InvalidWager, NotFound
from betguard.models.bet import Bet
from betguard.models.transaction import WalletTransaction
from betguard.services import blackjack_service, ledger

from conftest import ScriptedSource


def balance(db, user):
    return ledger.lock_account_row(db, user.id).balance


def test_deal_takes_the_stake(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "9", "10", "6")

    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    assert hand.is_open
    assert hand.player_cards == ["10", "9"]
    assert hand.dealer_cards == ["10", "6"]
    assert balance(db, user) == Decimal("90.00")
    assert ledger.replay_balance(db, user.id) == Decimal("90.00")


def test_stand_dealer_busts_and_player_is_paid(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "9", "10", "6")
    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    source.push("K")
    hand = blackjack_service.stand(db, user.id, hand.id, source)

    assert hand.status == "won"
    assert hand.dealer_cards == ["10", "6", "K"]
    assert hand.finished_at is not None
    assert balance(db, user) == Decimal("110.00")
    assert blackjack_service.payout_of(db, hand) == Decimal("20.00")
    assert ledger.replay_balance(db, user.id) == Decimal("110.00")


def test_hit_past_21_loses(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "6", "9", "8")
    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    source.push("K")
    hand = blackjack_service.hit(db, user.id, hand.id, source)

    assert hand.status == "lost"
    assert hand.player_cards == ["10", "6", "K"]
    assert balance(db, user) == Decimal("90.00")

    settlement = db.query(Bet).filter_by(attempt_key=blackjack_service.settlement_key(hand)).one()
    assert settlement.payout == 0

    with pytest.raises(InvalidWager):
        blackjack_service.hit(db, user.id, hand.id, source)


def test_hit_below_21_keeps_the_hand_open(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("2", "3", "9", "8", "4")
    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    hand = blackjack_service.hit(db, user.id, hand.id, source)

    assert hand.is_open
    assert blackjack_service.get_hand(db, user.id, hand.id).player_cards == ["2", "3", "4"]


def test_a_push_goes_to_the_house(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "8", "10", "8")
    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    hand = blackjack_service.stand(db, user.id, hand.id, source)

    assert hand.status == "lost"
    assert balance(db, user) == Decimal("90.00")


def test_standing_twice_settles_once(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "9", "10", "7")
    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    blackjack_service.stand(db, user.id, hand.id, source)
    again = blackjack_service.stand(db, user.id, hand.id, source)

    assert again.status == "won"
    assert balance(db, user) == Decimal("110.00")
    assert db.query(WalletTransaction).filter_by(user_id=user.id, type="win").count() == 1


def test_repeated_deal_returns_the_same_hand(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "9", "10", "7")

    first = blackjack_service.deal(db, user.id, "10", "deal-1", source)
    second = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    assert second.id == first.id
    assert db.query(WalletTransaction).filter_by(user_id=user.id, type="bet").count() == 1


def test_deal_needs_the_funds(db, make_user):
    user = make_user(balance=Decimal("5"))
    with pytest.raises(InvalidWager):
        blackjack_service.deal(db, user.id, "10", "deal-1", ScriptedSource())


def test_hands_are_private(db, make_user):
    alice = make_user("alice", balance=Decimal("100"))
    bob = make_user("bob", balance=Decimal("100"))
    hand = blackjack_service.deal(db, alice.id, "10", "deal-1", ScriptedSource("2", "3", "4", "5"))

    with pytest.raises(NotFound):
        blackjack_service.get_hand(db, bob.id, hand.id)


def test_view_hides_the_hole_card_until_the_hand_is_over(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "9", "10", "7")
    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    view = blackjack_service.hand_view(db, hand, Decimal("90"))
    assert view["dealer_cards"] == ["10", "?"]
    assert view["dealer_total"] is None
    assert view["player_total"] == 19
    assert view["payout"] == Decimal("0.00")

    hand = blackjack_service.stand(db, user.id, hand.id, source)
    view = blackjack_service.hand_view(db, hand, Decimal("110"))
    assert view["dealer_cards"] == ["10", "7"]
    assert view["dealer_total"] == 17


def test_banned_account_cannot_finish_an_open_hand(db, make_user):
    user = make_user(balance=Decimal("100"))
    source = ScriptedSource("10", "9", "10", "6")
    hand = blackjack_service.deal(db, user.id, "10", "deal-1", source)

    user.is_banned = True
    user.ban_reason = "fraud"
    db.commit()

    source.push("K")
    with pytest.raises(InvalidWager) as exc:
        blackjack_service.stand(db, user.id, hand.id, source)
    assert exc.value.message == "fraud"
    with pytest.raises(InvalidWager):
        blackjack_service.hit(db, user.id, hand.id, source)

    assert balance(db, user) == Decimal("90.00")
    assert db.query(WalletTransaction).filter_by(user_id=user.id, type="win").count() == 0

    user.is_banned = False
    db.commit()
    hand = blackjack_service.stand(db, user.id, hand.id, source)
    assert hand.status == "won"
    assert balance(db, user) == Decimal("110.00")
