from decimal import Decimal

import pytest

from betguard.core.config import settings


def register(client, username="player1", password="secret123"):
    r = client.post("/auth/register", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def money(value):
    return Decimal(str(value))


# =========================
#  AUTH
# =========================
def test_register_login_and_me(client):
    register(client)

    r = client.post("/auth/login", json={"username": "player1", "password": "secret123"})
    assert r.status_code == 200
    headers = {"Authorization": f"Bearer {r.json()['access_token']}"}

    me = client.get("/auth/me", headers=headers).json()
    assert me["username"] == "player1"
    assert money(me["balance"]) == 0
    assert money(me["deposit_limit"]) == Decimal("1000")
    assert me["is_admin"] is False


def test_duplicate_username(client):
    register(client)
    r = client.post("/auth/register", json={"username": "player1", "password": "other-pass"})
    assert r.status_code == 400


def test_wrong_password(client):
    register(client)
    r = client.post("/auth/login", json={"username": "player1", "password": "nope-nope"})
    assert r.status_code == 401


@pytest.mark.parametrize("path", ["/wallet/balance", "/auth/me", "/wallet/transactions", "/admin/stats"])
def test_no_session_is_401(client, path):
    assert client.get(path).status_code == 401


def test_garbage_token_is_401(client):
    r = client.get("/wallet/balance", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_admin_registration_needs_the_code(client, monkeypatch):
    body = {"username": "boss", "password": "secret123", "registration_code": "letmein"}
    assert client.post("/auth/admin/register", json=body).status_code == 403

    monkeypatch.setattr(settings, "ADMIN_REGISTRATION_CODE", "letmein")
    assert client.post("/auth/admin/register", json=body).status_code == 200

    r = client.post("/auth/admin/login", json={"username": "boss", "password": "secret123"})
    assert r.status_code == 200


def test_player_cannot_use_admin_login(client):
    register(client)
    r = client.post("/auth/admin/login", json={"username": "player1", "password": "secret123"})
    assert r.status_code == 403


# =========================
#  WALLET
# =========================
def test_deposit_and_balance(client):
    headers = register(client)

    r = client.post("/wallet/deposit", json={"amount": "250"}, headers=headers)
    assert r.status_code == 200
    assert money(r.json()["balance"]) == Decimal("250")

    assert money(client.get("/wallet/balance", headers=headers).json()["balance"]) == Decimal("250")

    status = client.get("/wallet/deposit-status", headers=headers).json()
    assert money(status["remaining"]) == Decimal("750")


def test_deposit_limit_error_body(client):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "700"}, headers=headers)

    r = client.post("/wallet/deposit", json={"amount": "400"}, headers=headers)

    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "DepositLimitExceeded"
    assert "remaining 300" in body["detail"]
    assert money(body["remaining"]) == Decimal("300")


def test_withdraw_more_than_balance(client):
    headers = register(client)
    r = client.post("/wallet/withdraw", json={"amount": "5"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidWager"


# =========================
#  GAMES
# =========================
def test_games_are_listed(client):
    games = {g["game"] for g in client.get("/games/").json()}
    assert {"dice", "coinflip", "number", "slots", "roulette", "blackjack", "sports"} <= games


def test_play_dice_and_replay(client, source):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)
    source.push(3)

    body = {"amount": "10", "prediction": 3, "attempt_id": "click-1"}
    first = client.post("/games/dice/play", json=body, headers=headers)
    assert first.status_code == 200, first.text
    first = first.json()
    assert first["won"] is True
    assert first["outcome"] == 3
    assert money(first["payout"]) == Decimal("50")
    assert money(first["balance"]) == Decimal("140")
    assert first["replayed"] is False

    second = client.post("/games/dice/play", json=body, headers=headers).json()
    assert second["replayed"] is True
    assert second["bet_id"] == first["bet_id"]
    assert money(client.get("/wallet/balance", headers=headers).json()["balance"]) == Decimal("140")


def test_play_roulette(client, source):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)
    source.push(0)

    r = client.post("/games/roulette/play", json={"amount": "2", "prediction": "green"}, headers=headers).json()
    assert r["outcome"] == {"pocket": 0, "color": "green"}
    assert money(r["delta"]) == Decimal("68")


def test_invalid_prediction(client):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)
    r = client.post("/games/dice/play", json={"amount": "10", "prediction": 9}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidWager"


def test_oversized_amounts_are_bad_requests(client, source):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)

    r = client.post("/wallet/deposit", json={"amount": "1e30"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidWager"

    r = client.post("/games/dice/play", json={"amount": "1e30", "prediction": 3}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidWager"

    assert money(client.get("/wallet/balance", headers=headers).json()["balance"]) == Decimal("100")


def test_bet_over_balance(client):
    headers = register(client)
    r = client.post("/games/coinflip/play", json={"amount": "10", "prediction": "heads"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Insufficient balance"


def test_unknown_instant_game(client):
    headers = register(client)
    r = client.post("/games/blackjack/play", json={"amount": "10"}, headers=headers)
    assert r.status_code == 404


def test_attempt_id_charset(client):
    headers = register(client)
    r = client.post(
        "/games/dice/play",
        json={"amount": "10", "prediction": 1, "attempt_id": "blackjack:1"},
        headers=headers,
    )
    assert r.status_code == 422


def test_blackjack_round(client, source):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)
    source.push("10", "9", "10", "6")

    hand = client.post("/blackjack/deal", json={"amount": "10"}, headers=headers).json()
    assert hand["status"] == "open"
    assert hand["dealer_cards"] == ["10", "?"]
    assert money(hand["balance"]) == Decimal("90")

    source.push("K")
    hand = client.post(f"/blackjack/{hand['id']}/stand", headers=headers).json()
    assert hand["status"] == "won"
    assert hand["dealer_total"] == 26
    assert money(hand["payout"]) == Decimal("20")
    assert money(hand["balance"]) == Decimal("110")


def test_sports_market_and_bet(client, source):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)

    market = client.post(
        "/sports/markets",
        json={"sport": "football", "team1": "Manchester United", "team2": "Liverpool"},
        headers=headers,
    ).json()
    assert market["source"] == "fallback"

    source.push(50)
    r = client.post(
        "/sports/bets",
        json={"market_id": market["id"], "outcome": "Draw", "amount": "10"},
        headers=headers,
    ).json()
    assert r["won"] is True
    assert money(r["balance"]) == Decimal("122")


# =========================
#  ADMIN
# =========================
@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user("boss", admin=True))


def test_player_is_refused_admin_routes(client):
    headers = register(client)
    assert client.get("/admin/stats", headers=headers).status_code == 403
    assert client.get("/admin/users", headers=headers).status_code == 403


def test_admin_stats(client, source, admin_headers):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)
    source.push(4)
    client.post("/games/dice/play", json={"amount": "10", "prediction": 1}, headers=headers)

    stats = client.get("/admin/stats", headers=admin_headers).json()
    assert stats["total_users"] == 2
    assert money(stats["total_deposits"]) == Decimal("100")
    assert money(stats["total_bets"]) == Decimal("10")
    assert money(stats["platform_profit"]) == Decimal("10")
    assert stats["active_users"] >= 1

    txs = client.get("/admin/transactions", headers=admin_headers).json()
    assert [t["type"] for t in txs] == ["bet", "deposit"]
    assert txs[0]["username"] == "player1"


def test_ban_blocks_login_and_play(client, admin_headers):
    headers = register(client)
    me = client.get("/auth/me", headers=headers).json()

    r = client.post(f"/admin/users/{me['id']}/ban", json={"reason": "chargebacks"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["is_banned"] is True

    r = client.post("/auth/login", json={"username": "player1", "password": "secret123"})
    assert r.status_code == 403
    assert r.json()["detail"] == "chargebacks"

    r = client.post("/wallet/deposit", json={"amount": "10"}, headers=headers)
    assert r.status_code == 400

    client.post(f"/admin/users/{me['id']}/unban", headers=admin_headers)
    r = client.post("/auth/login", json={"username": "player1", "password": "secret123"})
    assert r.status_code == 200

    actions = [a["action"] for a in client.get("/admin/audit", headers=admin_headers).json()]
    assert any(a.startswith("banned_by_admin: chargebacks") for a in actions)


def test_analyze_without_oracle(client, admin_headers):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "100"}, headers=headers)
    me = client.get("/auth/me", headers=headers).json()

    r = client.post(f"/admin/users/{me['id']}/analyze", headers=admin_headers)

    assert r.status_code == 200
    body = r.json()
    assert body["ai_insights"] is None
    assert body["risk_score"] == 0
    assert body["recommendation"] == "Safe to Continue"
    assert money(body["statistics"]["total_deposits"]) == Decimal("100")


def test_advice_falls_back(client, admin_headers):
    headers = register(client)
    me = client.get("/auth/me", headers=headers).json()

    r = client.post(
        f"/admin/users/{me['id']}/advice",
        json={"message": "Player deposits many times a day"},
        headers=admin_headers,
    )

    assert r.status_code == 200
    assert r.json()["source"] == "fallback"


def test_reconcile_endpoint(client, admin_headers):
    headers = register(client)
    client.post("/wallet/deposit", json={"amount": "30"}, headers=headers)
    me = client.get("/auth/me", headers=headers).json()

    r = client.post(f"/admin/users/{me['id']}/reconcile", headers=admin_headers).json()
    assert r["corrected"] is False
    assert money(r["ledger"]) == Decimal("30")


def test_missing_player(client, admin_headers):
    assert client.get("/admin/users/999", headers=admin_headers).status_code == 404
