import json
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from betguard.core.errors import LedgerCommitFailure, NotFound, OracleUnavailable
from betguard.models.audit import AuditLog
from betguard.models.transaction import WalletTransaction
from betguard.models.user import User
from betguard.services.ledger import to_money
from betguard.services.oracle import OracleClient

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(minutes=5)
RECENT_TRANSACTIONS = 100
RECENT_AUDIT = 50

ANALYST_PROMPT = """You are an expert betting behavior analyst. Analyze player data and provide:
1. Risk assessment (Low/Medium/High)
2. Behavioral patterns (positive, concerning, or suspicious)
3. Recommendations (Ban, Monitor Closely, Safe to Continue, or Encourage Responsible Gaming)
4. Key insights about their betting behavior
5. Specific red flags if any

Focus on: win rates, bet patterns, deposit frequency, withdrawal patterns, and overall financial behavior.
Be concise and actionable."""

ADVISOR_PROMPT = (
    "You are a professional responsible gaming advisor. "
    "Provide clear, empathetic, and actionable advice."
)

FALLBACK_ADVICE = (
    "We noticed some activity on your account and want to make sure you stay in control. "
    "Set a budget before you play, keep to your daily deposit limit, take regular breaks, "
    "and never chase losses. If gambling stops being fun, reach out to our support team."
)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("Player not found")
    return user


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Admin %s failed: %s", what, e)
        raise LedgerCommitFailure(f"Could not {what}")


# =========================
#  LISTINGS
# =========================
def _sum_by_type(db: Session, user_id: Optional[int] = None) -> dict:
    q = db.query(WalletTransaction.type, func.coalesce(func.sum(WalletTransaction.amount), 0))
    if user_id is not None:
        q = q.filter(WalletTransaction.user_id == user_id)
    totals = {t: Decimal("0.00") for t in ("deposit", "bet", "win", "withdrawal")}
    for type_, amount in q.group_by(WalletTransaction.type).all():
        totals[type_] = to_money(Decimal(str(amount)))
    return totals


def platform_stats(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    totals = _sum_by_type(db)
    active = (
        db.query(func.count(func.distinct(AuditLog.user_id)))
        .filter(AuditLog.created_at > now - ACTIVE_WINDOW)
        .scalar()
    )
    return {
        "total_users": db.query(func.count(User.id)).scalar(),
        "total_deposits": totals["deposit"],
        "total_bets": totals["bet"],
        "total_wins": totals["win"],
        "platform_profit": totals["bet"] - totals["win"],
        "active_users": active or 0,
    }


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.balance.desc(), User.id.asc()).all()


def recent_transactions(db: Session, limit: int = 50, user_id: Optional[int] = None) -> List[dict]:
    q = db.query(WalletTransaction, User.username).join(User, User.id == WalletTransaction.user_id)
    if user_id is not None:
        q = q.filter(WalletTransaction.user_id == user_id)
    rows = q.order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc()).limit(limit).all()
    return [
        {
            "id": t.id,
            "user_id": t.user_id,
            "username": username,
            "amount": to_money(t.amount),
            "type": t.type,
            "created_at": t.created_at,
        }
        for t, username in rows
    ]


def recent_audit(db: Session, limit: int = 50, user_id: Optional[int] = None) -> List[dict]:
    q = db.query(AuditLog, User.username).outerjoin(User, User.id == AuditLog.user_id)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)
    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return [
        {
            "id": a.id,
            "user_id": a.user_id,
            "username": username or "Unknown",
            "action": a.action,
            "created_at": a.created_at,
        }
        for a, username in rows
    ]


# =========================
#  BANS
# =========================
def ban_user(db: Session, admin: User, user_id: int, reason: str) -> User:
    user = get_user(db, user_id)
    user.is_banned = True
    user.ban_reason = reason
    user.banned_at = datetime.utcnow()
    db.add(AuditLog(user_id=user.id, action=f"banned_by_admin: {reason} (admin {admin.username})"))
    _commit(db, "ban player")
    logger.info("Admin %s banned account %s: %s", admin.id, user.id, reason)
    return user


def unban_user(db: Session, admin: User, user_id: int) -> User:
    user = get_user(db, user_id)
    user.is_banned = False
    user.ban_reason = None
    user.banned_at = None
    db.add(AuditLog(user_id=user.id, action=f"unbanned_by_admin (admin {admin.username})"))
    _commit(db, "unban player")
    logger.info("Admin %s unbanned account %s", admin.id, user.id)
    return user


# =========================
#  RISK ANALYSIS
# =========================
def player_statistics(db: Session, user: User, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    txs = (
        db.query(WalletTransaction)
        .filter(WalletTransaction.user_id == user.id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(RECENT_TRANSACTIONS)
        .all()
    )

    def total(kind):
        return to_money(sum((Decimal(t.amount) for t in txs if t.type == kind), Decimal("0")))

    total_bets = total("bet")
    total_wins = total("win")
    bet_count = sum(1 for t in txs if t.type == "bet")
    win_rate = (total_wins / total_bets * 100) if total_bets > 0 else Decimal("0")
    deposits_24h = sum(
        1 for t in txs if t.type == "deposit" and t.created_at and t.created_at > now - timedelta(hours=24)
    )

    return {
        "total_bets": total_bets,
        "total_wins": total_wins,
        "total_deposits": total("deposit"),
        "total_withdrawals": total("withdrawal"),
        "avg_bet_size": to_money(total_bets / bet_count) if bet_count else Decimal("0.00"),
        "win_rate": win_rate.quantize(Decimal("0.01")),
        "net_profit": total_wins - total_bets,
        "transaction_count": len(txs),
        "deposits_last_24h": deposits_24h,
    }


def risk_score(stats: dict, balance: Decimal) -> int:
    score = 0
    # a high win rate can point at cheating
    if stats["win_rate"] > 70:
        score += 30
    elif stats["win_rate"] > 55:
        score += 15

    # rapid deposits can point at problem gambling
    if stats["deposits_last_24h"] > 5:
        score += 25
    elif stats["deposits_last_24h"] > 3:
        score += 15

    if balance < 0:
        score += 20
    if balance > stats["total_deposits"] * 5:
        score += 25

    return min(100, score)


def recommendation_for(score: int) -> str:
    if score > 70:
        return "Ban Recommended"
    if score > 50:
        return "Monitor Closely"
    if score > 30:
        return "Encourage Responsible Gaming"
    return "Safe to Continue"


def _stats_json(user: User, stats: dict) -> str:
    payload = {
        "profile": {
            "username": user.username,
            "balance": str(to_money(user.balance)),
            "depositLimit": str(to_money(user.deposit_limit)),
            "playTimeLimit": user.play_time_limit,
            "lastLogin": user.last_login.isoformat() if user.last_login else None,
            "isBanned": user.is_banned,
        },
        "statistics": {k: str(v) for k, v in stats.items()},
    }
    return json.dumps(payload, indent=2)


def analyze_player(db: Session, user_id: int, oracle: OracleClient, now: Optional[datetime] = None) -> dict:
    user = get_user(db, user_id)
    stats = player_statistics(db, user, now)
    balance = Decimal(user.balance)
    score = risk_score(stats, balance)

    try:
        insights = oracle.complete(ANALYST_PROMPT, f"Analyze this player data:\n\n{_stats_json(user, stats)}")
    except OracleUnavailable as e:
        logger.warning("No AI insights for account %s: %s", user.id, e.message)
        insights = None

    return {
        "user_id": user.id,
        "username": user.username,
        "risk_score": score,
        "recommendation": recommendation_for(score),
        "flags": {
            "high_win_rate": stats["win_rate"] > 70,
            "rapid_deposits": stats["deposits_last_24h"] > 5,
            "negative_balance": balance < 0,
            "balance_anomaly": balance > stats["total_deposits"] * 5,
        },
        "statistics": stats,
        "ai_insights": insights,
    }


def send_advice(db: Session, admin: User, user_id: int, message: str, oracle: OracleClient) -> dict:
    user = get_user(db, user_id)
    stats = player_statistics(db, user)

    prompt = f"""You are a responsible gaming advisor for a betting platform called BetGuard.

Player Statistics:
- Username: {user.username}
- Current Balance: {to_money(user.balance)}
- Total Bets: {stats['total_bets']}
- Total Wins: {stats['total_wins']}
- Total Deposits: {stats['total_deposits']}
- Win Rate: {stats['win_rate']}%
- Deposit Limit: {to_money(user.deposit_limit)}
- Play Time Limit: {user.play_time_limit}h/day

Admin's Message/Concern:
{message}

Based on the admin's message and the player's statistics, provide:
1. A personalized, empathetic response addressing the admin's concern
2. Specific recommendations for the player about responsible gaming
3. Actionable advice on how to improve their betting behavior
4. Any warnings if patterns suggest problem gambling

Keep the advice constructive, supportive, and focused on player wellbeing."""

    try:
        advice = oracle.complete(ADVISOR_PROMPT, prompt)
        source = "oracle"
    except OracleUnavailable as e:
        logger.warning("Using fallback advice for account %s: %s", user.id, e.message)
        advice = FALLBACK_ADVICE
        source = "fallback"

    db.add(AuditLog(user_id=user.id, action=f"admin_advice_sent: {message[:50]}..."))
    _commit(db, "record advice")
    logger.info("Admin %s sent advice to account %s", admin.id, user.id)

    return {"user_id": user.id, "advice": advice, "source": source, "statistics": stats}
