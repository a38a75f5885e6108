from decimal import Decimal


class BetGuardError(Exception):
    """Base class for errors reported back to the caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "detail": self.message}


class InvalidWager(BetGuardError):
    """Bad amount, insufficient balance, bad prediction or banned account."""


class DepositLimitExceeded(BetGuardError):
    def __init__(self, message: str, remaining: Decimal):
        super().__init__(message)
        self.remaining = remaining

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["remaining"] = str(self.remaining)
        return data


class AccountBanned(BetGuardError):
    status_code = 403


class NotFound(BetGuardError):
    status_code = 404


class LedgerCommitFailure(BetGuardError):
    """The atomic write did not complete; the balance is unchanged."""

    status_code = 503


class DuplicateAttempt(LedgerCommitFailure):
    """The wager attempt key was already committed."""

    status_code = 409


class OracleUnavailable(BetGuardError):
    status_code = 503
