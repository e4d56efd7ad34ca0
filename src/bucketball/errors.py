"""Error taxonomy for bet placement and round settlement.

Every error carries a machine-readable ``code`` that the API returns
alongside the message. Validation and business-rule errors are raised
before any mutation; ``SettlementFailed`` is raised after a rollback and
is safe to retry.
"""

from __future__ import annotations


class BucketballError(Exception):
    """Base class for all game errors."""

    code = "error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


# --- Validation (rejected before any mutation) ---
class ValidationError(BucketballError):
    """Invalid bet request."""

    code = "validation_error"


class InvalidBallId(ValidationError):
    """Unknown ball id."""

    code = "invalid_ball_id"


class BetOutOfBounds(ValidationError):
    """Bet amount outside the allowed bounds."""

    code = "bet_out_of_bounds"


# --- Business rules ---
class InsufficientBalance(BucketballError):
    """Insufficient balance."""

    code = "insufficient_balance"


class HouseWalletDepleted(BucketballError):
    """House wallet is empty."""

    code = "house_wallet_depleted"


# --- State machine ---
class RoundNotActive(BucketballError):
    """Round is not active."""

    code = "round_not_active"


class NoBetsPresent(BucketballError):
    """No bets found for this round."""

    code = "no_bets"


class RoundExpired(BucketballError):
    """Round has expired due to inactivity."""

    code = "round_expired"


# --- Lookups ---
class RoundNotFound(BucketballError):
    """Round not found."""

    code = "round_not_found"


class UserNotFound(BucketballError):
    """User not found."""

    code = "user_not_found"


# --- Commit ---
class SettlementFailed(BucketballError):
    """Settlement failed and was rolled back; the round is still active."""

    code = "settlement_failed"
