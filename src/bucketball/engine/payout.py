"""Two-pass payout: nominal results per bet, then one global wallet-cap rescale.

The passes are deliberately separate so every winner in a round shares
the same scale factor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from bucketball.models import Bet

WIN_THRESHOLD = 2.0
PUSH_MULTIPLIER = 1.0


def classify(multiplier: float) -> str:
    """won (m >= 2.0), pushed (m == 1.0 exactly), otherwise lost.

    A "lost" bet with 1.0 < m < 2.0 still keeps its nominal (positive) profit.
    """
    if multiplier >= WIN_THRESHOLD:
        return "won"
    if multiplier == PUSH_MULTIPLIER:
        return "pushed"
    return "lost"


@dataclass
class BetOutcome:
    """Settlement of one bet; profit is mutated by the cap pass."""

    bet: Bet
    basket: int | None
    nominal_multiplier: float
    profit: float
    status: str
    wallet_limited: bool = False

    @property
    def won(self) -> bool:
        return self.status == "won"

    @property
    def pushed(self) -> bool:
        return self.status == "pushed"

    @property
    def win_amount(self) -> float:
        return self.bet.amount + self.profit

    @property
    def multiplier(self) -> float:
        """Effective multiplier actually paid."""
        return self.win_amount / self.bet.amount


@dataclass
class CapResult:
    max_allowed_win: float
    total_nominal_win: float
    scale: float

    @property
    def limited(self) -> bool:
        return self.scale < 1.0


def nominal_outcome(bet: Bet, basket: int, multiplier: float) -> BetOutcome:
    status = classify(multiplier)
    if status == "pushed":
        profit = 0.0
    else:
        profit = bet.amount * multiplier - bet.amount
    return BetOutcome(bet=bet, basket=basket, nominal_multiplier=multiplier, profit=profit, status=status)


def losing_ball_outcome(bet: Bet) -> BetOutcome:
    """Bet on a ball that was not drawn: forfeit at 0x, no basket."""
    return BetOutcome(bet=bet, basket=None, nominal_multiplier=0.0, profit=-bet.amount, status="lost")


def nominal_outcomes(
    bets: Iterable[Bet],
    winning_ball_id: int,
    winning_basket: int,
    multiplier: float,
) -> list[BetOutcome]:
    """First pass: score winning-ball bets at the basket multiplier, all others as 0x losses."""
    outcomes = []
    for bet in bets:
        if bet.ball_id == winning_ball_id:
            outcomes.append(nominal_outcome(bet, winning_basket, multiplier))
        else:
            outcomes.append(losing_ball_outcome(bet))
    return outcomes


def apply_wallet_cap(outcomes: list[BetOutcome], max_allowed_win: float) -> CapResult:
    """Second pass: scale every winner's profit by max_allowed_win / total nominal win if over the cap."""
    total = sum(o.profit for o in outcomes if o.won and o.profit > 0)
    if total <= max_allowed_win or total <= 0:
        return CapResult(max_allowed_win=max_allowed_win, total_nominal_win=total, scale=1.0)
    scale = max(0.0, max_allowed_win) / total
    for o in outcomes:
        if o.won and o.profit > 0:
            o.profit *= scale
            o.wallet_limited = True
    return CapResult(max_allowed_win=max_allowed_win, total_nominal_win=total, scale=scale)


def house_net_change(outcomes: Iterable[BetOutcome]) -> float:
    """Stakes retained on losses minus profit paid to winners."""
    return sum(o.bet.amount - o.win_amount for o in outcomes)


def credits_by_user(outcomes: Iterable[BetOutcome]) -> dict[str, float]:
    """Amount to credit each user (stake was taken at placement, so this is win_amount)."""
    credits: dict[str, float] = {}
    for o in outcomes:
        credits[o.bet.user_id] = credits.get(o.bet.user_id, 0.0) + o.win_amount
    return credits


def admin_skim(
    total_wagered: float,
    rate: float,
    balance_after_payouts: float,
    floor: float = 0.0,
) -> float:
    """House cut of total_wagered, clamped so the balance stays at or above floor (and 0)."""
    skim = total_wagered * rate
    return max(0.0, min(skim, balance_after_payouts - max(0.0, floor)))
