"""Round settlement engine - bet placement, settlement, expiry and queries.

Every mutation runs in one DuckDB transaction. The round row is the
serialization point: placement increments ``total_wagered`` and
settlement/expiry flip ``status``, both guarded by ``status = 'active'``,
so a bet can never attach to a round that has completed and a round is
settled exactly once. Opening a round claims the single-row
``round_gate``, which keeps at most one round active.
"""

from __future__ import annotations

import random
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, TypeVar

import duckdb
import structlog

from bucketball.config.settings import Settings
from bucketball.engine.ledger import HouseWalletLedger
from bucketball.engine.payout import (
    BetOutcome,
    CapResult,
    admin_skim,
    apply_wallet_cap,
    credits_by_user,
    house_net_change,
    nominal_outcomes,
)
from bucketball.engine.selector import RandomSource, max_allowed_win, select_basket
from bucketball.errors import (
    BetOutOfBounds,
    HouseWalletDepleted,
    InvalidBallId,
    NoBetsPresent,
    RoundExpired,
    RoundNotActive,
    RoundNotFound,
    SettlementFailed,
    UserNotFound,
    ValidationError,
)
from bucketball.models import BALLS, BASKETS, Bet, GameResult, GameState, Round, SettlementReport, get_ball
from bucketball.models.catalog import BALL_IDS
from bucketball.storage import rounds as round_store
from bucketball.storage import stats as stats_store
from bucketball.storage import users as user_store
from bucketball.storage.db import now_ms, transaction

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

T = TypeVar("T")

BasketSelector = Callable[[float, float, RandomSource, float], int]

SIMULATED_BET_AMOUNTS = (50.0, 100.0, 200.0)
MAX_SIMULATED_PLAYERS = 10


@dataclass
class SettlementPlan:
    """Pure result of the two payout passes, before anything is written."""

    ball_baskets: dict[int, int]
    winning_ball_id: int
    winning_basket: int
    outcomes: list[BetOutcome]
    cap: CapResult
    net_house_change: float
    wagered: float


class RoundSettlementEngine:
    """Orchestrates rounds against one DuckDB connection.

    rng and selector are injectable so outcomes are reproducible in tests;
    clock returns ms epoch.
    """

    def __init__(
        self,
        conn: DuckDBPyConnection,
        settings: Settings | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], int] | None = None,
        selector: BasketSelector | None = None,
    ) -> None:
        self.conn = conn
        self.settings = settings or Settings()
        if rng is None:
            seed = self.settings.rng_seed
            rng = random.Random(seed) if seed is not None else random.SystemRandom()
        self.rng = rng
        self.clock = clock or now_ms
        self.select_basket = selector or select_basket
        self.ledger = HouseWalletLedger(conn)

    # --- helpers ---
    def _retry_on_conflict(self, op: str, fn: Callable[[], T]) -> T:
        """Re-run fn when DuckDB reports a write-write conflict with a concurrent transaction."""
        retries = self.settings.bet_conflict_retries
        for attempt in range(retries + 1):
            try:
                return fn()
            except duckdb.TransactionException as e:
                if attempt >= retries:
                    log.error("write_conflict_exhausted", op=op, attempts=attempt + 1, error=str(e))
                    raise
                log.warning("write_conflict_retry", op=op, attempt=attempt + 1)
        raise AssertionError("unreachable")

    def _require_round(self, round_id: str) -> Round:
        rnd = round_store.get_round(self.conn, round_id)
        if rnd is None:
            raise RoundNotFound(f"Round not found: {round_id}")
        return rnd

    def _is_stale(self, rnd: Round, now: int | None = None) -> bool:
        now = self.clock() if now is None else now
        window_ms = self.settings.stale_round_minutes * 60 * 1000
        return now - rnd.created_at > window_ms

    def validate_bet_request(self, ball_bets: dict[int, float]) -> float:
        """Check ball ids and amount bounds; return the total. Raises a ValidationError subclass."""
        s = self.settings
        if not ball_bets:
            raise ValidationError("no balls selected for betting")
        if len(ball_bets) > s.max_balls_per_bet:
            raise ValidationError(f"maximum {s.max_balls_per_bet} balls can be selected")
        total = 0.0
        for ball_id, amount in ball_bets.items():
            if ball_id not in BALL_IDS:
                raise InvalidBallId(f"invalid ball ID: {ball_id}")
            if amount <= 0:
                raise BetOutOfBounds(f"bet amount must be positive for ball {ball_id}")
            if amount > s.max_bet_per_ball:
                raise BetOutOfBounds(
                    f"maximum bet amount per ball is {s.max_bet_per_ball:.2f}, got {amount:.2f} for ball {ball_id}"
                )
            total += amount
        if total < s.min_total_bet:
            raise BetOutOfBounds(f"minimum total bet amount is {s.min_total_bet:.2f}")
        if total > s.max_total_bet:
            raise BetOutOfBounds(f"maximum total bet amount is {s.max_total_bet:.2f}, got {total:.2f}")
        return total

    # --- rounds ---
    def _get_or_create_active_round(self) -> Round:
        """Inside a transaction: return the gated round or open a new one."""
        active = round_store.get_active_round(self.conn)
        if active is not None:
            return active
        wallet = self.ledger.get_state()
        if wallet.balance <= 0:
            raise HouseWalletDepleted("house wallet is empty")
        ts = self.clock()
        rnd = Round(
            round_id=uuid.uuid4().hex,
            round_number=round_store.next_round_number(self.conn),
            status="active",
            house_balance=wallet.balance,
            admin_profit=wallet.admin_profit,
            created_at=ts,
            updated_at=ts,
        )
        round_store.create_round(self.conn, rnd)
        if not round_store.claim_gate(self.conn, rnd.round_id):
            # Lost the race in a way DuckDB did not flag as a conflict; retry reads the winner
            raise duckdb.TransactionException("round gate already claimed")
        log.info("round_opened", round_id=rnd.round_id, round_number=rnd.round_number, house_balance=wallet.balance)
        return rnd

    def open_round(self) -> Round:
        """Return the active round, opening one if none is active."""

        def attempt() -> Round:
            with transaction(self.conn):
                return self._get_or_create_active_round()

        return self._retry_on_conflict("open_round", attempt)

    def current_round(self) -> Round | None:
        return round_store.get_active_round(self.conn)

    # --- placement ---
    def place_bet(self, user_id: str, ball_bets: dict[int, float], round_id: str | None = None) -> Round:
        """Debit the user and record one bet per ball on the active round.

        round_id pins the round the caller targeted; if it is no longer
        active the bet is rejected with RoundNotActive.
        """
        total = self.validate_bet_request(ball_bets)

        def attempt() -> Round:
            with transaction(self.conn):
                if round_id is None:
                    rnd = self._get_or_create_active_round()
                else:
                    rnd = self._require_round(round_id)
                    if not rnd.is_active:
                        raise RoundNotActive(f"round {round_id} is not active")
                if self.ledger.get_state().balance <= 0:
                    raise HouseWalletDepleted("house wallet is empty")
                if not round_store.add_to_round_wager(self.conn, rnd.round_id, total):
                    raise RoundNotActive(f"round {rnd.round_id} is not active")
                user_store.adjust_balance(self.conn, user_id, -total)
                ts = self.clock()
                for ball_id, amount in sorted(ball_bets.items()):
                    round_store.create_bet(
                        self.conn,
                        Bet(
                            bet_id=uuid.uuid4().hex,
                            user_id=user_id,
                            round_id=rnd.round_id,
                            ball_id=ball_id,
                            amount=amount,
                            status="pending",
                            created_at=ts,
                            updated_at=ts,
                        ),
                    )
                return rnd.model_copy(update={"total_wagered": rnd.total_wagered + total})

        rnd = self._retry_on_conflict("place_bet", attempt)
        log.info("bet_placed", user_id=user_id, round_id=rnd.round_id, balls=sorted(ball_bets), total=total)
        return rnd

    # --- settlement ---
    def plan_settlement(self, rnd: Round, bets: list[Bet]) -> SettlementPlan:
        """Pick baskets and the winning ball, then run the nominal and wallet-cap passes."""
        cap_ratio = self.settings.exposure_cap_ratio
        by_ball: dict[int, list[Bet]] = defaultdict(list)
        for bet in bets:
            by_ball[bet.ball_id].append(bet)

        ball_baskets: dict[int, int] = {}
        for ball_id in sorted(by_ball):
            wager = sum(b.amount for b in by_ball[ball_id])
            ball_baskets[ball_id] = self.select_basket(wager, rnd.house_balance, self.rng, cap_ratio)

        winning_ball = self.rng.choice(sorted(by_ball))
        winning_basket = ball_baskets[winning_ball]
        outcomes = nominal_outcomes(bets, winning_ball, winning_basket, BASKETS[winning_basket].value)
        cap = apply_wallet_cap(outcomes, max_allowed_win(rnd.house_balance, cap_ratio))
        return SettlementPlan(
            ball_baskets=ball_baskets,
            winning_ball_id=winning_ball,
            winning_basket=winning_basket,
            outcomes=outcomes,
            cap=cap,
            net_house_change=house_net_change(outcomes),
            wagered=sum(b.amount for b in bets),
        )

    def settle_round(self, round_id: str) -> SettlementReport:
        """Settle an active round exactly once.

        Raises RoundNotFound, RoundNotActive, RoundExpired (stale round was
        expired and refunded instead), NoBetsPresent, or SettlementFailed
        after a rollback that leaves the round active for retry.
        """
        rnd = self._require_round(round_id)
        if not rnd.is_active:
            raise RoundNotActive(f"round {round_id} is not active")
        if self._is_stale(rnd):
            self.expire_round(round_id)
            raise RoundExpired("game has expired due to inactivity")

        def attempt() -> SettlementReport:
            with transaction(self.conn):
                return self._settle_in_transaction(round_id)

        try:
            report = self._retry_on_conflict("settle_round", attempt)
        except (RoundNotActive, NoBetsPresent, SettlementFailed):
            raise
        except (duckdb.Error, UserNotFound, LookupError) as e:
            log.error("settlement_failed", round_id=round_id, error=str(e))
            raise SettlementFailed(f"settlement of round {round_id} failed: {e}") from e
        log.info(
            "round_settled",
            round_id=round_id,
            winning_ball_id=report.winning_ball_id,
            winning_basket=report.winning_basket,
            results=len(report.results),
            scale=round(report.scale, 6),
            net_house_change=round(report.net_house_change, 4),
            admin_skim=round(report.admin_skim, 4),
        )
        return report

    def _settle_in_transaction(self, round_id: str) -> SettlementReport:
        conn = self.conn
        # Re-read inside the transaction snapshot so the bet set is stable
        rnd = round_store.get_round(conn, round_id)
        if rnd is None or not rnd.is_active:
            raise RoundNotActive(f"round {round_id} is not active")
        bets = round_store.get_bets_for_round(conn, round_id)
        if not bets:
            raise NoBetsPresent("no bets found for this game")
        settled = {r.bet_id for r in round_store.get_results_for_round(conn, round_id)}
        pending = [b for b in bets if b.status == "pending" and b.bet_id not in settled]
        skipped = len(bets) - len(pending)
        if skipped:
            log.warning("settled_bets_skipped", round_id=round_id, skipped=skipped)

        ts = self.clock()
        if not pending:
            if not round_store.update_round(conn, round_id, {"status": "completed", "completed_at": ts}, "active"):
                raise RoundNotActive(f"round {round_id} is not active")
            round_store.release_gate(conn, round_id)
            return SettlementReport(
                round_id=round_id,
                total_wagered=0.0,
                max_allowed_win=max_allowed_win(rnd.house_balance, self.settings.exposure_cap_ratio),
                total_nominal_win=0.0,
                net_house_change=0.0,
                admin_skim=0.0,
                skipped_bets=skipped,
            )

        plan = self.plan_settlement(rnd, pending)

        # Compare-and-swap active -> completed; concurrent settlement or expiry conflicts here
        if not round_store.update_round(
            conn,
            round_id,
            {
                "status": "completed",
                "winning_ball_id": plan.winning_ball_id,
                "winning_basket": plan.winning_basket,
                "completed_at": ts,
            },
            expect_status="active",
        ):
            raise RoundNotActive(f"round {round_id} is not active")
        round_store.release_gate(conn, round_id)

        results: list[GameResult] = []
        for outcome in plan.outcomes:
            bet = outcome.bet
            if not round_store.update_bet_status(conn, bet.bet_id, outcome.status):
                raise SettlementFailed(f"bet {bet.bet_id} changed during settlement")
            ball = get_ball(bet.ball_id)
            result = GameResult(
                result_id=uuid.uuid4().hex,
                bet_id=bet.bet_id,
                user_id=bet.user_id,
                round_id=round_id,
                ball_id=bet.ball_id,
                ball_name=ball.name if ball else "",
                ball_color=ball.color if ball else "",
                bet_amount=bet.amount,
                multiplier=outcome.multiplier,
                win_amount=outcome.win_amount,
                profit=outcome.profit,
                basket_landed=outcome.basket,
                won=outcome.won,
                pushed=outcome.pushed,
                wallet_limited=outcome.wallet_limited,
                created_at=ts,
            )
            round_store.create_result(conn, result)
            results.append(result)

        for user_id, amount in credits_by_user(plan.outcomes).items():
            if amount > 0:
                user_store.adjust_balance(conn, user_id, amount)

        wallet = self.ledger.get_state()
        rate = self.rng.uniform(self.settings.admin_skim_min, self.settings.admin_skim_max)
        # Payouts plus skim may take at most cap_ratio of the pre-settlement balance
        floor = (1.0 - self.settings.exposure_cap_ratio) * wallet.balance
        skim = admin_skim(plan.wagered, rate, wallet.balance + plan.net_house_change, floor)
        self.ledger.apply_delta(plan.net_house_change - skim, skim, plan.wagered)

        return SettlementReport(
            round_id=round_id,
            winning_ball_id=plan.winning_ball_id,
            winning_basket=plan.winning_basket,
            ball_baskets=plan.ball_baskets,
            total_wagered=plan.wagered,
            max_allowed_win=plan.cap.max_allowed_win,
            total_nominal_win=plan.cap.total_nominal_win,
            scale=plan.cap.scale,
            net_house_change=plan.net_house_change,
            admin_skim=skim,
            results=results,
            skipped_bets=skipped,
        )

    # --- expiry ---
    def expire_round(self, round_id: str) -> Round:
        """Force-complete an active round with no winner and refund its pending bets."""
        conn = self.conn
        with transaction(conn):
            rnd = self._require_round(round_id)
            if not rnd.is_active:
                raise RoundNotActive(f"round {round_id} is not active")
            pending = round_store.get_bets_for_round(conn, round_id, status="pending")
            ts = self.clock()
            if not round_store.update_round(
                conn, round_id, {"status": "completed", "expired": True, "completed_at": ts}, expect_status="active"
            ):
                raise RoundNotActive(f"round {round_id} is not active")
            round_store.release_gate(conn, round_id)
            refunds: dict[str, float] = defaultdict(float)
            for bet in pending:
                round_store.update_bet_status(conn, bet.bet_id, "refunded")
                refunds[bet.user_id] += bet.amount
            for user_id, amount in refunds.items():
                user_store.adjust_balance(conn, user_id, amount)
        log.warning(
            "round_expired",
            round_id=round_id,
            refunded_bets=len(pending),
            refunded_amount=sum(refunds.values()),
        )
        return rnd.model_copy(update={"status": "completed", "expired": True, "completed_at": ts})

    def expire_stale_rounds(self, now: int | None = None) -> list[str]:
        """Expire every active round older than the staleness window. Returns expired round ids."""
        now = self.clock() if now is None else now
        expired = []
        for rnd in round_store.list_active_rounds(self.conn):
            if not self._is_stale(rnd, now):
                continue
            try:
                self.expire_round(rnd.round_id)
            except RoundNotActive:
                continue  # settled meanwhile
            expired.append(rnd.round_id)
        return expired

    # --- queries ---
    def game_state(self, user_id: str) -> GameState:
        wallet = self.ledger.get_state()
        return GameState(
            current_round=self.current_round(),
            available_balls=list(BALLS),
            available_baskets=list(BASKETS),
            user_balance=user_store.get_balance(self.conn, user_id),
            house_wallet=wallet.balance,
            admin_profit=wallet.admin_profit,
            total_bets=wallet.total_bets,
            game_history=self.history(user_id),
        )

    def history(self, user_id: str, limit: int | None = None) -> list[GameResult]:
        return round_store.get_results_for_user(self.conn, user_id, limit or self.settings.history_limit)

    def game_stats(self) -> dict[str, Any]:
        return stats_store.game_stats(self.conn)

    def user_stats(self, user_id: str) -> dict[str, Any]:
        return stats_store.user_stats(self.conn, user_id)

    # --- admin ---
    def simulate_other_players(self, round_id: str, players: int = 2) -> list[dict[str, Any]]:
        """Add bot players to an active round, each funded with exactly its stake."""
        players = max(1, min(players, MAX_SIMULATED_PLAYERS))
        rnd = self._require_round(round_id)
        if not rnd.is_active:
            raise RoundNotActive(f"round {round_id} is not active")
        placed = []
        for _ in range(players):
            user_id = f"sim-{uuid.uuid4().hex[:12]}"
            ball_id = self.rng.choice([b.id for b in BALLS])
            amount = self.rng.choice(SIMULATED_BET_AMOUNTS)
            user_store.create_user(self.conn, user_id, name="Simulated player", balance=amount)
            self.place_bet(user_id, {ball_id: amount}, round_id=round_id)
            placed.append({"user_id": user_id, "ball_id": ball_id, "amount": amount})
        log.info("players_simulated", round_id=round_id, players=players)
        return placed
