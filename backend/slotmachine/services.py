"""Roll and cashout orchestration over the ledger and the slot machine."""
import logging
import uuid
from dataclasses import dataclass

from slotmachine.config import Settings, settings
from slotmachine.config_hash import get_config_hash
from slotmachine.errors import GameError, LedgerInconsistencyError
from slotmachine.guards import MIN_CREDITS, check_session
from slotmachine.ledger import LockMetrics, SessionManager
from slotmachine.logic.engine import SlotMachine
from slotmachine.logic.models import Session, Symbol
from slotmachine.telemetry import (
    CashoutProcessedEvent,
    RequestRejectedEvent,
    RollProcessedEvent,
    SessionCreatedEvent,
    TelemetryService,
)


logger = logging.getLogger(__name__)

CASHOUT_MESSAGE = "Cashed out successfully"


@dataclass(frozen=True)
class RollReceipt:
    """Final outcome of one roll plus the resulting balance."""

    round_id: str
    symbols: tuple[Symbol, Symbol, Symbol]
    is_win: bool
    reward: int
    credits: int
    rerolled: bool
    session_destroyed: bool


@dataclass(frozen=True)
class CashoutReceipt:
    """Balance paid out when the session was closed."""

    credits: int
    message: str = CASHOUT_MESSAGE


class SlotService:
    """
    Ties a session's credits to the slot machine.

    Every roll and cashout runs under the ledger's per-session lock, and
    the guard chain is evaluated inside the lock so it sees the
    serialized balance.
    """

    def __init__(
        self,
        ledger: SessionManager,
        machine: SlotMachine,
        telemetry: TelemetryService | None = None,
        config: Settings | None = None,
    ):
        config = config or settings
        self.ledger = ledger
        self.machine = machine
        self.telemetry = telemetry or TelemetryService()
        self.roll_cost = config.roll_cost
        self.config_hash = get_config_hash(config)

    def resolve_or_create_session(self, session_id: str | None) -> tuple[Session, bool]:
        """
        Look up the session for a token, creating one if it is absent or unknown.

        Returns (session, created).
        """
        if session_id:
            session = self.ledger.get_session(session_id)
            if session is not None:
                return session, False

        session = self.ledger.create_session()
        self.telemetry.emit_session_created(
            SessionCreatedEvent(session_id=session.id, credits=session.credits)
        )
        return session, True

    async def roll(self, session_id: str | None) -> RollReceipt:
        """
        Spend roll_cost credits on one roll.

        Raises:
            GameError: UNAUTHORIZED or INSUFFICIENT_CREDITS from the guard
                chain, ROUND_IN_PROGRESS if the session lock cannot be taken.
            LedgerInconsistencyError: the session vanished mid-roll.
        """
        try:
            # Fast path: reject without touching the lock arena.
            check_session(self.ledger, session_id, self.roll_cost).raise_for_status()

            async with self.ledger.session_lock(session_id) as lock_metrics:
                session = check_session(
                    self.ledger, session_id, self.roll_cost
                ).raise_for_status()
                return self._roll_locked(session, lock_metrics)
        except GameError as e:
            self.telemetry.emit_roll_rejected(
                RequestRejectedEvent(session_id=session_id, reason=e.code.value)
            )
            raise

    def _roll_locked(self, session: Session, lock_metrics: LockMetrics) -> RollReceipt:
        after_cost = self.ledger.update_credits(
            session.id, session.credits - self.roll_cost
        )
        if after_cost is None:
            logger.error("Session %s lost during roll cost deduction", session.id)
            raise LedgerInconsistencyError(session.id, "roll")

        outcome = self.machine.roll(after_cost.credits)

        credits = after_cost.credits
        if outcome.is_win:
            after_reward = self.ledger.update_credits(
                session.id, after_cost.credits + outcome.reward
            )
            if after_reward is None:
                logger.error("Session %s lost while applying reward", session.id)
                raise LedgerInconsistencyError(session.id, "reward")
            credits = after_reward.credits

        destroyed = credits == 0
        if destroyed:
            self.ledger.destroy_session(session.id)

        receipt = RollReceipt(
            round_id=str(uuid.uuid4()),
            symbols=outcome.symbols,
            is_win=outcome.is_win,
            reward=outcome.reward,
            credits=credits,
            rerolled=outcome.rerolled,
            session_destroyed=destroyed,
        )
        self.telemetry.emit_roll_processed(
            RollProcessedEvent(
                session_id=session.id,
                round_id=receipt.round_id,
                credits_before=session.credits,
                credits_after=credits,
                is_win=outcome.is_win,
                reward=outcome.reward,
                rerolled=outcome.rerolled,
                session_destroyed=destroyed,
                lock_acquire_ms=lock_metrics.acquire_ms,
                config_hash=self.config_hash,
            )
        )
        return receipt

    async def cashout(self, session_id: str | None) -> CashoutReceipt:
        """
        Close the session and pay out its balance.

        A session with no credits is rejected and left untouched.
        """
        try:
            check_session(self.ledger, session_id, MIN_CREDITS).raise_for_status()

            async with self.ledger.session_lock(session_id) as lock_metrics:
                session = check_session(
                    self.ledger, session_id, MIN_CREDITS
                ).raise_for_status()
                self.ledger.destroy_session(session.id)
        except GameError as e:
            self.telemetry.emit_cashout_rejected(
                RequestRejectedEvent(session_id=session_id, reason=e.code.value)
            )
            raise

        self.telemetry.emit_cashout_processed(
            CashoutProcessedEvent(
                session_id=session.id,
                credits=session.credits,
                lock_acquire_ms=lock_metrics.acquire_ms,
            )
        )
        return CashoutReceipt(credits=session.credits)
