"""Precondition checks run before roll and cashout.

The chain is an ordered list of checks. Each check either rejects the
request or passes the resolved session on to the next one. Nothing here
raises; callers decide how a rejection is surfaced.
"""
import logging
from dataclasses import dataclass
from enum import Enum

from slotmachine.errors import ErrorCode, GameError
from slotmachine.ledger import SessionManager
from slotmachine.logic.models import Session


logger = logging.getLogger(__name__)

MIN_CREDITS = 1


class GuardStatus(str, Enum):
    OK = "OK"
    UNAUTHORIZED = "UNAUTHORIZED"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"


@dataclass(frozen=True)
class GuardResult:
    """Tagged guard outcome. session is set only when status is OK."""

    status: GuardStatus
    session: Session | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == GuardStatus.OK

    def raise_for_status(self) -> Session:
        """Return the session, or raise the GameError matching the rejection."""
        if self.status == GuardStatus.OK:
            return self.session
        raise GameError(ErrorCode(self.status.value), self.reason)


def resolve_session(ledger: SessionManager, session_id: str | None) -> GuardResult:
    if not session_id:
        logger.warning("Guard rejected: missing session token")
        return GuardResult(GuardStatus.UNAUTHORIZED, reason="Missing session token")
    session = ledger.get_session(session_id)
    if session is None:
        logger.warning("Guard rejected: unknown session id=%s", session_id)
        return GuardResult(GuardStatus.UNAUTHORIZED, reason="Unknown session")
    return GuardResult(GuardStatus.OK, session=session)


def require_credits(session: Session, minimum: int = MIN_CREDITS) -> GuardResult:
    if session.credits < minimum:
        logger.warning(
            "Guard rejected: insufficient credits id=%s credits=%d minimum=%d",
            session.id,
            session.credits,
            minimum,
        )
        return GuardResult(
            GuardStatus.INSUFFICIENT_CREDITS,
            session=None,
            reason=f"At least {minimum} credit(s) required",
        )
    return GuardResult(GuardStatus.OK, session=session)


def check_session(
    ledger: SessionManager, session_id: str | None, minimum: int = MIN_CREDITS
) -> GuardResult:
    """Run the guard chain: resolve session, then check credits."""
    result = resolve_session(ledger, session_id)
    if not result.ok:
        return result
    return require_credits(result.session, minimum)
