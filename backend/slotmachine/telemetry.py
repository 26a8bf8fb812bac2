"""Server-side telemetry for session, roll and cashout events."""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Protocol


logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    """Protocol for telemetry sinks."""

    def emit(self, event_name: str, data: dict[str, Any]) -> None:
        """Emit a telemetry event."""
        ...


class LoggingTelemetrySink:
    """Default sink that logs telemetry events."""

    def emit(self, event_name: str, data: dict[str, Any]) -> None:
        logger.info("TELEMETRY %s: %s", event_name, data)


@dataclass
class SessionCreatedEvent:
    """session_created telemetry event."""

    session_id: str
    credits: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RollProcessedEvent:
    """roll_processed telemetry event."""

    session_id: str
    round_id: str
    credits_before: int
    credits_after: int
    is_win: bool
    reward: int
    rerolled: bool
    session_destroyed: bool
    lock_acquire_ms: float
    config_hash: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CashoutProcessedEvent:
    """cashout_processed telemetry event."""

    session_id: str
    credits: int
    lock_acquire_ms: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RequestRejectedEvent:
    """
    roll_rejected / cashout_rejected telemetry event.

    reason is an ErrorCode value: "UNAUTHORIZED" | "INSUFFICIENT_CREDITS" |
    "ROUND_IN_PROGRESS" | "INTERNAL_INCONSISTENCY".
    """

    session_id: str | None
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TelemetryService:
    """Service for emitting server telemetry events."""

    def __init__(self, sink: TelemetrySink | None = None):
        self._sink = sink or LoggingTelemetrySink()
        self._sink_errors = 0

    @property
    def sink_errors(self) -> int:
        return self._sink_errors

    def set_sink(self, sink: TelemetrySink) -> None:
        """Set the telemetry sink (useful for testing)."""
        self._sink = sink

    def _safe_emit(self, event_name: str, data: dict[str, Any]) -> None:
        """Emit event; sink failures MUST NOT break requests."""
        try:
            self._sink.emit(event_name, data)
        except Exception as e:
            self._sink_errors += 1
            logger.warning(
                "Telemetry sink error (count=%d): %s - %s",
                self._sink_errors,
                event_name,
                str(e),
            )

    def emit_session_created(self, event: SessionCreatedEvent) -> None:
        self._safe_emit("session_created", event.to_dict())

    def emit_roll_processed(self, event: RollProcessedEvent) -> None:
        self._safe_emit("roll_processed", event.to_dict())

    def emit_roll_rejected(self, event: RequestRejectedEvent) -> None:
        self._safe_emit("roll_rejected", event.to_dict())

    def emit_cashout_processed(self, event: CashoutProcessedEvent) -> None:
        self._safe_emit("cashout_processed", event.to_dict())

    def emit_cashout_rejected(self, event: RequestRejectedEvent) -> None:
        self._safe_emit("cashout_rejected", event.to_dict())
