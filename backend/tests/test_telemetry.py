"""Telemetry emission tests."""
from typing import Any

import pytest
from fastapi.testclient import TestClient

from slotmachine.ledger import SessionManager
from slotmachine.main import create_app
from slotmachine.services import SlotService
from slotmachine.telemetry import (
    LoggingTelemetrySink,
    RequestRejectedEvent,
    TelemetryService,
)
from tests.conftest import LOSING_REEL, RecordingTelemetrySink, make_machine


class FailingSink:
    """Telemetry sink that always raises an exception."""

    def emit(self, event_name: str, data: dict[str, Any]) -> None:
        raise RuntimeError(f"Sink failure for {event_name}")


class TestServiceTelemetry:
    @pytest.mark.asyncio
    async def test_roll_processed_fields(
        self,
        winning_service: SlotService,
        ledger: SessionManager,
        recording_sink: RecordingTelemetrySink,
    ):
        session = ledger.create_session()

        receipt = await winning_service.roll(session.id)

        events = recording_sink.get_events("roll_processed")
        assert len(events) == 1
        event = events[0]
        assert event["session_id"] == session.id
        assert event["round_id"] == receipt.round_id
        assert event["credits_before"] == 10
        assert event["credits_after"] == 49
        assert event["is_win"] is True
        assert event["reward"] == 40
        assert event["rerolled"] is False
        assert event["session_destroyed"] is False
        assert event["lock_acquire_ms"] >= 0
        assert len(event["config_hash"]) == 16

    @pytest.mark.asyncio
    async def test_roll_rejected_reason(
        self, losing_service: SlotService, recording_sink: RecordingTelemetrySink
    ):
        with pytest.raises(Exception):
            await losing_service.roll("nonexistent")

        events = recording_sink.get_events("roll_rejected")
        assert events == [{"session_id": "nonexistent", "reason": "UNAUTHORIZED"}]
        assert recording_sink.get_events("roll_processed") == []

    @pytest.mark.asyncio
    async def test_cashout_events(
        self,
        losing_service: SlotService,
        ledger: SessionManager,
        recording_sink: RecordingTelemetrySink,
    ):
        session = ledger.create_session()
        await losing_service.cashout(session.id)
        with pytest.raises(Exception):
            await losing_service.cashout(session.id)

        processed = recording_sink.get_events("cashout_processed")
        assert len(processed) == 1
        assert processed[0]["credits"] == 10
        rejected = recording_sink.get_events("cashout_rejected")
        assert rejected == [{"session_id": session.id, "reason": "UNAUTHORIZED"}]

    def test_session_created_event(
        self, losing_service: SlotService, recording_sink: RecordingTelemetrySink
    ):
        session, _ = losing_service.resolve_or_create_session(None)
        assert recording_sink.get_events("session_created") == [
            {"session_id": session.id, "credits": 10}
        ]


class TestSinkFailures:
    def test_failing_sink_does_not_break_requests(self, ledger: SessionManager, test_settings):
        telemetry = TelemetryService(sink=FailingSink())
        app = create_app(
            config=test_settings,
            ledger=ledger,
            machine=make_machine([LOSING_REEL]),
            telemetry=telemetry,
        )

        with TestClient(app) as client:
            assert client.get("/api/slot/session").status_code == 200
            assert client.post("/api/slot/roll").status_code == 200
            assert client.post("/api/slot/cashout").status_code == 200

        assert telemetry.sink_errors == 3

    def test_logging_sink_logs(self, caplog: pytest.LogCaptureFixture):
        telemetry = TelemetryService(sink=LoggingTelemetrySink())
        with caplog.at_level("INFO", logger="slotmachine.telemetry"):
            telemetry.emit_roll_rejected(
                RequestRejectedEvent(session_id=None, reason="UNAUTHORIZED")
            )
        assert "roll_rejected" in caplog.text

    def test_set_sink(self):
        sink = RecordingTelemetrySink()
        telemetry = TelemetryService()
        telemetry.set_sink(sink)
        telemetry.emit_cashout_rejected(
            RequestRejectedEvent(session_id="s-1", reason="INSUFFICIENT_CREDITS")
        )
        assert sink.get_events("cashout_rejected") == [
            {"session_id": "s-1", "reason": "INSUFFICIENT_CREDITS"}
        ]
