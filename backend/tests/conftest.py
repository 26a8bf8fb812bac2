"""Pytest fixtures for backend tests."""
from collections.abc import Iterable
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

from slotmachine.config import Settings
from slotmachine.ledger import SessionManager
from slotmachine.logic.engine import (
    CheatPolicy,
    RewardCalculator,
    SlotMachine,
    SymbolGenerator,
)
from slotmachine.logic.models import RewardVerdict
from slotmachine.logic.rng import SeededRNG
from slotmachine.main import create_app
from slotmachine.services import SlotService
from slotmachine.telemetry import TelemetryService


LOSING_REEL = ("C", "L", "O")
WINNING_REEL = ("W", "W", "W")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (run full simulations)"
    )


class ScriptedGenerator:
    """Symbol generator that returns the given reels in order, then repeats the last."""

    def __init__(self, reels: Iterable[tuple[str, str, str]]):
        self.reels = list(reels)
        self.calls = 0

    def generate_reel(self) -> tuple[str, str, str]:
        reel = self.reels[min(self.calls, len(self.reels) - 1)]
        self.calls += 1
        return reel


class CountingCalculator:
    """RewardCalculator wrapper that counts calls."""

    def __init__(self, inner: RewardCalculator | None = None):
        self.inner = inner or RewardCalculator()
        self.calls = 0

    def calculate(self, symbols: tuple[str, str, str]) -> RewardVerdict:
        self.calls += 1
        return self.inner.calculate(symbols)


class FixedCheatPolicy:
    """Cheat policy with a fixed answer that records the balances it saw."""

    def __init__(self, answer: bool):
        self.answer = answer
        self.seen: list[int] = []

    def should_reroll(self, current_credits: int) -> bool:
        self.seen.append(current_credits)
        return self.answer


class RecordingTelemetrySink:
    """Telemetry sink that keeps every event for assertions."""

    def __init__(self):
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event_name: str, data: dict[str, Any]) -> None:
        self.events.append((event_name, data))

    def get_events(self, event_name: str) -> list[dict[str, Any]]:
        return [data for name, data in self.events if name == event_name]


def make_machine(
    reels: Iterable[tuple[str, str, str]],
    reroll: bool = False,
) -> SlotMachine:
    """Build a SlotMachine that plays the scripted reels."""
    return SlotMachine(
        symbol_generator=ScriptedGenerator(reels),
        reward_calculator=CountingCalculator(),
        cheat_policy=FixedCheatPolicy(reroll),
    )


@pytest.fixture
def test_settings() -> Settings:
    """Default game settings, isolated from the environment."""
    return Settings(lock_timeout_seconds=0.5)


@pytest.fixture
def ledger() -> SessionManager:
    """Create a fresh ledger for each test."""
    return SessionManager(initial_credits=10, lock_timeout_seconds=0.5)


@pytest.fixture
def recording_sink() -> RecordingTelemetrySink:
    return RecordingTelemetrySink()


@pytest.fixture
def telemetry(recording_sink: RecordingTelemetrySink) -> TelemetryService:
    return TelemetryService(sink=recording_sink)


@pytest.fixture
def seeded_machine() -> SlotMachine:
    """Real engine driven by a fixed seed."""
    rng = SeededRNG(seed=2025)
    return SlotMachine(
        symbol_generator=SymbolGenerator(rng=rng),
        reward_calculator=RewardCalculator(),
        cheat_policy=CheatPolicy(rng=rng),
    )


@pytest.fixture
def losing_service(
    ledger: SessionManager, telemetry: TelemetryService, test_settings: Settings
) -> SlotService:
    """Service whose every roll loses."""
    return SlotService(
        ledger, make_machine([LOSING_REEL]), telemetry=telemetry, config=test_settings
    )


@pytest.fixture
def winning_service(
    ledger: SessionManager, telemetry: TelemetryService, test_settings: Settings
) -> SlotService:
    """Service whose every roll lands three W (reward 40) with no re-roll."""
    return SlotService(
        ledger, make_machine([WINNING_REEL]), telemetry=telemetry, config=test_settings
    )


def _client(machine: SlotMachine, ledger: SessionManager, telemetry: TelemetryService,
            config: Settings) -> Generator[TestClient, None, None]:
    app = create_app(config=config, ledger=ledger, machine=machine, telemetry=telemetry)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def losing_client(
    ledger: SessionManager, telemetry: TelemetryService, test_settings: Settings
) -> Generator[TestClient, None, None]:
    """TestClient over an app whose every roll loses."""
    yield from _client(make_machine([LOSING_REEL]), ledger, telemetry, test_settings)


@pytest.fixture
def winning_client(
    ledger: SessionManager, telemetry: TelemetryService, test_settings: Settings
) -> Generator[TestClient, None, None]:
    """TestClient over an app whose every roll wins 40."""
    yield from _client(make_machine([WINNING_REEL]), ledger, telemetry, test_settings)


@pytest.fixture
def random_client(
    ledger: SessionManager, telemetry: TelemetryService, test_settings: Settings,
    seeded_machine: SlotMachine,
) -> Generator[TestClient, None, None]:
    """TestClient over the real engine with a seeded RNG."""
    yield from _client(seeded_machine, ledger, telemetry, test_settings)
