"""Configuration validation tests."""
import pytest
from pydantic import ValidationError

from slotmachine.config import Settings
from slotmachine.config_hash import get_config_hash
from slotmachine.logic.models import CheatBracket


class TestSettingsDefaults:
    def test_defaults(self):
        config = Settings()
        assert config.symbols == ["C", "L", "O", "W"]
        assert config.reward_table == {"C": 10, "L": 20, "O": 30, "W": 40}
        assert config.initial_credits == 10
        assert config.roll_cost == 1
        assert [(b.min, b.max, b.chance) for b in config.cheat_brackets] == [
            (40, 60, 0.3),
            (61, None, 0.6),
        ]

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SLOT_INITIAL_CREDITS", "25")
        monkeypatch.setenv("SLOT_SYMBOLS", '["A", "B"]')
        monkeypatch.setenv("SLOT_REWARD_TABLE", '{"A": 5, "B": 6}')
        config = Settings()
        assert config.initial_credits == 25
        assert config.symbols == ["A", "B"]
        assert config.reward_table == {"A": 5, "B": 6}


class TestSettingsValidation:
    """Misconfiguration fails at construction time."""

    def test_reward_table_must_cover_symbols(self):
        with pytest.raises(ValidationError, match="no payout"):
            Settings(symbols=["C", "X"], reward_table={"C": 10})

    def test_symbols_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            Settings(symbols=[], reward_table={})

    def test_symbols_must_be_unique(self):
        with pytest.raises(ValidationError):
            Settings(symbols=["C", "C"], reward_table={"C": 10})

    def test_negative_payout_rejected(self):
        with pytest.raises(ValidationError):
            Settings(symbols=["C"], reward_table={"C": -1})

    def test_roll_cost_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(roll_cost=0)

    def test_extra_reward_entries_allowed(self):
        config = Settings(symbols=["C"], reward_table={"C": 1, "Z": 2})
        assert config.symbols == ["C"]


class TestCheatBracket:
    def test_chance_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            CheatBracket(min=0, max=10, chance=1.5)

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            CheatBracket(min=10, max=5, chance=0.5)

    def test_contains_is_inclusive(self):
        bracket = CheatBracket(min=40, max=60, chance=0.3)
        assert bracket.contains(40)
        assert bracket.contains(60)
        assert not bracket.contains(39)
        assert not bracket.contains(61)

    def test_unbounded_max(self):
        bracket = CheatBracket(min=61, chance=0.6)
        assert bracket.contains(10**9)


class TestConfigHash:
    def test_hash_is_16_hex_chars(self):
        value = get_config_hash(Settings())
        assert len(value) == 16
        assert all(c in "0123456789abcdef" for c in value)

    def test_hash_is_stable(self):
        assert get_config_hash(Settings()) == get_config_hash(Settings())

    def test_hash_tracks_reward_table(self):
        changed = Settings(reward_table={"C": 10, "L": 20, "O": 30, "W": 99})
        assert get_config_hash(changed) != get_config_hash(Settings())
