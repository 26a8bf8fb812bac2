"""Application configuration derived from environment."""
from pydantic import ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings

from slotmachine.logic.models import CheatBracket


DEFAULT_SYMBOLS = ["C", "L", "O", "W"]

DEFAULT_REWARD_TABLE = {
    "C": 10,
    "L": 20,
    "O": 30,
    "W": 40,
}

DEFAULT_CHEAT_BRACKETS = [
    CheatBracket(min=40, max=60, chance=0.3),
    CheatBracket(min=61, max=None, chance=0.6),
]


class Settings(BaseSettings):
    """Server settings. Every field can be overridden with a SLOT_ env var."""

    model_config = ConfigDict(env_prefix="SLOT_")

    # Server
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Protocol
    protocol_version: str = "1.0"

    # Game config
    symbols: list[str] = Field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    reward_table: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_REWARD_TABLE)
    )
    cheat_brackets: list[CheatBracket] = Field(
        default_factory=lambda: list(DEFAULT_CHEAT_BRACKETS)
    )

    # Ledger
    initial_credits: int = Field(default=10, ge=0)
    roll_cost: int = Field(default=1, ge=1)
    lock_timeout_seconds: float = Field(default=5.0, gt=0)

    # Transport
    session_cookie_name: str = "session_id"
    cookie_secure: bool = False
    cors_origins: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_game_config(self) -> "Settings":
        """Reject configurations the engine cannot run with."""
        if not self.symbols:
            raise ValueError("symbols must not be empty")
        if len(set(self.symbols)) != len(self.symbols):
            raise ValueError(f"symbols must be unique, got {self.symbols}")
        missing = [s for s in self.symbols if s not in self.reward_table]
        if missing:
            raise ValueError(f"reward_table has no payout for symbols {missing}")
        negative = {s: v for s, v in self.reward_table.items() if v < 0}
        if negative:
            raise ValueError(f"reward_table payouts must be non-negative: {negative}")
        return self


settings = Settings()
