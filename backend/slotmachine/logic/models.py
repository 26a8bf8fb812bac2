"""Game and ledger models."""
from pydantic import BaseModel, ConfigDict, Field, model_validator

Symbol = str


class CheatBracket(BaseModel):
    """
    Balance range with a re-roll probability.

    max=None means the bracket has no upper bound.
    """

    model_config = ConfigDict(frozen=True)

    min: int
    max: int | None = None
    chance: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_range(self) -> "CheatBracket":
        if self.max is not None and self.max < self.min:
            raise ValueError(f"Bracket max {self.max} is below min {self.min}")
        return self

    def contains(self, credits: int) -> bool:
        """Return True if credits falls inside [min, max]."""
        if credits < self.min:
            return False
        return self.max is None or credits <= self.max


class Session(BaseModel):
    """A player's credit-bearing game instance."""

    model_config = ConfigDict(frozen=True)

    id: str
    credits: int = Field(ge=0)


class RollOutcome(BaseModel):
    """
    Result of one SlotMachine.roll call.

    rerolled is diagnostic only: it records whether the house-edge
    re-roll replaced the first reel. It is not part of the wire format.
    """

    model_config = ConfigDict(frozen=True)

    symbols: tuple[Symbol, Symbol, Symbol]
    is_win: bool
    reward: int = Field(ge=0)
    rerolled: bool = False


class RewardVerdict(BaseModel):
    """Win/reward verdict for a single reel."""

    model_config = ConfigDict(frozen=True)

    is_win: bool
    reward: int = 0
