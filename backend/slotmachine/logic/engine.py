"""Slot engine: symbol generation, scoring, house-edge re-roll, roll."""
import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

from slotmachine.config import (
    DEFAULT_CHEAT_BRACKETS,
    DEFAULT_REWARD_TABLE,
    DEFAULT_SYMBOLS,
    Settings,
    settings,
)
from slotmachine.logic.models import CheatBracket, RewardVerdict, RollOutcome, Symbol
from slotmachine.logic.rng import ProductionRNG, RNGBase


logger = logging.getLogger(__name__)

Reel = tuple[Symbol, Symbol, Symbol]


class ReelGenerator(Protocol):
    """Protocol for symbol generators."""

    def generate_reel(self) -> Reel: ...


class ReelScorer(Protocol):
    """Protocol for reward calculators."""

    def calculate(self, symbols: Reel) -> RewardVerdict: ...


class ReRollPolicy(Protocol):
    """Protocol for house-edge re-roll policies."""

    def should_reroll(self, current_credits: int) -> bool: ...


class SymbolGenerator:
    """Draws three symbols independently and uniformly, with replacement."""

    def __init__(
        self,
        symbols: Sequence[Symbol] = DEFAULT_SYMBOLS,
        rng: RNGBase | None = None,
    ):
        if not symbols:
            raise ValueError("SymbolGenerator requires a non-empty symbol set")
        self.symbols = tuple(symbols)
        self.rng = rng or ProductionRNG()

    def generate_reel(self) -> Reel:
        last = len(self.symbols) - 1
        return (
            self.symbols[self.rng.randint(0, last)],
            self.symbols[self.rng.randint(0, last)],
            self.symbols[self.rng.randint(0, last)],
        )


class RewardCalculator:
    """
    Scores a reel against a payout table.

    A reel wins only when all three symbols are equal; the reward is the
    table entry for that symbol.
    """

    def __init__(
        self,
        reward_table: Mapping[Symbol, int] = DEFAULT_REWARD_TABLE,
        symbols: Sequence[Symbol] | None = None,
    ):
        if symbols is not None:
            missing = [s for s in symbols if s not in reward_table]
            if missing:
                raise ValueError(f"Reward table has no payout for symbols {missing}")
        negative = {s: v for s, v in reward_table.items() if v < 0}
        if negative:
            raise ValueError(f"Reward table payouts must be non-negative: {negative}")
        self.reward_table = dict(reward_table)

    def calculate(self, symbols: Reel) -> RewardVerdict:
        first, second, third = symbols
        if first == second == third:
            return RewardVerdict(is_win=True, reward=self.reward_table[first])
        return RewardVerdict(is_win=False, reward=0)


class CheatPolicy:
    """
    House-edge policy.

    Brackets are scanned in order and the first one containing the balance
    is used, even if a later bracket overlaps it. With no matching bracket
    a win is never re-rolled.
    """

    def __init__(
        self,
        brackets: Sequence[CheatBracket] = DEFAULT_CHEAT_BRACKETS,
        rng: RNGBase | None = None,
    ):
        self.brackets = tuple(brackets)
        self.rng = rng or ProductionRNG()

    def find_bracket(self, current_credits: int) -> CheatBracket | None:
        for bracket in self.brackets:
            if bracket.contains(current_credits):
                return bracket
        return None

    def should_reroll(self, current_credits: int) -> bool:
        bracket = self.find_bracket(current_credits)
        if bracket is None:
            return False

        # Inclusive: a draw equal to the chance still triggers.
        draw = self.rng.random()
        if draw <= bracket.chance:
            logger.info(
                "Re-roll triggered: credits=%d bracket=[%s, %s] chance=%.2f draw=%.4f",
                current_credits,
                bracket.min,
                "inf" if bracket.max is None else bracket.max,
                bracket.chance,
                draw,
            )
            return True
        return False


class SlotMachine:
    """
    Composes generator, calculator and cheat policy into one roll.

    Holds no state between calls. A winning reel may be discarded and
    replaced by a second reel at most once per roll, whatever the second
    reel scores.
    """

    def __init__(
        self,
        symbol_generator: ReelGenerator,
        reward_calculator: ReelScorer,
        cheat_policy: ReRollPolicy,
    ):
        # Scripted test doubles expose neither attribute and are not checked.
        symbols = getattr(symbol_generator, "symbols", None)
        reward_table = getattr(reward_calculator, "reward_table", None)
        if symbols is not None and reward_table is not None:
            missing = [s for s in symbols if s not in reward_table]
            if missing:
                raise ValueError(f"Reward table has no payout for symbols {missing}")

        self.symbol_generator = symbol_generator
        self.reward_calculator = reward_calculator
        self.cheat_policy = cheat_policy

    def roll(self, current_credits: int) -> RollOutcome:
        """
        Execute a roll.

        Args:
            current_credits: Balance handed in by the caller; used only as
                the cheat policy input.

        Returns:
            RollOutcome of the final reel
        """
        symbols = self.symbol_generator.generate_reel()
        verdict = self.reward_calculator.calculate(symbols)
        rerolled = False

        if verdict.is_win and self.cheat_policy.should_reroll(current_credits):
            symbols = self.symbol_generator.generate_reel()
            verdict = self.reward_calculator.calculate(symbols)
            rerolled = True

        return RollOutcome(
            symbols=symbols,
            is_win=verdict.is_win,
            reward=verdict.reward,
            rerolled=rerolled,
        )


def build_slot_machine(
    config: Settings | None = None, rng: RNGBase | None = None
) -> SlotMachine:
    """
    Build a SlotMachine from Settings.

    Generator and cheat policy share the given RNG; with no RNG each gets
    its own ProductionRNG.
    """
    config = config or settings
    return SlotMachine(
        symbol_generator=SymbolGenerator(config.symbols, rng=rng),
        reward_calculator=RewardCalculator(config.reward_table, symbols=config.symbols),
        cheat_policy=CheatPolicy(config.cheat_brackets, rng=rng),
    )
