#!/usr/bin/env python3
"""
Audit simulation for the slot engine.

Plays sessions headlessly with a seeded RNG and reports hit rate, RTP and
how often the house-edge re-roll fired in each cheat bracket.

Usage:
    python -m scripts.audit_sim --rounds 100000 --seed AUDIT_2025
    python -m scripts.audit_sim --rounds 100000 --seed AUDIT_2025 --out out/audit.csv
"""
import argparse
import csv
import hashlib
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from slotmachine.config import Settings, settings
from slotmachine.config_hash import get_config_hash
from slotmachine.logic.engine import build_slot_machine
from slotmachine.logic.models import CheatBracket
from slotmachine.logic.rng import SeededRNG


@dataclass
class BracketStats:
    """Re-roll opportunities and triggers for one cheat bracket."""
    label: str
    chance: float
    opportunities: int = 0
    rerolls: int = 0

    @property
    def reroll_rate(self) -> float:
        return self.rerolls / self.opportunities if self.opportunities else 0.0


@dataclass
class SimulationStats:
    """Statistics accumulated during simulation."""
    rounds: int = 0
    wins: int = 0
    rerolls: int = 0
    total_wagered: int = 0
    total_won: int = 0
    sessions_started: int = 0
    game_overs: int = 0
    max_credits_observed: int = 0
    brackets: list[BracketStats] = field(default_factory=list)

    @property
    def rtp(self) -> float:
        """Return to player in percent."""
        return self.total_won / self.total_wagered * 100 if self.total_wagered else 0.0

    @property
    def hit_frequency(self) -> float:
        return self.wins / self.rounds * 100 if self.rounds else 0.0


def bracket_label(bracket: CheatBracket) -> str:
    upper = "inf" if bracket.max is None else str(bracket.max)
    return f"[{bracket.min},{upper}]"


def seed_to_int(seed_str: str) -> int:
    """Convert string seed to integer deterministically."""
    return int(hashlib.sha256(seed_str.encode()).hexdigest(), 16) % (2**31)


def get_timestamp_iso() -> str:
    """Get ISO 8601 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def run_simulation(
    rounds: int,
    seed_str: str,
    start_credits: int | None = None,
    config: Settings | None = None,
    verbose: bool = False,
) -> SimulationStats:
    """
    Run headless simulation.

    Applies the same credit arithmetic as the roll service: pay the roll
    cost, roll with the post-cost balance, add the reward. A session that
    reaches zero is replaced by a fresh one.

    Args:
        rounds: Number of rolls to simulate
        seed_str: Seed string for reproducibility
        start_credits: Balance for every new session (default: initial_credits)
        config: Game settings (default: global settings)
        verbose: Print progress

    Returns:
        SimulationStats with aggregated results
    """
    config = config or settings
    if start_credits is None:
        start_credits = config.initial_credits
    if start_credits < config.roll_cost:
        raise ValueError(
            f"start_credits {start_credits} cannot cover roll_cost {config.roll_cost}"
        )

    rng = SeededRNG(seed=seed_to_int(seed_str))
    machine = build_slot_machine(config, rng=rng)
    policy = machine.cheat_policy

    stats = SimulationStats(
        brackets=[
            BracketStats(label=bracket_label(b), chance=b.chance)
            for b in config.cheat_brackets
        ]
    )
    bracket_index = {id(b): i for i, b in enumerate(policy.brackets)}

    credits = start_credits
    stats.sessions_started = 1
    progress_interval = max(1, rounds // 100)

    for round_count in range(rounds):
        if verbose and round_count % progress_interval == 0:
            pct = (round_count / rounds) * 100
            print(f"\rProgress: {pct:.1f}%", end="", flush=True)

        credits -= config.roll_cost
        stats.total_wagered += config.roll_cost

        outcome = machine.roll(credits)
        stats.rounds += 1

        # The first reel won whenever the outcome is a win or was re-rolled.
        if outcome.is_win or outcome.rerolled:
            bracket = policy.find_bracket(credits)
            if bracket is not None:
                entry = stats.brackets[bracket_index[id(bracket)]]
                entry.opportunities += 1
                if outcome.rerolled:
                    entry.rerolls += 1

        if outcome.rerolled:
            stats.rerolls += 1
        if outcome.is_win:
            stats.wins += 1
            stats.total_won += outcome.reward
            credits += outcome.reward

        stats.max_credits_observed = max(stats.max_credits_observed, credits)

        if credits < config.roll_cost:
            stats.game_overs += 1
            stats.sessions_started += 1
            credits = start_credits

    if verbose:
        print("\rProgress: 100.0%")

    return stats


def generate_csv(
    rounds: int,
    seed_str: str,
    stats: SimulationStats,
    output_path: str,
    config: Settings | None = None,
) -> None:
    """Write a single-row summary CSV."""
    row = {
        "timestamp": get_timestamp_iso(),
        "config_hash": get_config_hash(config),
        "seed": seed_str,
        "rounds": rounds,
        "wins": stats.wins,
        "hit_frequency": f"{stats.hit_frequency:.4f}",
        "total_wagered": stats.total_wagered,
        "total_won": stats.total_won,
        "rtp": f"{stats.rtp:.4f}",
        "rerolls": stats.rerolls,
        "sessions_started": stats.sessions_started,
        "game_overs": stats.game_overs,
        "max_credits_observed": stats.max_credits_observed,
    }
    for entry in stats.brackets:
        row[f"reroll_rate_{entry.label}"] = f"{entry.reroll_rate:.4f}"

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=row.keys())
        writer.writeheader()
        writer.writerow(row)

    print(f"CSV written to: {output_path}")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Slot engine audit simulation")
    parser.add_argument(
        "--rounds",
        type=int,
        required=True,
        help="Number of rolls to simulate",
    )
    parser.add_argument(
        "--seed",
        type=str,
        required=True,
        help="Seed string for reproducibility",
    )
    parser.add_argument(
        "--start-credits",
        type=int,
        default=None,
        help="Balance of each simulated session (default: initial_credits)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Optional output CSV path",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show progress",
    )

    args = parser.parse_args()

    print(f"Running simulation: rounds={args.rounds}, seed={args.seed}")
    print(f"Config hash: {get_config_hash()}")

    stats = run_simulation(
        rounds=args.rounds,
        seed_str=args.seed,
        start_credits=args.start_credits,
        verbose=args.verbose,
    )

    if args.out:
        generate_csv(args.rounds, args.seed, stats, args.out)

    print("\nSummary:")
    print(f"  Rounds: {stats.rounds}")
    print(f"  Total wagered: {stats.total_wagered}")
    print(f"  Total won: {stats.total_won}")
    print(f"  RTP: {stats.rtp:.4f}%")
    print(f"  Hit frequency: {stats.hit_frequency:.4f}%")
    print(f"  Re-rolls: {stats.rerolls}")
    print(f"  Sessions: {stats.sessions_started} ({stats.game_overs} game over)")
    print(f"  Max credits observed: {stats.max_credits_observed}")
    for entry in stats.brackets:
        print(
            f"  Bracket {entry.label}: chance={entry.chance:.2f} "
            f"observed={entry.reroll_rate:.4f} ({entry.rerolls}/{entry.opportunities})"
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
