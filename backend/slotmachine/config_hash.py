"""Config hash computation.

Shared by:
- scripts/audit_sim.py (simulation report)
- telemetry.py (roll_processed event)

The hash MUST be computed identically in both locations.
"""
import hashlib
import json

from slotmachine.config import Settings, settings


def get_config_hash(config: Settings | None = None) -> str:
    """
    Generate hash of the game configuration.

    Returns 16-char hex hash of config snapshot.
    """
    config = config or settings
    config_snapshot = {
        "symbols": list(config.symbols),
        "reward_table": dict(config.reward_table),
        "cheat_brackets": [b.model_dump() for b in config.cheat_brackets],
        "initial_credits": config.initial_credits,
        "roll_cost": config.roll_cost,
    }
    canonical = json.dumps(config_snapshot, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]
