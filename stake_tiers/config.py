"""Configuration for the tier engine."""

import json
from dataclasses import dataclass, fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .quantity import DEFAULT_DECIMALS, DEFAULT_SYMBOL
from .state import PoolState, StakeAccount
from .tiers import TierDefinition, load_tiers

# Fee/buffer presets for quick experiments
FEE_SCENARIOS = {
    "default": {"deposit_fee_bps": 30},                                 # 0.3% contract fee
    "zero_fee": {"deposit_fee_bps": 0},                                 # Fee-free deposits
    "high_fee": {"deposit_fee_bps": 100},                               # 1.0% fee
    "buffered": {"deposit_fee_bps": 30, "buffer_percent": Decimal(5)},  # 0.3% fee + 5% buffer
}


@dataclass
class EngineConfig:
    """Configuration bundle for tier calculations.

    Holds the ledger's deposit fee policy and the presentation defaults the
    engine needs, so none of them are hardwired in the calculation core.
    Defaults match the observed staking contract (0.3% deposit fee, 8-decimal
    WAX balances).
    """

    # Deposit fee - withheld from every deposit before it is credited
    deposit_fee_bps: int = 30             # 30 bps = 0.3%

    # Extra deposit margin against other participants diluting the pool
    buffer_percent: Decimal = Decimal(0)  # 0-100, applied after the fee solve

    # Parser fallbacks for balances missing a symbol or fractional digits
    default_symbol: str = DEFAULT_SYMBOL
    default_decimals: int = DEFAULT_DECIMALS

    def __post_init__(self):
        # JSON and CLI hand us floats/strings
        if not isinstance(self.buffer_percent, Decimal):
            self.buffer_percent = Decimal(str(self.buffer_percent))

    @property
    def fee_rate(self) -> Decimal:
        """Deposit fee as a fraction."""
        return Decimal(self.deposit_fee_bps) / Decimal(10_000)

    def validate(self) -> None:
        """Validate configuration against ledger invariants."""
        assert 0 <= self.deposit_fee_bps < 10_000, "Deposit fee must be between 0 and 9999 bps"
        assert 0 <= self.buffer_percent <= 100, "Buffer percent must be within 0-100"
        assert self.default_symbol, "Default symbol cannot be empty"
        assert 0 <= self.default_decimals <= 18, "Default decimals must be within 0-18"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown engine config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_config_file(
        cls, file_path: str, overrides: Optional[dict] = None
    ) -> Tuple["EngineConfig", List[TierDefinition]]:
        """
        Load configuration and the tier table from JSON.

        Structure:
        {
            "engine_config": {...},
            "tiers": [{"tier": "a", "tier_name": "...", "weight": "1.0",
                       "staked_up_to_percent": "0.5"}, ...]
        }
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {file_path}")

        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)

        engine_config = data.get("engine_config", {})
        engine_config.update((overrides or {}).get("engine_config", {}))

        config = cls.from_dict(engine_config)
        tiers = load_tiers(data.get("tiers", []))
        return config, tiers

    @classmethod
    def create_fee_scenario(cls, scenario: str, **kwargs):
        """Convenience helper for common fee/buffer experiments."""
        if scenario not in FEE_SCENARIOS:
            available = ", ".join(sorted(FEE_SCENARIOS.keys()))
            raise ValueError(f"Unknown fee scenario '{scenario}'. Available: {available}")

        config_params = FEE_SCENARIOS[scenario].copy()
        config_params.update(kwargs)

        return cls(**config_params)



def load_snapshot(file_path: str) -> Tuple[PoolState, List[StakeAccount]]:
    """
    Load a pool snapshot exported from the ledger tables.

    Structure:
    {
        "pool": {"total_staked_quantity": "...", "total_staked_weight": "..."},
        "stakes": [{"owner": "...", "staked_quantity": "...", "tier": "...",
                    "last_claimed_at": "...", "cooldown_end_at": "..."}, ...]
    }
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {file_path}")

    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    if "pool" not in data:
        raise ValueError(f"Snapshot {file_path} has no 'pool' record")

    pool = PoolState.from_record(data["pool"])
    try:
        accounts = [StakeAccount.from_record(row) for row in data.get("stakes", [])]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Invalid stake record in {file_path}: {exc}") from exc
    return pool, accounts
