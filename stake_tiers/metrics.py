"""Polars-based tabular views of tier results.

Turns tier tables, stake sweeps and leaderboards into DataFrames for export
and analysis. Decimal amounts become Float64 columns here; precise values stay
in the result records.
"""

import os
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import numpy as np
import polars as pl

from .core import TierEngine
from .quantity import TokenQuantity, quantize_down
from .state import LeaderboardEntry, PoolState, TierProgressResult
from .tiers import TierDefinition, sort_tiers, tier_ranges


def _as_float(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def tiers_to_dataframe(tiers: Sequence[TierDefinition]) -> pl.DataFrame:
    """Tier table with the share band each tier covers."""
    rows = [
        {
            "tier": tier.id,
            "name": tier.display_name,
            "multiplier": float(tier.multiplier),
            "lower_percent": float(lower),
            "upper_percent": float(upper),
        }
        for tier, lower, upper in tier_ranges(sort_tiers(tiers))
    ]
    if not rows:
        return pl.DataFrame()
    return pl.DataFrame(rows)


def results_to_dataframe(results: Sequence[TierProgressResult]) -> pl.DataFrame:
    """One row per result.

    Unreachable next-tier requirements appear as ``inf``; top-tier rows have
    nulls for every next-tier column.
    """
    if not results:
        return pl.DataFrame()

    data = {
        # Position
        "stake": [float(r.staked_amount.amount) for r in results],
        "total_staked": [float(r.total_staked.amount) for r in results],
        "share_percent": [float(r.share_percent) for r in results],
        "tier": [r.current_tier.id for r in results],
        "multiplier": [float(r.multiplier) for r in results],
        "next_tier": [r.next_tier.id if r.next_tier else None for r in results],
        "prev_tier": [r.prev_tier.id if r.prev_tier else None for r in results],

        # Progress
        "progress_percent": [float(r.progress_percent) for r in results],
        "tier_fill_percent": [float(r.tier_fill_percent) for r in results],

        # Solver outputs
        "additional_for_next": [_as_float(r.additional_amount_for_next_tier) for r in results],
        "total_for_next": [_as_float(r.total_amount_for_next_tier) for r in results],
        "fee_amount": [_as_float(r.fee_amount) for r in results],
        "next_tier_reachable": [r.next_tier_reachable for r in results],
        "safe_unstake": [float(r.safe_unstake_amount) for r in results],
    }

    schema = {
        "additional_for_next": pl.Float64,
        "total_for_next": pl.Float64,
        "fee_amount": pl.Float64,
        "next_tier": pl.Utf8,
        "prev_tier": pl.Utf8,
        "next_tier_reachable": pl.Boolean,
    }
    df = pl.DataFrame(data, schema_overrides=schema)

    return df.with_columns([
        # Fraction of the stake that could leave without a tier drop
        (pl.col("safe_unstake") / pl.col("stake")).fill_nan(0.0).alias("unstake_ratio"),
    ])


def stake_sweep(
    engine: TierEngine,
    pool: PoolState,
    min_stake: float,
    max_stake: float,
    points: int = 200,
) -> pl.DataFrame:
    """Evaluate a geometric grid of stakes against a fixed pool.

    The pool total is held constant, so each row answers "what if I held this
    much of the current pool".
    """
    if points < 2 or min_stake <= 0 or max_stake <= min_stake:
        raise ValueError("Sweep needs points >= 2 and 0 < min_stake < max_stake")

    decimals = pool.total_staked.decimals
    symbol = pool.total_staked.symbol
    grid = np.geomspace(min_stake, max_stake, num=points)

    results = []
    for value in grid:
        amount = quantize_down(Decimal(repr(float(value))), decimals)
        result = engine.evaluate(TokenQuantity(amount, symbol, decimals), pool)
        if result is not None:
            results.append(result)

    return results_to_dataframe(results)


def leaderboard_to_dataframe(entries: Sequence[LeaderboardEntry]) -> pl.DataFrame:
    """Ranked leaderboard rows."""
    if not entries:
        return pl.DataFrame()

    return pl.DataFrame({
        "rank": [e.rank for e in entries],
        "owner": [e.owner for e in entries],
        "staked": [float(e.staked_amount.amount) for e in entries],
        "symbol": [e.staked_amount.symbol for e in entries],
        "share_percent": [float(e.share_percent) for e in entries],
        "tier": [e.resolved_tier.id for e in entries],
        "tier_name": [e.resolved_tier.display_name for e in entries],
        "claimed_tier": [e.claimed_tier for e in entries],
        "upgrade_available": [e.upgrade_available for e in entries],
        "claim_ready": [e.claim_ready for e in entries],
    })


def calculate_tier_distribution(entries: Sequence[LeaderboardEntry]) -> List[Dict]:
    """Participants, stake and pool share per resolved tier, highest stake first."""
    df = leaderboard_to_dataframe(entries)
    if df.is_empty():
        return []

    return (df
            .group_by(["tier", "tier_name"])
            .agg([
                pl.len().alias("participants"),
                pl.col("staked").sum().alias("total_staked"),
                pl.col("share_percent").sum().alias("pool_share_percent"),
                pl.col("upgrade_available").sum().alias("upgrades_available"),
            ])
            .sort("total_staked", descending=True)
            .to_dicts())


def export_dataframe(df: pl.DataFrame, stem: str, output_dir: str = "experiments/outputs/data") -> Dict[str, str]:
    """Write ``df`` as timestamped CSV and parquet files; returns both paths."""
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    csv_file = os.path.join(output_dir, f"{stem}_{timestamp}.csv")
    parquet_file = os.path.join(output_dir, f"{stem}_{timestamp}.parquet")
    df.write_csv(csv_file)
    df.write_parquet(parquet_file)
    return {"csv": csv_file, "parquet": parquet_file}
