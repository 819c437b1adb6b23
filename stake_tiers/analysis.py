"""Summary analysis of stake sweeps and leaderboards.

Condenses the polars tables from ``metrics`` into headline numbers: where
each tier starts on a sweep, how concentrated the pool is, and how many
participants sit on a stale ledger tier.
"""

from typing import Any, Dict, List, Sequence

import numpy as np
import polars as pl

from .metrics import leaderboard_to_dataframe
from .state import LeaderboardEntry


# Statistical helper functions for robust metric calculations
def _mean(values):
    """Calculate mean with null check for empty sequences."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def _median(values):
    """Calculate median with null check for empty sequences."""
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def _std(values):
    """Calculate standard deviation with null check for empty sequences."""
    if len(values) == 0:
        return 0.0
    return float(np.std(values))


def gini_coefficient(values) -> float:
    """Gini coefficient of a set of non-negative stakes (0 = equal, ->1 = one holder)."""
    stakes = np.sort(np.asarray(values, dtype=float))
    if stakes.size == 0 or stakes.sum() <= 0:
        return 0.0
    n = stakes.size
    ranks = np.arange(1, n + 1)
    return float((2 * np.sum(ranks * stakes)) / (n * stakes.sum()) - (n + 1) / n)


def tier_entry_points(sweep: pl.DataFrame) -> List[Dict[str, Any]]:
    """Smallest swept stake landing in each tier, in sweep order.

    Args:
        sweep: Output of ``metrics.stake_sweep``

    Returns:
        One dict per tier seen: tier id, first stake, share at that stake
    """
    if sweep.is_empty():
        return []

    return (sweep
            .sort("stake")
            .group_by("tier", maintain_order=True)
            .agg([
                pl.col("stake").first().alias("entry_stake"),
                pl.col("share_percent").first().alias("entry_share_percent"),
                pl.col("multiplier").first().alias("multiplier"),
            ])
            .to_dicts())


def analyze_sweep(sweep: pl.DataFrame) -> Dict[str, Any]:
    """Headline numbers for a stake sweep."""
    if sweep.is_empty():
        return {}

    reachable = sweep.filter(pl.col("next_tier_reachable"))
    additional = reachable["additional_for_next"].to_numpy()
    unstake_ratio = sweep["unstake_ratio"].to_numpy()

    return {
        "points": sweep.height,
        "tiers_seen": sweep["tier"].n_unique(),
        "unreachable_points": sweep.filter(pl.col("next_tier_reachable").not_()).height,
        "mean_additional_for_next": _mean(additional),
        "median_additional_for_next": _median(additional),
        "mean_unstake_ratio": _mean(unstake_ratio),
        "entry_points": tier_entry_points(sweep),
    }


def analyze_leaderboard(entries: Sequence[LeaderboardEntry], top_n: int = 10) -> Dict[str, Any]:
    """Pool concentration and ledger-tier staleness for a leaderboard.

    Args:
        entries: Ranked entries from ``TierEngine.leaderboard``
        top_n: Size of the "top holders" group

    Returns:
        Dictionary of concentration and housekeeping metrics
    """
    df = leaderboard_to_dataframe(entries)
    if df.is_empty():
        return {}

    stakes = df["staked"].to_numpy()
    shares = df["share_percent"].to_numpy()

    return {
        "participants": df.height,
        "total_staked": float(stakes.sum()),
        "mean_share_percent": _mean(shares),
        "median_share_percent": _median(shares),
        "std_share_percent": _std(shares),
        "top_n_share_percent": float(df.head(top_n)["share_percent"].sum()),
        "gini": gini_coefficient(stakes),
        "upgrades_available": int(df["upgrade_available"].sum()),
        "claims_ready": int(df["claim_ready"].sum()),
    }
