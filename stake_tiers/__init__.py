"""Staking Tier Engine Package

Tier calculations for a percentage-of-pool staking program:
- Ledger balance parsing with literal-derived precision
- Tier resolution with boundary-inclusive upper thresholds
- Progress within and beyond the current tier
- Dilution-aware deposit and safe-withdrawal solving under a deposit fee
- Tabular exports, summary analysis and plots for sweeps and leaderboards
"""

__version__ = "0.1.0"

# Import parsing and data model
from .quantity import (
    TokenQuantity,
    parse_quantity,
    format_token_amount,
)
from .tiers import (
    TierDefinition,
    TierTableError,
    load_tiers,
    sort_tiers,
    tier_index,
    tier_neighbors,
    tier_ranges,
)
from .state import (
    PoolState,
    StakeAccount,
    StakeRequirement,
    TierProgressResult,
    LeaderboardEntry,
)
from .config import EngineConfig, load_snapshot

# Import calculation core
from .resolver import (
    share_percent,
    resolve_tier,
    is_upgrade_available,
    reconcile_claimed_tier,
)
from .progress import progress_percent, tier_fill_percent
from .solvers import amount_for_next_tier, safe_unstake_amount
from .core import TierEngine, calculate_tier_progress

# Import metrics and analysis
from .metrics import (
    tiers_to_dataframe,
    results_to_dataframe,
    stake_sweep,
    leaderboard_to_dataframe,
    calculate_tier_distribution,
    export_dataframe,
)
from .analysis import (
    analyze_sweep,
    analyze_leaderboard,
    tier_entry_points,
    gini_coefficient,
)

__all__ = [
    # Parsing and data model
    "TokenQuantity",
    "parse_quantity",
    "format_token_amount",
    "TierDefinition",
    "TierTableError",
    "load_tiers",
    "sort_tiers",
    "tier_index",
    "tier_neighbors",
    "tier_ranges",
    "PoolState",
    "StakeAccount",
    "StakeRequirement",
    "TierProgressResult",
    "LeaderboardEntry",

    # Configuration
    "EngineConfig",
    "load_snapshot",

    # Calculation core
    "share_percent",
    "resolve_tier",
    "is_upgrade_available",
    "reconcile_claimed_tier",
    "progress_percent",
    "tier_fill_percent",
    "amount_for_next_tier",
    "safe_unstake_amount",
    "calculate_tier_progress",
    "TierEngine",

    # Metrics and analysis
    "tiers_to_dataframe",
    "results_to_dataframe",
    "stake_sweep",
    "leaderboard_to_dataframe",
    "calculate_tier_distribution",
    "export_dataframe",
    "analyze_sweep",
    "analyze_leaderboard",
    "tier_entry_points",
    "gini_coefficient",
]
