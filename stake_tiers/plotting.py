"""Visualization of stake sweeps and tier distributions with seaborn styling."""

import os
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import polars as pl
import seaborn as sns

from .tiers import TierDefinition, sort_tiers, tier_ranges


def _save_figure(fig, save_path: Optional[str], stem: str) -> str:
    """Save to ``save_path`` or a timestamped file under experiments/outputs/plots/."""
    if save_path:
        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        path = save_path
    else:
        output_dir = "experiments/outputs/plots"
        os.makedirs(output_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = f"{output_dir}/{stem}_{timestamp}.png"

    fig.savefig(path, dpi=150, bbox_inches='tight', facecolor='white')
    plt.close(fig)
    return path


def plot_stake_sweep(sweep: pl.DataFrame, tiers: Sequence[TierDefinition],
                     save_path: Optional[str] = None) -> Optional[str]:
    """
    Plot share, next-tier requirement and safe unstake across a stake sweep.

    Args:
        sweep: Output of ``metrics.stake_sweep``
        tiers: Tier table drawn as shaded share bands
        save_path: Optional PNG path (defaults to experiments/outputs/plots/)

    Returns:
        Path of the saved figure, or None if there was nothing to plot
    """
    if sweep.is_empty():
        print("No sweep data to plot")
        return None

    sns.set_style("whitegrid")
    palette = sns.color_palette("husl", max(1, len(tiers)))

    fig, axes = plt.subplots(1, 2, figsize=(16, 6))
    fig.suptitle("Tier Position Across Stake Sizes", fontsize=15)

    stake = sweep["stake"].to_numpy()

    # Share with tier bands
    ax = axes[0]
    for (tier, lower, upper), color in zip(tier_ranges(sort_tiers(tiers)), palette):
        ax.axhspan(float(lower), float(upper), color=color, alpha=0.15, label=tier.display_name)
    sns.lineplot(x=stake, y=sweep["share_percent"].to_numpy(), color="black", linewidth=2, ax=ax)
    ax.set_xscale("log")
    ax.set_yscale("symlog", linthresh=0.01)
    ax.set_xlabel("Staked amount")
    ax.set_ylabel("Share of pool (%)")
    ax.set_title("Share and Tier Bands")
    ax.legend(loc="upper left", fontsize=8)

    # Deposit needed vs. safe withdrawal; unreachable points are dropped
    ax = axes[1]
    additional = sweep["additional_for_next"].to_numpy()
    finite = np.isfinite(additional)
    if finite.any():
        sns.lineplot(x=stake[finite], y=additional[finite], label="Deposit for next tier", ax=ax)
    sns.lineplot(x=stake, y=sweep["safe_unstake"].to_numpy(), label="Safe unstake", ax=ax)
    ax.set_xscale("log")
    ax.set_yscale("symlog")
    ax.set_xlabel("Staked amount")
    ax.set_ylabel("Amount")
    ax.set_title("Deposit Needed vs. Safe Withdrawal")
    ax.legend()

    path = _save_figure(fig, save_path, "stake_sweep")
    print(f"Sweep plot saved to {path}")
    return path


def plot_tier_distribution(distribution: List[Dict], save_path: Optional[str] = None) -> Optional[str]:
    """Bar chart of participants and pool share per tier.

    Args:
        distribution: Output of ``metrics.calculate_tier_distribution``
        save_path: Optional PNG path
    """
    if not distribution:
        print("No distribution data to plot")
        return None

    sns.set_style("whitegrid")
    names = [row["tier_name"] for row in distribution]

    fig, axes = plt.subplots(1, 2, figsize=(14, 5))
    sns.barplot(x=names, y=[row["participants"] for row in distribution],
                color="steelblue", ax=axes[0])
    axes[0].set_title("Participants per Tier")
    axes[0].set_ylabel("Participants")

    sns.barplot(x=names, y=[row["pool_share_percent"] for row in distribution],
                color="darkorange", ax=axes[1])
    axes[1].set_title("Pool Share per Tier")
    axes[1].set_ylabel("Share of pool (%)")

    for ax in axes:
        ax.tick_params(axis="x", rotation=30)

    path = _save_figure(fig, save_path, "tier_distribution")
    print(f"Distribution plot saved to {path}")
    return path
