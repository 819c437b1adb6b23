"""Tier resolution from a stake's percentage share of the pool.

The resolver is the single source of truth for which tier a stake occupies.
Tier ids stored on ledger accounts are reconciled against it, never trusted.
"""

import logging
from decimal import Decimal
from typing import Optional, Sequence

from .quantity import TokenQuantity, ledger_context
from .state import PoolState, StakeAccount
from .tiers import TierDefinition, sort_tiers, tier_index

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def share_percent(stake: TokenQuantity, pool: PoolState) -> Decimal:
    """Stake as a percentage of the pool, clamped to [0, 100]."""
    total = pool.total_staked.amount
    if total <= 0 or stake.amount <= 0:
        return Decimal(0)
    with ledger_context():
        share = stake.amount / total * HUNDRED
    return min(HUNDRED, max(Decimal(0), share))


def resolve_share(share: Decimal, sorted_tiers: Sequence[TierDefinition]) -> Optional[TierDefinition]:
    """Lowest tier whose upper threshold still covers ``share``.

    A share exactly on a threshold stays in that (lower) tier. A share above
    every threshold lands in the highest tier.
    """
    if not sorted_tiers:
        return None
    for tier in sorted_tiers:
        if share <= tier.upper_threshold_percent:
            return tier
    return sorted_tiers[-1]


def resolve_tier(
    stake: TokenQuantity, pool: PoolState, tiers: Sequence[TierDefinition]
) -> Optional[TierDefinition]:
    """Resolve the tier a stake belongs to.

    Args:
        stake: Participant's staked balance
        pool: Pool snapshot providing the denominator
        tiers: Tier table in any order

    Returns:
        The resolved tier; the lowest tier for an empty pool or zero stake;
        None only when ``tiers`` is empty
    """
    sorted_tiers = sort_tiers(tiers)
    if not sorted_tiers:
        return None
    if pool.total_staked.amount <= 0 or stake.amount <= 0:
        return sorted_tiers[0]

    share = share_percent(stake, pool)
    tier = resolve_share(share, sorted_tiers)
    logger.debug("Resolved %s%% of pool to tier %s", share, tier.id)
    return tier


def is_upgrade_available(
    claimed_tier_id: str, resolved: TierDefinition, tiers: Sequence[TierDefinition]
) -> bool:
    """True when the ledger's recorded tier sits below the resolved one.

    An unknown claimed id counts as below every tier.
    """
    sorted_tiers = sort_tiers(tiers)
    claimed_index = tier_index(sorted_tiers, claimed_tier_id)
    resolved_index = tier_index(sorted_tiers, resolved.id)
    if resolved_index == -1:
        return False
    return claimed_index < resolved_index


def reconcile_claimed_tier(
    account: StakeAccount, resolved: TierDefinition, tiers: Sequence[TierDefinition]
) -> TierDefinition:
    """Return the resolved tier, logging when the ledger disagrees."""
    if account.tier != resolved.id:
        direction = "upgrade available" if is_upgrade_available(account.tier, resolved, tiers) else "stale"
        logger.warning(
            "Tier mismatch for %s: ledger=%s resolved=%s (%s)",
            account.owner, account.tier, resolved.id, direction,
        )
    return resolved
