"""Tier progress aggregation and the engine facade.

``calculate_tier_progress`` runs one resolution pass and feeds the same
current/previous/next tiers into the progress calculator and both solvers, so
the returned record is internally consistent. ``TierEngine`` binds a validated
configuration and tier table for repeated evaluation.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence, Union

from .config import EngineConfig
from .progress import progress_percent, tier_fill_percent
from .quantity import TokenQuantity, coerce_quantity, parse_quantity
from .resolver import is_upgrade_available, reconcile_claimed_tier, resolve_tier, share_percent
from .solvers import Number, amount_for_next_tier, as_decimal, safe_unstake_amount
from .state import LeaderboardEntry, PoolState, StakeAccount, TierProgressResult
from .tiers import TierDefinition, load_tiers, sort_tiers, tier_index, tier_neighbors

logger = logging.getLogger(__name__)

QuantityLike = Union[str, TokenQuantity, None]
PoolLike = Union[PoolState, str, TokenQuantity, None]


def coerce_pool(pool: PoolLike) -> PoolState:
    """Accept a PoolState, or just the pool's total staked balance."""
    if isinstance(pool, PoolState):
        return pool
    return PoolState(total_staked=coerce_quantity(pool))


def calculate_tier_progress(
    stake: QuantityLike,
    pool: PoolLike,
    tiers: Sequence[TierDefinition],
    fee_rate: Number,
    buffer_percent: Number = 0,
) -> Optional[TierProgressResult]:
    """Compute a participant's full tier position in one pass.

    Args:
        stake: Staked balance (``"10.00000000 TOK"`` or parsed quantity)
        pool: Pool snapshot or its total staked balance
        tiers: Tier table in any order
        fee_rate: Deposit fee as a fraction
        buffer_percent: Extra deposit margin for the next-tier requirement

    Returns:
        TierProgressResult, or None when the inputs cannot support a result
        (non-finite values, empty pool, empty or inconsistent tier table).
        None means "insufficient data", not "zero progress".
    """
    stake = coerce_quantity(stake)
    pool = coerce_pool(pool)
    try:
        fee = as_decimal(fee_rate)
        buffer = as_decimal(buffer_percent)
    except InvalidOperation:
        return None

    values = (stake.amount, pool.total_staked.amount, fee, buffer)
    if not all(value.is_finite() for value in values):
        return None
    if pool.total_staked.amount <= 0:
        return None

    sorted_tiers = sort_tiers(tiers)
    current_tier = resolve_tier(stake, pool, sorted_tiers)
    if current_tier is None or tier_index(sorted_tiers, current_tier.id) == -1:
        logger.warning("Resolved tier missing from tier table; no result")
        return None

    prev_tier, next_tier = tier_neighbors(sorted_tiers, current_tier.id)
    share = share_percent(stake, pool)

    additional = total_for_next = fee_amount = reachable = None
    if next_tier is not None:
        requirement = amount_for_next_tier(
            stake, pool, current_tier, next_tier, fee, buffer, tiers=sorted_tiers
        )
        additional = requirement.additional
        total_for_next = requirement.total
        fee_amount = requirement.fee
        reachable = requirement.reachable

    return TierProgressResult(
        current_tier=current_tier,
        next_tier=next_tier,
        prev_tier=prev_tier,
        progress_percent=progress_percent(share, current_tier, prev_tier, next_tier),
        staked_amount=stake,
        total_staked=pool.total_staked,
        symbol=stake.symbol,
        safe_unstake_amount=safe_unstake_amount(
            stake, pool, current_tier, prev_tier, tiers=sorted_tiers
        ),
        additional_amount_for_next_tier=additional,
        total_amount_for_next_tier=total_for_next,
        fee_amount=fee_amount,
        share_percent=share,
        multiplier=current_tier.multiplier,
        tier_fill_percent=tier_fill_percent(share, current_tier, prev_tier),
        next_tier_reachable=reachable,
        buffer_percent=max(Decimal(0), buffer),
        decimals=pool.total_staked.decimals,
    )


class TierEngine:
    """Tier calculations bound to one configuration and tier table.

    The tier table is validated once here; later calls never normalize or
    re-check tier ids.
    """

    def __init__(self, config: Optional[EngineConfig] = None, tiers: Iterable = ()):
        self.config = config or EngineConfig()
        self.config.validate()
        self.tiers: List[TierDefinition] = load_tiers(tiers)

    def parse(self, text: QuantityLike) -> TokenQuantity:
        """Parse a balance using the configured fallbacks."""
        if isinstance(text, TokenQuantity):
            return text
        return parse_quantity(text, self.config.default_symbol, self.config.default_decimals)

    def pool(self, pool: PoolLike) -> PoolState:
        if isinstance(pool, PoolState):
            return pool
        return PoolState(total_staked=self.parse(pool))

    def evaluate(self, stake: QuantityLike, pool: PoolLike) -> Optional[TierProgressResult]:
        """Tier progress for a stake against this engine's table."""
        return calculate_tier_progress(
            self.parse(stake),
            self.pool(pool),
            self.tiers,
            self.config.fee_rate,
            self.config.buffer_percent,
        )

    def evaluate_account(self, account: StakeAccount, pool: PoolLike) -> Optional[TierProgressResult]:
        """Tier progress for a ledger account, reconciling its recorded tier."""
        result = self.evaluate(account.staked_amount, pool)
        if result is not None:
            reconcile_claimed_tier(account, result.current_tier, self.tiers)
        return result

    def leaderboard(
        self, accounts: Iterable[StakeAccount], pool: PoolLike, now: datetime
    ) -> List[LeaderboardEntry]:
        """Rank accounts by staked amount (largest first, ties by owner)."""
        pool = self.pool(pool)
        ranked = sorted(accounts, key=lambda account: (-account.staked_amount.amount, account.owner))

        entries = []
        for rank, account in enumerate(ranked, start=1):
            resolved = resolve_tier(account.staked_amount, pool, self.tiers)
            if resolved is None:
                return []
            entries.append(LeaderboardEntry(
                rank=rank,
                owner=account.owner,
                staked_amount=account.staked_amount,
                share_percent=share_percent(account.staked_amount, pool),
                resolved_tier=resolved,
                claimed_tier=account.tier,
                upgrade_available=is_upgrade_available(account.tier, resolved, self.tiers),
                claim_ready=account.claim_ready(now),
            ))
        return entries
