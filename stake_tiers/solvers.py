"""Dilution-aware deposit and withdrawal solvers.

Any deposit or withdrawal moves both the participant's stake and the pool
total, so the share after a change of X is ``(s +/- X) / (P +/- X)`` rather
than ``(s +/- X) / P``. Both solvers solve that equation in closed form,
round conservatively at the pool's precision, and then confirm the answer by
re-resolving the simulated post-change position:

* deposits are rounded up and only ever grow during confirmation
* withdrawals are rounded down and only ever shrink during confirmation
"""

import logging
from decimal import Decimal
from typing import Optional, Sequence, Union

from .quantity import TokenQuantity, ledger_context, quantize_down, quantize_up, quantum
from .resolver import resolve_tier
from .state import PoolState, StakeRequirement
from .tiers import TierDefinition, sort_tiers, tier_index

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)

# Closed-form answers are at most a couple of quanta off after rounding
MAX_ADJUST_STEPS = 16

Number = Union[Decimal, int, float, str]


def as_decimal(value: Number) -> Decimal:
    """Decimal from a rate or percent parameter; floats go through ``str``."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _shifted(stake: TokenQuantity, pool: PoolState, stake_delta: Decimal, pool_delta: Decimal):
    """Stake and pool after moving ``stake_delta`` / ``pool_delta`` into the pool."""
    new_stake = stake.with_amount(stake.amount + stake_delta)
    new_pool = PoolState(
        total_staked=pool.total_staked.with_amount(pool.total_staked.amount + pool_delta),
        total_weight=pool.total_weight,
    )
    return new_stake, new_pool


def _confirmation_table(tiers, lower: TierDefinition, upper: TierDefinition, tier_id: str):
    """Sorted table used to replay a change, and the index of ``tier_id`` in it.

    A caller-supplied table that does not contain ``tier_id`` cannot confirm
    anything, so the replay falls back to the ``[lower, upper]`` pair.
    """
    sorted_tiers = sort_tiers(tiers) if tiers else []
    index = tier_index(sorted_tiers, tier_id)
    if index == -1:
        if tiers:
            logger.debug("Tier %s not in supplied table; confirming against its neighbor only", tier_id)
        sorted_tiers = [lower, upper]
        index = tier_index(sorted_tiers, tier_id)
    return sorted_tiers, index


def _resolved_index(stake, pool, sorted_tiers) -> int:
    tier = resolve_tier(stake, pool, sorted_tiers)
    return tier_index(sorted_tiers, tier.id) if tier is not None else -1


def amount_for_next_tier(
    stake: TokenQuantity,
    pool: PoolState,
    current_tier: TierDefinition,
    next_tier: TierDefinition,
    fee_rate: Number,
    buffer_percent: Number = 0,
    tiers: Optional[Sequence[TierDefinition]] = None,
) -> StakeRequirement:
    """Gross deposit needed to lift the stake to ``next_tier``'s threshold.

    The deposit fee is taken from the gross amount, so depositing X credits
    ``X * (1 - fee_rate)`` to the stake while the pool grows by the full X.
    Solving ``(s + X(1-f)) / (P + X) = t`` gives
    ``X = (t*P - s) / ((1-f) - t)``.

    Args:
        stake: Participant's current stake
        pool: Pool snapshot before the deposit
        current_tier: Tier the stake resolves to now
        next_tier: Tier to reach; its threshold is the target share
        fee_rate: Deposit fee as a fraction (0.003 = 0.3%)
        buffer_percent: Extra percentage added on top of the solved deposit
            to absorb other participants staking in the meantime
        tiers: Full tier table used to confirm the result; defaults to
            ``[current_tier, next_tier]``

    Returns:
        StakeRequirement rounded up to the pool's precision, or
        ``StakeRequirement.unreachable()`` when no finite deposit gets there
    """
    fee = as_decimal(fee_rate)
    buffer = max(ZERO, as_decimal(buffer_percent))
    decimals = pool.total_staked.decimals
    s = stake.amount
    total = pool.total_staked.amount

    with ledger_context():
        target = next_tier.upper_threshold_percent / HUNDRED
        denominator = (ONE - fee) - target
        if denominator <= 0:
            # Fee-adjusted share can never climb this high
            return StakeRequirement.unreachable()

        gross = (target * total - s) / denominator
        gross = max(ZERO, gross) * (ONE + buffer / HUNDRED)
        additional = quantize_up(gross, decimals)

        sorted_tiers, target_index = _confirmation_table(tiers, current_tier, next_tier, next_tier.id)
        step = quantum(decimals)

        # Aiming at the next tier's upper threshold clears its entry point by a
        # wide margin, so this replay almost never bumps; it only catches a
        # credited amount truncated back below the boundary
        for _ in range(MAX_ADJUST_STEPS):
            credited = quantize_down(additional * (ONE - fee), decimals)
            new_stake, new_pool = _shifted(stake, pool, credited, additional)
            if _resolved_index(new_stake, new_pool, sorted_tiers) >= target_index:
                break
            additional += step
        else:
            logger.warning(
                "Deposit for tier %s still short after %d adjustments",
                next_tier.id, MAX_ADJUST_STEPS,
            )

        fee_amount = quantize_up(additional * fee, decimals)
        return StakeRequirement(
            additional=additional,
            total=s + additional,
            fee=fee_amount,
        )


def safe_unstake_amount(
    stake: TokenQuantity,
    pool: PoolState,
    current_tier: TierDefinition,
    prev_tier: Optional[TierDefinition] = None,
    tiers: Optional[Sequence[TierDefinition]] = None,
) -> Decimal:
    """Largest withdrawal that keeps the stake in ``current_tier``.

    Withdrawing X gives share ``(s - X) / (P - X)``, which must stay above
    the previous tier's threshold ``b``: ``X = (s - b*P) / (1 - b)``, rounded
    down to the pool's precision and clamped to ``[0, s]``. At the lowest
    tier everything but one quantum may be withdrawn.
    """
    s = stake.amount
    total = pool.total_staked.amount
    decimals = pool.total_staked.decimals
    step = quantum(decimals)

    if s <= 0:
        return ZERO

    with ledger_context():
        if prev_tier is None:
            return max(ZERO, quantize_down(s - step, decimals))

        if total <= 0:
            return ZERO

        floor_share = prev_tier.upper_threshold_percent / HUNDRED
        if floor_share >= ONE:
            return ZERO

        amount = (s - floor_share * total) / (ONE - floor_share)
        amount = min(s, total, max(ZERO, quantize_down(amount, decimals)))

        sorted_tiers, current_index = _confirmation_table(tiers, prev_tier, current_tier, current_tier.id)

        for _ in range(MAX_ADJUST_STEPS):
            if amount <= 0:
                return ZERO
            new_stake, new_pool = _shifted(stake, pool, -amount, -amount)
            if _resolved_index(new_stake, new_pool, sorted_tiers) == current_index:
                return amount
            amount = max(ZERO, amount - step)

        logger.warning(
            "Safe unstake for tier %s not confirmed after %d adjustments",
            current_tier.id, MAX_ADJUST_STEPS,
        )
        return ZERO
