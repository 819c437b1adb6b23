"""Progress of a share within and beyond its tier bracket."""

from decimal import Decimal
from typing import Optional

from .quantity import ledger_context
from .tiers import TierDefinition

ZERO = Decimal(0)
HUNDRED = Decimal(100)


def _clamp_percent(value: Decimal) -> Decimal:
    return min(HUNDRED, max(ZERO, value))


def progress_percent(
    share: Decimal,
    current_tier: TierDefinition,
    prev_tier: Optional[TierDefinition] = None,
    next_tier: Optional[TierDefinition] = None,
) -> Decimal:
    """Position of ``share`` from the current tier's threshold to the next one's.

    Returns 100 at the top tier (no next tier) and for a zero-width range.
    Because a resolved share never exceeds its own tier's threshold, this
    reads 0 for any share inside a non-top tier; see ``tier_fill_percent``
    for the position inside the bracket.
    """
    if next_tier is None:
        return HUNDRED

    span = next_tier.upper_threshold_percent - current_tier.upper_threshold_percent
    if span <= 0:
        return HUNDRED

    with ledger_context():
        progress = (share - current_tier.upper_threshold_percent) / span * HUNDRED
    return _clamp_percent(progress)


def tier_fill_percent(
    share: Decimal,
    current_tier: TierDefinition,
    prev_tier: Optional[TierDefinition] = None,
) -> Decimal:
    """Position of ``share`` between the tier's lower bound and its threshold."""
    lower = prev_tier.upper_threshold_percent if prev_tier is not None else ZERO
    span = current_tier.upper_threshold_percent - lower
    if span <= 0:
        return HUNDRED

    with ledger_context():
        fill = (share - lower) / span * HUNDRED
    return _clamp_percent(fill)
