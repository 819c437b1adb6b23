"""Tier definitions and ordered tier table queries."""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class TierTableError(ValueError):
    """Raised when a tier table fails validation at load time."""


@dataclass(frozen=True)
class TierDefinition:
    """One reward bracket keyed by percentage-of-pool share.

    A participant belongs to the lowest tier whose ``upper_threshold_percent``
    is at or above their share. The first tier's lower bound is 0 and the last
    tier also absorbs any share above its own threshold.
    """
    id: str                                # Ledger tier key, validated at load
    display_name: str                      # Human readable name
    multiplier: Decimal                    # Reward weight applied to the stake
    upper_threshold_percent: Decimal       # Max share (0-100) inside this tier

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "TierDefinition":
        """Build a definition from a ledger tier row.

        Rows carry string fields ``tier``, ``tier_name``, ``weight`` and
        ``staked_up_to_percent``.
        """
        try:
            multiplier = Decimal(str(record.get("weight", "1.0")))
            threshold = Decimal(str(record["staked_up_to_percent"]))
        except (KeyError, InvalidOperation) as exc:
            raise TierTableError(f"Invalid tier record {dict(record)!r}: {exc}") from exc

        tier_id = str(record.get("tier", ""))
        return cls(
            id=tier_id,
            display_name=str(record.get("tier_name") or tier_id),
            multiplier=multiplier,
            upper_threshold_percent=threshold,
        )


def sort_tiers(tiers: Iterable[TierDefinition]) -> List[TierDefinition]:
    """Ascending by threshold; ties keep their input order."""
    return sorted(tiers, key=lambda tier: tier.upper_threshold_percent)


def tier_index(sorted_tiers: Sequence[TierDefinition], tier_id: str) -> int:
    """Position of ``tier_id`` in the sorted table, or -1 if absent."""
    for index, tier in enumerate(sorted_tiers):
        if tier.id == tier_id:
            return index
    return -1


def tier_neighbors(
    sorted_tiers: Sequence[TierDefinition], tier_id: str
) -> Tuple[Optional[TierDefinition], Optional[TierDefinition]]:
    """Return ``(prev, next)`` around ``tier_id``; both None if it is absent."""
    index = tier_index(sorted_tiers, tier_id)
    if index == -1:
        return None, None
    prev_tier = sorted_tiers[index - 1] if index > 0 else None
    next_tier = sorted_tiers[index + 1] if index + 1 < len(sorted_tiers) else None
    return prev_tier, next_tier


def tier_ranges(sorted_tiers: Sequence[TierDefinition]) -> List[Tuple[TierDefinition, Decimal, Decimal]]:
    """Share band covered by each tier as ``(tier, lower, upper)``."""
    ranges = []
    lower = Decimal(0)
    for tier in sorted_tiers:
        ranges.append((tier, lower, tier.upper_threshold_percent))
        lower = tier.upper_threshold_percent
    return ranges


def load_tiers(records: Iterable[Any]) -> List[TierDefinition]:
    """Validate a tier table once and return it sorted.

    Accepts ledger rows (mappings) or ready TierDefinitions. Ids must be
    non-empty and unique, thresholds within 0-100 and multipliers non-negative.

    Raises:
        TierTableError: on the first invalid tier
    """
    tiers = [
        record if isinstance(record, TierDefinition) else TierDefinition.from_record(record)
        for record in records
    ]

    seen_ids = set()
    seen_thresholds = {}
    for tier in tiers:
        if not tier.id:
            raise TierTableError("Tier id must be non-empty")
        if tier.id in seen_ids:
            raise TierTableError(f"Duplicate tier id '{tier.id}'")
        seen_ids.add(tier.id)

        threshold = tier.upper_threshold_percent
        if not threshold.is_finite() or not (0 <= threshold <= 100):
            raise TierTableError(f"Tier '{tier.id}' threshold {threshold} outside 0-100")
        if not tier.multiplier.is_finite() or tier.multiplier < 0:
            raise TierTableError(f"Tier '{tier.id}' multiplier must be non-negative")

        if threshold in seen_thresholds:
            # Resolution between these two becomes input-order dependent
            logger.warning(
                "Tiers '%s' and '%s' share threshold %s%%",
                seen_thresholds[threshold], tier.id, threshold,
            )
        else:
            seen_thresholds[threshold] = tier.id

    return sort_tiers(tiers)
