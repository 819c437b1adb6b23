"""Core data structures for pool, account and tier progress snapshots."""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from .quantity import TokenQuantity, parse_quantity
from .tiers import TierDefinition


def _parse_timestamp(value: Any) -> datetime:
    """Ledger timestamps are ISO-8601 strings without zone; treat them as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decimal_text(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else f"{value:f}"


@dataclass(frozen=True)
class PoolState:
    """Aggregate pool balances.

    Dividing any single stake by ``total_staked.amount`` gives that stake's
    share. Changes only through external stake/unstake events.
    """
    total_staked: TokenQuantity                               # Sum of all principal
    total_weight: TokenQuantity = TokenQuantity()             # Sum of tier-weighted stake

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PoolState":
        """Build from a ledger pool row."""
        return cls(
            total_staked=parse_quantity(record.get("total_staked_quantity")),
            total_weight=parse_quantity(record.get("total_staked_weight")),
        )


@dataclass(frozen=True)
class StakeAccount:
    """One participant's position.

    ``tier`` is whatever the ledger last recorded and may lag the tier the
    current share actually resolves to; it is advisory only.
    """
    owner: str
    staked_amount: TokenQuantity
    tier: str                                  # Claimed tier id (advisory)
    last_claimed_at: datetime
    cooldown_end_at: datetime

    @classmethod
    def from_record(cls, record: Mapping[str, Any], owner: Optional[str] = None) -> "StakeAccount":
        """Build from a ledger stake row; ``owner`` defaults to the row's own field."""
        return cls(
            owner=str(owner if owner is not None else record.get("owner", "")),
            staked_amount=parse_quantity(record.get("staked_quantity")),
            tier=str(record.get("tier", "")),
            last_claimed_at=_parse_timestamp(record["last_claimed_at"]),
            cooldown_end_at=_parse_timestamp(record["cooldown_end_at"]),
        )

    def claim_ready(self, now: datetime) -> bool:
        """Whether the reward cooldown has elapsed at ``now``."""
        return _parse_timestamp(now) >= self.cooldown_end_at


@dataclass(frozen=True)
class StakeRequirement:
    """Deposit needed to reach a target tier.

    An unreachable tier is reported with infinite amounts and
    ``reachable=False`` rather than an exception.
    """
    additional: Decimal          # Gross deposit, fee and buffer included
    total: Decimal               # Stake after the deposit (stake + additional)
    fee: Decimal                 # Portion of ``additional`` kept by the protocol
    reachable: bool = True

    @classmethod
    def unreachable(cls) -> "StakeRequirement":
        infinity = Decimal("Infinity")
        return cls(additional=infinity, total=infinity, fee=infinity, reachable=False)


@dataclass(frozen=True)
class TierProgressResult:
    """Snapshot of a participant's tier position.

    Every field comes from a single resolution pass, so ``current_tier``,
    the neighbors, progress and both solver outputs always agree with each
    other. Consumed by presentation layers as-is.
    """
    current_tier: TierDefinition
    next_tier: Optional[TierDefinition]
    prev_tier: Optional[TierDefinition]
    progress_percent: Decimal                                # 0-100 towards next tier
    staked_amount: TokenQuantity
    total_staked: TokenQuantity
    symbol: str
    safe_unstake_amount: Decimal                             # Max withdrawal keeping the tier
    additional_amount_for_next_tier: Optional[Decimal] = None
    total_amount_for_next_tier: Optional[Decimal] = None
    fee_amount: Optional[Decimal] = None
    share_percent: Decimal = Decimal(0)                      # Stake / pool * 100
    multiplier: Decimal = Decimal(1)                         # Current tier weight
    tier_fill_percent: Decimal = Decimal(0)                  # Position inside current bracket
    next_tier_reachable: Optional[bool] = None               # None at the top tier
    buffer_percent: Decimal = Decimal(0)
    decimals: int = 8                                        # Precision of reported amounts

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON-friendly view; Decimals are rendered as strings."""
        return {
            "current_tier": self.current_tier.id,
            "current_tier_name": self.current_tier.display_name,
            "next_tier": self.next_tier.id if self.next_tier else None,
            "prev_tier": self.prev_tier.id if self.prev_tier else None,
            "progress_percent": _decimal_text(self.progress_percent),
            "tier_fill_percent": _decimal_text(self.tier_fill_percent),
            "share_percent": _decimal_text(self.share_percent),
            "multiplier": _decimal_text(self.multiplier),
            "staked_amount": str(self.staked_amount),
            "total_staked": str(self.total_staked),
            "symbol": self.symbol,
            "safe_unstake_amount": _decimal_text(self.safe_unstake_amount),
            "additional_amount_for_next_tier": _decimal_text(self.additional_amount_for_next_tier),
            "total_amount_for_next_tier": _decimal_text(self.total_amount_for_next_tier),
            "fee_amount": _decimal_text(self.fee_amount),
            "next_tier_reachable": self.next_tier_reachable,
            "buffer_percent": _decimal_text(self.buffer_percent),
            "decimals": self.decimals,
        }


@dataclass(frozen=True)
class LeaderboardEntry:
    """Ranked participant row built from a pool snapshot."""
    rank: int                                  # 1-based, by staked amount descending
    owner: str
    staked_amount: TokenQuantity
    share_percent: Decimal
    resolved_tier: TierDefinition
    claimed_tier: str
    upgrade_available: bool                    # Claimed tier below the resolved one
    claim_ready: bool
