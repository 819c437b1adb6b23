"""Tier resolution, progress and ledger record tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from stake_tiers.progress import progress_percent, tier_fill_percent
from stake_tiers.quantity import parse_quantity
from stake_tiers.resolver import (
    is_upgrade_available,
    reconcile_claimed_tier,
    resolve_share,
    resolve_tier,
    share_percent,
)
from stake_tiers.state import PoolState, StakeAccount, StakeRequirement
from stake_tiers.tiers import TierDefinition
from tests.utils import POOL, assert_close, sample_tiers


def _pool(text=POOL):
    return PoolState(total_staked=parse_quantity(text))


def _resolve(stake_text, pool_text=POOL, tiers=None):
    return resolve_tier(parse_quantity(stake_text), _pool(pool_text), tiers or sample_tiers())


# --- Share and resolution -----------------------------------------------------
# Upper thresholds are inclusive: a share exactly on a threshold stays in the
# lower tier.

def test_share_percent():
    assert share_percent(parse_quantity("10.00000000 TOK"), _pool()) == Decimal(1)
    assert share_percent(parse_quantity("0.00000000 TOK"), _pool()) == 0
    assert share_percent(parse_quantity("5.00000000 TOK"), _pool("0.00000000 TOK")) == 0
    assert share_percent(parse_quantity("2000.00000000 TOK"), _pool()) == 100   # clamped


def test_boundary_share_stays_in_lower_tier():
    """10 of 1000 is exactly 1% and resolves to A, not B."""
    assert _resolve("10.00000000 TOK").id == "a"
    assert _resolve("10.00000001 TOK").id == "b"


def test_resolution_across_brackets():
    assert _resolve("0.00000001 TOK").id == "a"
    assert _resolve("30.00000000 TOK").id == "b"       # 3%
    assert _resolve("50.00000000 TOK").id == "b"       # exactly 5%
    assert _resolve("600.00000000 TOK").id == "c"


def test_zero_stake_and_empty_pool_resolve_lowest():
    assert _resolve("0.00000000 TOK").id == "a"
    assert _resolve("5.00000000 TOK", "0.00000000 TOK").id == "a"


def test_share_above_every_threshold_resolves_highest():
    """The last tier absorbs shares its own threshold does not cover."""
    tiers = sample_tiers()[:2]                          # A up to 1%, B up to 5%
    assert _resolve("600.00000000 TOK", tiers=tiers).id == "b"


def test_resolution_ignores_input_order():
    shuffled = list(reversed(sample_tiers()))
    assert _resolve("30.00000000 TOK", tiers=shuffled).id == "b"


def test_resolution_is_monotonic_in_stake():
    """Raising the stake against a fixed pool never lowers the tier.

    The grid brackets every threshold (10 and 50 TOK of a 1000 TOK pool)
    by one quantum on either side, plus a coarse sweep and stakes past the
    pool total.
    """
    tiers = sample_tiers()
    pool = _pool()
    step = Decimal("0.00000001")                       # one quantum at 8 decimals

    grid = {Decimal(value) for value in range(0, 1501, 7)}   # coarse sweep, past the pool
    for tier in tiers:
        boundary = tier.upper_threshold_percent * 10   # threshold percent of 1000 TOK
        grid.update({boundary - step, boundary, boundary + step})

    previous = -1
    for amount in sorted(grid):
        stake = parse_quantity(f"{amount:.8f} TOK")
        index = tiers.index(resolve_tier(stake, pool, tiers))
        assert index >= previous, amount                # tier index never drops
        previous = index

    assert previous == len(tiers) - 1                   # grid ends in the top tier


def test_resolve_empty_table():
    assert resolve_share(Decimal(1), []) is None
    assert resolve_tier(parse_quantity("1 TOK"), _pool(), []) is None


# --- Progress ------------------------------------------------------------------

def test_progress_top_tier_is_full():
    tiers = sample_tiers()
    assert progress_percent(Decimal(80), tiers[2], tiers[1], None) == 100


def test_progress_inside_non_top_tier_is_zero():
    """Progress is measured from the current threshold towards the next one.

    A resolved share never exceeds its own threshold, so inside A or B the
    reading is 0; a 1% share sits exactly on A's threshold.
    """
    a, b, c = sample_tiers()
    assert progress_percent(Decimal(1), a, None, b) == 0
    assert progress_percent(Decimal(3), b, a, c) == 0


def test_progress_is_clamped_and_linear():
    a, b, c = sample_tiers()
    assert progress_percent(Decimal(3), a, None, b) == 50     # (3 - 1) / (5 - 1)
    assert progress_percent(Decimal(9), a, None, b) == 100


def test_progress_zero_width_range():
    a, b, _ = sample_tiers()
    flat = TierDefinition("flat", "Flat", Decimal(1), a.upper_threshold_percent)
    assert progress_percent(Decimal("0.5"), a, None, flat) == 100


def test_tier_fill_within_bracket():
    """Fill measures the share between the tier's lower and upper bounds."""
    a, b, c = sample_tiers()
    assert tier_fill_percent(Decimal(3), b, a) == 50            # halfway from 1% to 5%
    assert tier_fill_percent(Decimal("0.25"), a, None) == 25
    assert tier_fill_percent(Decimal(0), a, None) == 0
    assert_close(tier_fill_percent(Decimal(100), c, b), 100)


# --- Claimed tiers -------------------------------------------------------------

def _account(tier_id, stake="30.00000000 TOK", cooldown_hours=0):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return StakeAccount(
        owner="alice",
        staked_amount=parse_quantity(stake),
        tier=tier_id,
        last_claimed_at=now,
        cooldown_end_at=now + timedelta(hours=cooldown_hours),
    )


def test_upgrade_available_when_ledger_lags():
    tiers = sample_tiers()
    b = tiers[1]
    assert is_upgrade_available("a", b, tiers)
    assert not is_upgrade_available("b", b, tiers)
    assert not is_upgrade_available("c", b, tiers)           # ledger ahead of resolution
    assert is_upgrade_available("unknown", b, tiers)         # unknown ids rank lowest


def test_reconcile_returns_resolved_tier():
    """The resolver wins over whatever the ledger recorded."""
    tiers = sample_tiers()
    b = tiers[1]
    assert reconcile_claimed_tier(_account("a"), b, tiers) is b
    assert reconcile_claimed_tier(_account("b"), b, tiers) is b


# --- Ledger records ------------------------------------------------------------

def test_pool_state_from_record():
    pool = PoolState.from_record({
        "total_staked_quantity": "1000.00000000 WAX",
        "total_staked_weight": "1500.00000000 WAX",
    })
    assert pool.total_staked.amount == Decimal(1000)
    assert pool.total_weight.amount == Decimal(1500)


def test_stake_account_from_record_and_cooldown():
    """Zone-less ledger timestamps are read as UTC."""
    account = StakeAccount.from_record({
        "owner": "bob",
        "staked_quantity": "25.00000000 WAX",
        "tier": "b",
        "last_claimed_at": "2024-01-01T00:00:00",
        "cooldown_end_at": "2024-01-02T00:00:00",
    })
    assert account.owner == "bob"
    assert account.cooldown_end_at.tzinfo is not None
    assert not account.claim_ready(datetime(2024, 1, 1, 12, tzinfo=timezone.utc))
    assert account.claim_ready(datetime(2024, 1, 2, tzinfo=timezone.utc))
    assert account.claim_ready("2024-01-03T00:00:00Z")


def test_stake_account_owner_override():
    record = {
        "staked_quantity": "1.00000000 WAX",
        "tier": "a",
        "last_claimed_at": "2024-01-01T00:00:00",
        "cooldown_end_at": "2024-01-01T00:00:00",
    }
    assert StakeAccount.from_record(record, owner="carol").owner == "carol"


def test_unreachable_requirement():
    requirement = StakeRequirement.unreachable()
    assert not requirement.reachable
    assert requirement.additional == Decimal("Infinity")
    assert not requirement.fee.is_finite()

