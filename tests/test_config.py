"""Configuration, fee scenario and snapshot loading tests."""

import tempfile
from decimal import Decimal

from stake_tiers.config import FEE_SCENARIOS, EngineConfig, load_snapshot
from stake_tiers.tiers import TierTableError
from tests.utils import SAMPLE_TIER_RECORDS, expect_raises, write_json


# --- Validation ----------------------------------------------------------------

def test_default_config_is_valid():
    """Defaults match the observed staking contract: 0.3% fee, 8-decimal WAX."""
    config = EngineConfig()
    config.validate()
    assert config.fee_rate == Decimal("0.003")  # 30 bps
    assert config.default_symbol == "WAX"
    assert config.default_decimals == 8


def test_invalid_fee_raises():
    """A fee of 100% or more leaves nothing to credit."""
    expect_raises(AssertionError, EngineConfig(deposit_fee_bps=10_000).validate)
    expect_raises(AssertionError, EngineConfig(deposit_fee_bps=-1).validate)


def test_invalid_buffer_raises():
    expect_raises(AssertionError, EngineConfig(buffer_percent=150).validate)  # Above 100%
    expect_raises(AssertionError, EngineConfig(buffer_percent=-1).validate)


def test_invalid_parser_defaults_raise():
    expect_raises(AssertionError, EngineConfig(default_symbol="").validate)
    expect_raises(AssertionError, EngineConfig(default_decimals=19).validate)  # Limit is 18


def test_buffer_is_converted_to_decimal():
    """JSON and the CLI provide floats; they are stored as exact decimals."""
    config = EngineConfig(buffer_percent=2.5)
    assert config.buffer_percent == Decimal("2.5")  # Must be exact, not 2.4999...


def test_from_dict_rejects_unknown_keys():
    expect_raises(ValueError, EngineConfig.from_dict, {"deposit_fee_bps": 30, "fee_bps": 30})
    assert EngineConfig.from_dict({"deposit_fee_bps": 10}).deposit_fee_bps == 10


# --- Scenarios -----------------------------------------------------------------

def test_fee_scenarios():
    assert EngineConfig.create_fee_scenario("zero_fee").fee_rate == 0
    assert EngineConfig.create_fee_scenario("high_fee").fee_rate == Decimal("0.01")
    assert EngineConfig.create_fee_scenario("buffered").buffer_percent == 5

    custom = EngineConfig.create_fee_scenario("default", default_symbol="TOK")
    assert custom.default_symbol == "TOK"

    for name in FEE_SCENARIOS:
        EngineConfig.create_fee_scenario(name).validate()  # Every preset must validate


def test_unknown_scenario_raises():
    expect_raises(ValueError, EngineConfig.create_fee_scenario, "free_lunch")


# --- Files ---------------------------------------------------------------------

def test_from_config_file():
    with tempfile.TemporaryDirectory() as tmp:
        path = write_json(tmp, "tiers.json", {
            "engine_config": {"deposit_fee_bps": 50, "buffer_percent": 1.5},
            "tiers": SAMPLE_TIER_RECORDS,
        })
        config, tiers = EngineConfig.from_config_file(path)

    assert config.deposit_fee_bps == 50
    assert config.buffer_percent == Decimal("1.5")
    assert [tier.id for tier in tiers] == ["a", "b", "c"]  # Sorted by threshold


def test_from_config_file_overrides():
    with tempfile.TemporaryDirectory() as tmp:
        path = write_json(tmp, "tiers.json", {"tiers": SAMPLE_TIER_RECORDS})
        config, _ = EngineConfig.from_config_file(path, {"engine_config": {"deposit_fee_bps": 0}})
    assert config.fee_rate == 0  # Override wins over the file


def test_from_config_file_errors():
    expect_raises(FileNotFoundError, EngineConfig.from_config_file, "/nonexistent/tiers.json")

    with tempfile.TemporaryDirectory() as tmp:
        path = write_json(tmp, "bad.json", {"tiers": [{"tier": "a", "staked_up_to_percent": "200"}]})
        expect_raises(TierTableError, EngineConfig.from_config_file, path)


def _snapshot(stakes):
    return {
        "pool": {"total_staked_quantity": "1000.00000000 WAX", "total_staked_weight": "1200.00000000 WAX"},
        "stakes": stakes,
    }


def test_load_snapshot():
    with tempfile.TemporaryDirectory() as tmp:
        path = write_json(tmp, "snapshot.json", _snapshot([
            {"owner": "alice", "staked_quantity": "600.00000000 WAX", "tier": "b",
             "last_claimed_at": "2024-01-01T00:00:00", "cooldown_end_at": "2024-01-02T00:00:00"},
        ]))
        pool, accounts = load_snapshot(path)

    assert pool.total_staked.amount == Decimal(1000)
    assert len(accounts) == 1
    assert accounts[0].staked_amount.amount == Decimal(600)


def test_load_snapshot_errors():
    expect_raises(FileNotFoundError, load_snapshot, "/nonexistent/snapshot.json")

    with tempfile.TemporaryDirectory() as tmp:
        no_pool = write_json(tmp, "no_pool.json", {"stakes": []})
        expect_raises(ValueError, load_snapshot, no_pool)

        bad_row = write_json(tmp, "bad_row.json", _snapshot([{"owner": "bob", "staked_quantity": "1 WAX"}]))
        expect_raises(ValueError, load_snapshot, bad_row)           # timestamps missing

        bad_time = write_json(tmp, "bad_time.json", _snapshot([
            {"owner": "bob", "staked_quantity": "1 WAX", "tier": "a",
             "last_claimed_at": "yesterday", "cooldown_end_at": "today"},
        ]))
        expect_raises(ValueError, load_snapshot, bad_time)  # Unparseable timestamps
