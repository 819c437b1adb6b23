"""Command line interface for tier calculations, sweeps and leaderboards."""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from .analysis import analyze_leaderboard, analyze_sweep
from .config import FEE_SCENARIOS, EngineConfig, load_snapshot
from .core import TierEngine
from .metrics import (
    calculate_tier_distribution,
    export_dataframe,
    leaderboard_to_dataframe,
    stake_sweep,
    tiers_to_dataframe,
)
from .quantity import format_token_amount
from .state import TierProgressResult
from .tiers import sort_tiers, tier_ranges


def build_engine(args) -> TierEngine:
    """Engine from ``--config`` plus any fee/buffer overrides on the command line."""
    config, tiers = EngineConfig.from_config_file(args.config)
    if getattr(args, "scenario", None):
        # A preset replaces the file's fee policy wholesale
        config = EngineConfig.create_fee_scenario(
            args.scenario,
            default_symbol=config.default_symbol,
            default_decimals=config.default_decimals,
        )
    if getattr(args, "fee_bps", None) is not None:
        config.deposit_fee_bps = args.fee_bps
    if getattr(args, "buffer", None) is not None:
        config.buffer_percent = Decimal(str(args.buffer))
    return TierEngine(config, tiers)


def print_result(result: TierProgressResult) -> None:
    """Human readable tier summary."""
    symbol = result.symbol
    decimals = result.decimals

    print(f"Tier: {result.current_tier.display_name} ({result.current_tier.id}), "
          f"multiplier {result.multiplier:f}x")
    print(f"   • Share of pool: {result.share_percent:.6f}%")
    print(f"   • Fill of current tier: {result.tier_fill_percent:.2f}%")
    print(f"   • Progress to next tier: {result.progress_percent:.2f}%")

    if result.next_tier is None:
        print("   • Next tier: none (highest tier)")
    elif not result.next_tier_reachable:
        print(f"   • Next tier: {result.next_tier.display_name} is unreachable at this fee rate")
    else:
        suffix = f" (includes {result.buffer_percent:f}% buffer)" if result.buffer_percent > 0 else ""
        print(f"   • Next tier: {result.next_tier.display_name}")
        print(f"   • Deposit needed: {format_token_amount(result.additional_amount_for_next_tier, symbol, decimals)}{suffix}")
        print(f"   • Deposit fee: {format_token_amount(result.fee_amount, symbol, decimals)}")
        print(f"   • Stake after deposit: {format_token_amount(result.total_amount_for_next_tier, symbol, decimals)}")

    print(f"   • Safe to unstake: {format_token_amount(result.safe_unstake_amount, symbol, decimals)}")


def cmd_evaluate(args) -> int:
    engine = build_engine(args)
    result = engine.evaluate(args.stake, args.pool)
    if result is None:
        print("Insufficient data: no tier result for these balances", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result)
    return 0


def cmd_sweep(args) -> int:
    engine = build_engine(args)
    pool = engine.pool(args.pool)
    print(f"Sweeping {args.points} stakes from {args.min} to {args.max} "
          f"against pool {pool.total_staked}")

    df = stake_sweep(engine, pool, args.min, args.max, args.points)
    if df.is_empty():
        print("Sweep produced no results", file=sys.stderr)
        return 1

    paths = export_dataframe(df, "stake_sweep", args.output_dir)
    summary = analyze_sweep(df)

    print("Results saved:")
    print(f"   • Summary: {paths['csv']}")
    print(f"   • Full data: {paths['parquet']}")
    print("\nTier entry points:")
    for row in summary["entry_points"]:
        print(f"   • {row['tier']}: from {row['entry_stake']:,.8f} ({row['entry_share_percent']:.4f}%)")

    if args.plot:
        from .plotting import plot_stake_sweep
        plot_stake_sweep(df, engine.tiers, args.plot)
    return 0


def cmd_leaderboard(args) -> int:
    engine = build_engine(args)
    pool, accounts = load_snapshot(args.snapshot)
    now = datetime.now(timezone.utc)

    entries = engine.leaderboard(accounts, pool, now)
    if not entries:
        print("No leaderboard entries", file=sys.stderr)
        return 1

    for entry in entries[:args.top]:
        flag = " (upgrade available)" if entry.upgrade_available else ""
        claim = "ready" if entry.claim_ready else "cooling down"
        print(f"{entry.rank:>4}. {entry.owner:<14} {entry.staked_amount}  "
              f"{entry.share_percent:8.4f}%  {entry.resolved_tier.display_name}{flag}  [{claim}]")

    summary = analyze_leaderboard(entries)
    print(f"\nParticipants: {summary['participants']}, Gini: {summary['gini']:.3f}, "
          f"upgrades available: {summary['upgrades_available']}")

    if args.output_dir:
        paths = export_dataframe(leaderboard_to_dataframe(entries), "leaderboard", args.output_dir)
        print(f"Leaderboard saved: {paths['csv']}")

    if args.plot:
        from .plotting import plot_tier_distribution
        plot_tier_distribution(calculate_tier_distribution(entries), args.plot)
    return 0


def cmd_tiers(args) -> int:
    engine = build_engine(args)
    if args.output_dir:
        paths = export_dataframe(tiers_to_dataframe(engine.tiers), "tiers", args.output_dir)
        print(f"Tier table saved: {paths['csv']}")

    print("Tier ranges:\n")
    for tier, lower, upper in tier_ranges(sort_tiers(engine.tiers)):
        print(f"{tier.display_name} ({tier.id})")
        print(f"   • Stake range: {lower:.2f}% - {upper:.2f}%")
        print(f"   • Multiplier: {tier.multiplier:.3f}x")
    return 0


def cmd_scenarios(args) -> int:
    print("Available fee scenarios:\n")
    for name, params in FEE_SCENARIOS.items():
        config = EngineConfig(**params)
        print(f"{name}")
        print(f"   • Deposit Fee: {config.fee_rate * 100:.2f}% ({config.deposit_fee_bps} bps)")
        print(f"   • Buffer: {config.buffer_percent:f}%")
        print()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Staking tier calculator")
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    def add_engine_args(sub, overrides=True):
        sub.add_argument('--config', required=True, help='JSON file with engine_config and tiers')
        if overrides:
            sub.add_argument('--scenario', choices=list(FEE_SCENARIOS.keys()),
                             help='Fee scenario preset; replaces the fee and buffer from --config '
                                  '(symbol and decimals are kept)')
            sub.add_argument('--fee-bps', type=int, help='Deposit fee in basis points')
            sub.add_argument('--buffer', type=float, help='Deposit buffer percent (0-100)')

    evaluate_parser = subparsers.add_parser('evaluate', help='Tier position for one stake')
    add_engine_args(evaluate_parser)
    evaluate_parser.add_argument('--stake', required=True, help='Staked balance, e.g. "30.00000000 WAX"')
    evaluate_parser.add_argument('--pool', required=True, help='Pool total, e.g. "1000.00000000 WAX"')
    evaluate_parser.add_argument('--json', action='store_true', help='Print the result as JSON')

    sweep_parser = subparsers.add_parser('sweep', help='Evaluate a range of stakes against one pool')
    add_engine_args(sweep_parser)
    sweep_parser.add_argument('--pool', required=True, help='Pool total balance')
    sweep_parser.add_argument('--min', type=float, default=1.0, help='Smallest stake')
    sweep_parser.add_argument('--max', type=float, default=1000.0, help='Largest stake')
    sweep_parser.add_argument('--points', type=int, default=200, help='Grid size')
    sweep_parser.add_argument('--output-dir', default='experiments/sweeps', help='Output directory')
    sweep_parser.add_argument('--plot', help='Also save a sweep plot to this PNG path')

    leaderboard_parser = subparsers.add_parser('leaderboard', help='Rank stakes from a pool snapshot')
    add_engine_args(leaderboard_parser, overrides=False)
    leaderboard_parser.add_argument('--snapshot', required=True, help='JSON pool/stakes snapshot')
    leaderboard_parser.add_argument('--top', type=int, default=20, help='Rows to print')
    leaderboard_parser.add_argument('--output-dir', help='Also export the leaderboard here')
    leaderboard_parser.add_argument('--plot', help='Save a tier distribution plot to this PNG path')

    tiers_parser = subparsers.add_parser('tiers', help='Show tier ranges and multipliers')
    add_engine_args(tiers_parser, overrides=False)
    tiers_parser.add_argument('--output-dir', help='Also export the tier table here')

    subparsers.add_parser('scenarios', help='List fee scenarios')

    return parser


COMMANDS = {
    'evaluate': cmd_evaluate,
    'sweep': cmd_sweep,
    'leaderboard': cmd_leaderboard,
    'tiers': cmd_tiers,
    'scenarios': cmd_scenarios,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args)
    except (ValueError, FileNotFoundError, AssertionError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
