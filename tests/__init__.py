"""Tests package for the staking tier engine.

Covers balance parsing, tier table loading, tier resolution and progress,
the deposit/withdrawal solvers, configuration, the engine facade, tabular
metrics and the command line. Tests are plain functions and run either via
``python -m tests.run_tests`` or pytest.
"""
