"""
Entry point for running stake_tiers as a module.

Usage:
    python -m stake_tiers evaluate --config tiers.json --stake "30.00000000 WAX" --pool "1000.00000000 WAX"
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
