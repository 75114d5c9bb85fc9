#!/usr/bin/env python3
"""``gridval`` model validation runner.

Usage:
    python scripts/run_validation.py scripts/user_config.py
    python scripts/run_validation.py scripts/user_config.py --checks ANI,DRN
    python scripts/run_validation.py scripts/user_config.py --min-layer 2 --max-layer 4

Note: User config in scripts/user_config.py, expert defaults in gridval.schemas.param
"""

import sys
import argparse
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from gridval.cli import run_validation


def main():
    parser = argparse.ArgumentParser(description="Validate the input grids of a layered model")
    parser.add_argument("config", nargs="?", help="Path to user config file")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--min-layer", type=int, dest="min_entry", help="First layer/system to check")
    parser.add_argument("--max-layer", type=int, dest="max_entry", help="Last layer/system to check")
    parser.add_argument("--min-period", type=int, help="First period to check")
    parser.add_argument("--max-period", type=int, help="Last period to check")
    parser.add_argument("--checks", help="Comma-separated check names, e.g. ANI,DRN")
    parser.add_argument("--no-plots", action="store_true", help="Do not plot result layers")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    cli_args = {
        "base_dir": args.base_dir,
        "min_entry": args.min_entry,
        "max_entry": args.max_entry,
        "min_period": args.min_period,
        "max_period": args.max_period,
        "checks": args.checks,
        "no_plots": args.no_plots or None,
    }

    summaries = run_validation(args.config, cli_args=cli_args, verbose=args.verbose)
    return 1 if any(s.failed for s in summaries) else 0


if __name__ == "__main__":
    sys.exit(main())
