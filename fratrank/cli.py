"""
Command line helpers for seeding demo data and printing the leaderboard.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from fratrank.config import get_settings
from fratrank.dependencies import get_store
from fratrank.leaderboard import leaderboard
from fratrank.scoring import SORT_KEYS
from fratrank.seed import seed_demo_data


def _seed(args: argparse.Namespace) -> int:
    seeded = seed_demo_data(get_store())
    print("Seeded demo data" if seeded else "Store already has fraternities; nothing to do")
    return 0


def _leaderboard(args: argparse.Namespace) -> int:
    entries = leaderboard(get_store(), args.sort)
    if not entries:
        print("No active fraternities")
        return 1
    for entry in entries[: args.limit]:
        scores = entry["scores"]
        print(
            f"{entry['rank']:>3}  {entry['fraternity']['name']:<28} "
            f"{scores['overall']:5.2f}  rep {scores['rep_adj']:5.2f}  "
            f"party {scores['party_adj']:5.2f}  {entry['tier']}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FratRank backend tools")
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="Seed demo data into the configured store")
    seed.set_defaults(func=_seed)

    board = sub.add_parser("leaderboard", help="Print the ranked leaderboard")
    board.add_argument(
        "-s",
        "--sort",
        choices=sorted(SORT_KEYS),
        default="overall",
        help="Leaderboard category",
    )
    board.add_argument(
        "-n",
        "--limit",
        type=int,
        default=25,
        help="Show at most N rows",
    )
    board.set_defaults(func=_leaderboard)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=get_settings().log_level.upper())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
