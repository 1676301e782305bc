"""
run.py

One-command runner for SongWalk: load the similarity table, recommend
songs for one query and print the JSON response.

Examples:
  python src/songwalk/run.py --song "Scream"
  python src/songwalk/run.py --table public/subgraph.csv --max-results 3 --seed 7
  python src/songwalk/run.py --list-songs
"""

from __future__ import annotations

import argparse
import json
import random
import sys

from songwalk.analyze import song_nodes
from songwalk.config import load_hubs, load_settings
from songwalk.loader import load_graph_file
from songwalk.recommend import InternalError, RecommendationResult, recommend_from_file


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SongWalk recommendations (random walk)")
    parser.add_argument(
        "--song",
        type=str,
        default=None,
        help="Song to recommend from. If omitted, you will be prompted.",
    )
    parser.add_argument("--table", type=str, default=None, help="Similarity table CSV")
    parser.add_argument("--hubs", type=str, default=None, help="CSV with name,is_hub columns")

    # Settings (.env) provide the defaults for these
    parser.add_argument("--max-results", type=int, default=None)
    parser.add_argument("--steps", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)

    parser.add_argument(
        "--list-songs",
        action="store_true",
        help="Print the song nodes in the table and exit.",
    )
    return parser.parse_args()


def prompt_for_song() -> str:
    song = input("Song name: ").strip()
    if not song:
        print("No song provided. Exiting.")
        sys.exit(1)
    return song


def exit_code(result: RecommendationResult) -> int:
    if result.ok:
        return 0
    if result.category == InternalError.category:
        return 2
    return 1


def main():
    args = parse_args()
    settings = load_settings()

    table_path = args.table or settings.table_path

    if args.list_songs:
        state = load_graph_file(table_path)
        for name in song_nodes(state) or list(state.universe):
            print(name)
        return

    song = args.song or prompt_for_song()

    hubs = load_hubs(args.hubs or settings.hubs_path)
    seed = args.seed if args.seed is not None else settings.seed

    result = recommend_from_file(
        table_path,
        song,
        args.max_results if args.max_results is not None else settings.max_results,
        num_steps=args.steps if args.steps is not None else settings.walk_steps,
        hubs=hubs,
        rng=random.Random(seed),
        candidate_pool=settings.candidate_pool,
    )

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if not result.ok:
        print(f"[{result.status}] {result.category}", file=sys.stderr)

    sys.exit(exit_code(result))


if __name__ == "__main__":
    main()
