"""
analyze.py

Offline analysis of a song similarity table.

Inputs:
- a similarity table CSV (source,target,value,...)

Outputs (in --output-dir):
- node_metrics.csv: degree stats + walk visit share per node
- hub_candidates.csv: name,is_hub (usable as SONGWALK_HUBS_PATH)
- accepted_records.csv: rows that survived parsing, all columns
- network_summary.json
"""

from __future__ import annotations

import argparse
import json
import os
import random
from collections import Counter
from typing import Dict, List, Optional

import networkx as nx
import pandas as pd

from songwalk.config import DEFAULT_CANDIDATE_POOL, load_settings
from songwalk.loader import GraphState, load_graph_file, records_frame
from songwalk.walk import RandomSource, random_walk


# ----------------------------
# Helper Functions
# ----------------------------

def percentile_rank(series: pd.Series) -> pd.Series:
    """
    Rank-based percentile in (0, 1], handles ties nicely.
    """
    return series.rank(pct=True, method="average")


def bucket_5(p: float) -> str:
    """
    Map percentile to 5 buckets.
    """
    if pd.isna(p):
        return "Unknown"
    if p <= 0.20:
        return "Very Low"
    if p <= 0.40:
        return "Low"
    if p <= 0.60:
        return "Medium"
    if p <= 0.80:
        return "High"
    return "Very High"


def song_nodes(state: GraphState) -> List[str]:
    """
    Names marked as songs by the s_attribute / t_attribute columns,
    in first-seen order. Empty if the table has no attribute columns.
    """
    seen: Dict[str, None] = {}
    for record in state.records:
        for name_col, attr_col in (("source", "s_attribute"), ("target", "t_attribute")):
            if record.get(attr_col, "").strip().lower() == "song":
                name = record.get(name_col, "").strip()
                if name:
                    seen.setdefault(name)
    return list(seen)


# ----------------------------
# Graph metrics
# ----------------------------

def compute_summary_stats(state: GraphState) -> Dict:
    G = state.forward
    out_degrees = dict(G.out_degree())
    weighted_out = dict(G.out_degree(weight="weight"))

    components = sorted(
        (len(c) for c in nx.weakly_connected_components(G)),
        reverse=True,
    )

    songs = set(song_nodes(state)) & set(G.nodes)

    return {
        "num_nodes": G.number_of_nodes(),
        "num_edges": G.number_of_edges(),
        "density": nx.density(G),
        "num_weakly_connected_components": len(components),
        "largest_component_size": components[0] if components else 0,
        "average_out_degree": sum(out_degrees.values()) / max(len(out_degrees), 1),
        "average_weighted_out_degree": sum(weighted_out.values()) / max(len(weighted_out), 1),
        "num_song_nodes": len(songs),
        "num_other_nodes": G.number_of_nodes() - len(songs),
    }


def compute_node_metrics(state: GraphState) -> pd.DataFrame:
    G = state.forward
    songs = set(song_nodes(state))

    df = pd.DataFrame({"name": list(state.universe)})
    df["out_degree"] = df["name"].map(dict(G.out_degree())).fillna(0).astype(int)
    df["in_degree"] = df["name"].map(dict(G.in_degree())).fillna(0).astype(int)
    df["weighted_out_degree"] = df["name"].map(dict(G.out_degree(weight="weight"))).fillna(0.0)
    df["weighted_in_degree"] = df["name"].map(dict(G.in_degree(weight="weight"))).fillna(0.0)
    df["is_song"] = df["name"].isin(songs)
    return df


# ----------------------------
# Walk visitation
# ----------------------------

def compute_visit_share(
    state: GraphState,
    num_steps: int,
    walks_per_node: int = 1,
    rng: Optional[RandomSource] = None,
    candidate_pool: int = DEFAULT_CANDIDATE_POOL,
) -> pd.DataFrame:
    """
    Walk from every node with outgoing edges and count how often each
    node lands in the candidate pool. Nodes that show up for almost every
    start are the ones worth listing as hubs.
    """
    if rng is None:
        rng = random.Random()

    G = state.forward
    starts = [node for node, nbrs in G.adj.items() if nbrs]

    hits: Counter = Counter()
    total_walks = 0
    for start in starts:
        for _ in range(walks_per_node):
            ranked = random_walk(G, start, num_steps=num_steps, rng=rng)
            top = [node for node, score in ranked if node != start and score > 0][:candidate_pool]
            hits.update(top)
            total_walks += 1

    df = pd.DataFrame({"name": list(state.universe)})
    df["pool_hits"] = df["name"].map(hits).fillna(0).astype(int)
    df["visit_share"] = df["pool_hits"] / max(total_walks, 1)
    df["visit_pct"] = percentile_rank(df["visit_share"])
    df["visit_category"] = df["visit_pct"].apply(bucket_5)
    return df.sort_values(["pool_hits", "name"], ascending=[False, True]).reset_index(drop=True)


def suggest_hubs(visit_df: pd.DataFrame, top_n: int = 5) -> pd.DataFrame:
    """
    Top `top_n` nodes by pool hits as a name,is_hub table.
    Nodes that were never in a pool are not hubs.
    """
    ranked = visit_df[visit_df["pool_hits"] > 0].sort_values(
        ["pool_hits", "name"], ascending=[False, True]
    )
    out = ranked[["name"]].head(top_n).copy()
    out["is_hub"] = True
    return out.reset_index(drop=True)


# ----------------------------
# Main entry point
# ----------------------------

def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SongWalk network analysis")
    parser.add_argument("--table", type=str, default=None, help="Similarity table CSV")
    parser.add_argument("--output-dir", type=str, required=True, help="Where to write the reports")
    parser.add_argument("--walks-per-node", type=int, default=1)
    parser.add_argument("--steps", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--top-hubs", type=int, default=5)
    return parser.parse_args()


def main():
    args = parse_args()
    settings = load_settings()

    table_path = args.table or settings.table_path
    if not os.path.exists(table_path):
        raise FileNotFoundError(f"Similarity table not found: {table_path}")

    num_steps = args.steps if args.steps is not None else settings.walk_steps
    seed = args.seed if args.seed is not None else settings.seed

    print("⏳ Loading graph…")
    state = load_graph_file(table_path)

    print("⏳ Computing node metrics…")
    metrics_df = compute_node_metrics(state)

    print("⏳ Running walks for visit share…")
    visit_df = compute_visit_share(
        state,
        num_steps=num_steps,
        walks_per_node=args.walks_per_node,
        rng=random.Random(seed),
        candidate_pool=settings.candidate_pool,
    )
    metrics_df = metrics_df.merge(visit_df, on="name", how="left")

    os.makedirs(args.output_dir, exist_ok=True)

    metrics_path = os.path.join(args.output_dir, "node_metrics.csv")
    metrics_df.to_csv(metrics_path, index=False)

    hubs_path = os.path.join(args.output_dir, "hub_candidates.csv")
    suggest_hubs(visit_df, top_n=args.top_hubs).to_csv(hubs_path, index=False)

    # Accepted rows only, metadata columns included
    records_path = os.path.join(args.output_dir, "accepted_records.csv")
    records_frame(state).to_csv(records_path, index=False)

    print("⏳ Computing network summary…")
    summary = compute_summary_stats(state)
    summary["num_records"] = len(state.records)

    summary_path = os.path.join(args.output_dir, "network_summary.json")
    with open(summary_path, "w") as f:
        json.dump(summary, f, indent=2)

    print("✅ Analysis complete")
    print(f"- {metrics_path}")
    print(f"- {hubs_path}")
    print(f"- {records_path}")
    print(f"- {summary_path}")


if __name__ == "__main__":
    main()
