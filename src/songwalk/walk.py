"""
walk.py

Weighted random walk over a similarity graph.

The walk counts how often each node is visited when repeatedly
stepping to a neighbor chosen in proportion to edge weight.
"""

from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Protocol, Tuple

import networkx as nx

logger = logging.getLogger(__name__)

DEFAULT_NUM_STEPS = 500


class RandomSource(Protocol):
    """Anything with random() -> float in [0, 1). random.Random fits."""

    def random(self) -> float:
        ...


def initial_scores(G: nx.DiGraph) -> Dict[str, int]:
    """
    Zero score for every node that has outgoing edges.
    """
    return {node: 0 for node, nbrs in G.adj.items() if nbrs}


def choose_neighbor(neighbors, total_weight: float, sample: float) -> Optional[str]:
    """
    Pick the first neighbor whose cumulative probability reaches `sample`.
    Returns None if rounding leaves the sample above every cumulative value.
    """
    cumulative = 0.0
    for neighbor, data in neighbors.items():
        cumulative += data["weight"] / total_weight
        if sample <= cumulative:
            return neighbor
    return None


def random_walk(
    G: nx.DiGraph,
    start_node: str,
    num_steps: int = DEFAULT_NUM_STEPS,
    rng: Optional[RandomSource] = None,
) -> List[Tuple[str, int]]:
    """
    Walk `num_steps` steps from `start_node` and return (node, visits)
    sorted by visits, highest first. Ties keep the graph's node order.

    Step rules:
    - no neighbors: jump back to the start node (no visit counted)
    - all neighbor weights 0: stay put (no visit counted)
    - otherwise: move to a weighted-random neighbor and count the visit
    """
    if start_node not in G or not G.adj[start_node]:
        return []

    if rng is None:
        rng = random.Random()

    scores = initial_scores(G)
    current = start_node
    restarts = 0

    for _ in range(num_steps):
        neighbors = G.adj[current] if current in G else {}
        if not neighbors:
            current = start_node
            restarts += 1
            continue

        total_weight = sum(data["weight"] for data in neighbors.values())
        if total_weight == 0:
            continue

        chosen = choose_neighbor(neighbors, total_weight, rng.random())
        if chosen is not None:
            current = chosen

        if current in scores:
            scores[current] += 1

    logger.debug("Walk from %r: %d steps, %d restarts", start_node, num_steps, restarts)

    # sorted() is stable, so ties keep insertion order
    return sorted(scores.items(), key=lambda item: item[1], reverse=True)
