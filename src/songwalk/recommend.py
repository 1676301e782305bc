"""
recommend.py

Song recommendations from a random walk over the similarity graph.

recommend() never raises for expected failures (blank query, unknown song,
isolated song, empty walk). It returns a RecommendationResult carrying the
list shown to the user, an error message, and an out-of-band category/status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from songwalk.config import DEFAULT_CANDIDATE_POOL, DEFAULT_MAX_RESULTS, default_hubs
from songwalk.loader import GraphState, load_graph_file
from songwalk.walk import DEFAULT_NUM_STEPS, RandomSource, random_walk

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
MAX_OTHER_PICKS = 3
MAX_HUB_PICKS = 2


# ----------------------------
# Failures
# ----------------------------

class RecommendationError(Exception):
    """Base class for failures reported back to the caller."""

    category = "error"
    status = 500

    def __init__(self, message: str, suggestions: Sequence[str] = ()):
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions)


class ValidationError(RecommendationError):
    """Raised when the query is missing or blank."""

    category = "validation"
    status = 400


class NotFound(RecommendationError):
    """Raised when no node matches the query name."""

    category = "not_found"
    status = 404


class NoConnections(RecommendationError):
    """Raised when the matched node has no edges in either direction."""

    category = "no_connections"
    status = 404


class NoRecommendations(RecommendationError):
    """Raised when the walk produced nothing usable."""

    category = "no_recommendations"
    status = 404


class InternalError(RecommendationError):
    """Wraps an unexpected exception (I/O, decoding) while serving a query."""

    category = "internal"
    status = 500


# ----------------------------
# Result shape
# ----------------------------

@dataclass(frozen=True)
class RecommendationResult:
    recommendations: List[str] = field(default_factory=list)
    error: Optional[str] = None
    category: Optional[str] = None
    status: int = 200

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict:
        """Response body: recommendations, plus error on failure."""
        body: Dict = {"recommendations": list(self.recommendations)}
        if self.error is not None:
            body["error"] = self.error
        return body

    @classmethod
    def from_error(cls, exc: RecommendationError) -> "RecommendationResult":
        return cls(
            recommendations=list(exc.suggestions),
            error=exc.message,
            category=exc.category,
            status=exc.status,
        )


# ----------------------------
# Helpers
# ----------------------------

def suggest_names(universe: Sequence[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """
    First few names that don't look like artist nodes.
    """
    return [name for name in universe if "artist" not in name.lower()][:limit]


def resolve_name(universe: Sequence[str], query: str) -> Optional[str]:
    """
    Case-insensitive exact match. First match in universe order wins.
    """
    wanted = query.strip().lower()
    for name in universe:
        if name.lower() == wanted:
            return name
    return None


def select_graph(state: GraphState, node: str) -> Optional[nx.DiGraph]:
    """
    Forward graph if the node has outgoing edges there, else the reverse graph.
    None if the node is isolated in both.
    """
    for G in (state.forward, state.reverse):
        if node in G and G.adj[node]:
            return G
    return None


def diversify(
    ranked: List[Tuple[str, int]],
    found: str,
    max_results: int,
    hubs: Dict[str, bool],
    candidate_pool: int = DEFAULT_CANDIDATE_POOL,
) -> List[str]:
    """
    Push hub songs behind the others so one popular song doesn't
    crowd every list: up to 3 non-hubs first, then up to 2 hubs.
    Falls back to the plain top results if that leaves nothing.
    """
    found_lower = found.lower()
    candidates = [node for node, _ in ranked if node.lower() != found_lower]

    top = candidates[:candidate_pool]
    hub_recs = [name for name in top if hubs.get(name, False)]
    other_recs = [name for name in top if not hubs.get(name, False)]

    picks = (other_recs[:MAX_OTHER_PICKS] + hub_recs[:MAX_HUB_PICKS])[:max_results]
    if picks:
        return picks

    return candidates[:max_results]


# ----------------------------
# Core
# ----------------------------

def _recommend(
    state: GraphState,
    query: Optional[str],
    max_results: int,
    num_steps: int,
    hubs: Dict[str, bool],
    rng: Optional[RandomSource],
    candidate_pool: int,
) -> List[str]:
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Song name is required")

    found = resolve_name(state.universe, query)
    if found is None:
        suggestions = suggest_names(state.universe)
        raise NotFound(
            f'Song "{query}" not found. Available: {", ".join(suggestions)}',
            suggestions,
        )

    G = select_graph(state, found)
    if G is None:
        raise NoConnections(
            f'No connections found for "{found}". Try another song.',
            suggest_names(state.universe),
        )

    ranked = random_walk(G, found, num_steps=num_steps, rng=rng)
    picks = diversify(ranked, found, max_results, hubs, candidate_pool)

    if not picks:
        raise NoRecommendations(f'No recommendations found for "{found}"')

    return picks


def recommend(
    state: GraphState,
    query: Optional[str],
    max_results: int = DEFAULT_MAX_RESULTS,
    *,
    num_steps: int = DEFAULT_NUM_STEPS,
    hubs: Optional[Dict[str, bool]] = None,
    rng: Optional[RandomSource] = None,
    candidate_pool: int = DEFAULT_CANDIDATE_POOL,
) -> RecommendationResult:
    """
    Recommend up to `max_results` songs similar to `query`.

    Expected failures come back as a result with `error` set; the
    recommendations list then holds suggestions (or nothing).
    """
    if hubs is None:
        hubs = default_hubs()

    try:
        picks = _recommend(state, query, max_results, num_steps, hubs, rng, candidate_pool)
    except RecommendationError as exc:
        logger.debug("No recommendations for %r: %s", query, exc.category)
        return RecommendationResult.from_error(exc)

    return RecommendationResult(recommendations=picks)


def recommend_from_file(
    path: str,
    query: Optional[str],
    max_results: int = DEFAULT_MAX_RESULTS,
    **kwargs,
) -> RecommendationResult:
    """
    Load the table fresh and answer one query.
    Unexpected errors (missing file, bad encoding) become an internal error result.
    """
    if not isinstance(query, str) or not query.strip():
        return RecommendationResult.from_error(ValidationError("Song name is required"))

    try:
        state = load_graph_file(path)
        return recommend(state, query, max_results, **kwargs)
    except (OSError, ValueError) as exc:
        logger.exception("Error generating recommendations for %r", query)
        return RecommendationResult.from_error(InternalError(f"Error: {exc}"))
