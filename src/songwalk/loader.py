"""
loader.py

Load a song similarity table (CSV) into directed, weighted graphs.

Input columns:
- source, target, value (required for edges)
- s_artist, t_artist, s_tags, t_tags, s_attribute, t_attribute (optional,
  kept untouched in the records)

Parsing is tolerant: rows with the wrong number of fields are dropped,
bad weights become 0, and self-loops or rows missing a name are skipped.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx
import pandas as pd

logger = logging.getLogger(__name__)


# ----------------------------
# Data shapes
# ----------------------------

@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    weight: float  # >= 0


@dataclass(frozen=True)
class GraphState:
    """
    Everything one request needs:
    - forward: source -> target graph
    - reverse: target -> source graph
    - universe: every name seen, in first-seen order
    - records: accepted CSV rows (header -> value)
    """
    forward: nx.DiGraph
    reverse: nx.DiGraph
    universe: Tuple[str, ...]
    records: Tuple[Dict[str, str], ...] = field(default_factory=tuple)


# ----------------------------
# CSV parsing
# ----------------------------

def parse_csv_line(line: str) -> List[str]:
    """
    Split one logical record into trimmed fields.
    Commas inside quotes are kept; "" inside quotes is a literal quote.
    A quote left over at either end of a field is dropped.
    """
    fields: List[str] = []
    current: List[str] = []
    inside_quotes = False

    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if inside_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                inside_quotes = not inside_quotes
        elif char == "," and not inside_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return [_strip_outer_quotes(v) for v in fields]


def _strip_outer_quotes(value: str) -> str:
    # one stray quote at either end, e.g. from """x"""
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.strip()


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into records keyed by header name.

    A record may span several physical lines while a quoted field is open;
    lines are joined until the quote count is even.
    """
    lines = text.split("\n")
    if len(lines) < 2:
        return []

    headers = [h.strip() for h in parse_csv_line(lines[0])]
    records: List[Dict[str, str]] = []

    pending = ""
    for line in lines[1:]:
        pending = f"{pending}\n{line}" if pending else line

        if pending.count('"') % 2 != 0:
            continue  # still inside a quoted field

        if pending.strip():
            values = parse_csv_line(pending)
            if len(values) == len(headers):
                records.append(dict(zip(headers, values)))
            else:
                logger.debug("Dropping row with %d fields (expected %d)", len(values), len(headers))
        pending = ""

    return records


def parse_weight(raw: Optional[str]) -> float:
    """
    Similarity weight as a non-negative float.
    Anything unparseable, non-finite or negative becomes 0.
    """
    if raw is None:
        return 0.0
    try:
        value = float(str(raw).strip())
    except ValueError:
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def parse_edge(record: Dict[str, str]) -> Optional[Edge]:
    """
    Turn one record into an Edge, or None when the row should be skipped.
    """
    source = (record.get("source") or "").strip()
    target = (record.get("target") or "").strip()

    if not source or not target or source == target:
        return None

    return Edge(source=source, target=target, weight=parse_weight(record.get("value")))


# ----------------------------
# Graph construction
# ----------------------------

def _add_max_edge(adj: Dict[str, Dict[str, Dict[str, float]]], u: str, v: str, weight: float) -> None:
    nbrs = adj.setdefault(u, {})
    if v in nbrs:
        nbrs[v]["weight"] = max(nbrs[v]["weight"], weight)
    else:
        nbrs[v] = {"weight": weight}


def build_graph_state(
    edges: Iterable[Edge],
    records: Iterable[Dict[str, str]] = (),
) -> GraphState:
    """
    Build forward + reverse graphs in a single pass.
    Parallel edges keep the maximum weight (not the sum).

    Each graph lists the nodes that have outgoing edges first, in the
    order they first appear as a key; walk score ties follow that order.
    """
    forward_adj: Dict[str, Dict[str, Dict[str, float]]] = {}
    reverse_adj: Dict[str, Dict[str, Dict[str, float]]] = {}
    universe: Dict[str, None] = {}

    for edge in edges:
        universe.setdefault(edge.source)
        universe.setdefault(edge.target)

        _add_max_edge(forward_adj, edge.source, edge.target, edge.weight)
        _add_max_edge(reverse_adj, edge.target, edge.source, edge.weight)

    return GraphState(
        forward=nx.DiGraph(forward_adj),
        reverse=nx.DiGraph(reverse_adj),
        universe=tuple(universe),
        records=tuple(records),
    )


def load_graph(text: str) -> GraphState:
    records = parse_csv(text)

    edges: List[Edge] = []
    for record in records:
        edge = parse_edge(record)
        if edge is not None:
            edges.append(edge)

    logger.debug("Parsed %d records, kept %d edges", len(records), len(edges))
    return build_graph_state(edges, records)


def load_graph_file(path: str) -> GraphState:
    """
    Read and parse a similarity table from disk.
    I/O and decoding errors propagate.
    """
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return load_graph(text)


def records_frame(state: GraphState) -> pd.DataFrame:
    """
    Accepted records as a DataFrame (all columns as strings).
    """
    if not state.records:
        return pd.DataFrame(columns=["source", "target", "value"])
    return pd.DataFrame(list(state.records)).fillna("")
