"""
config.py

Runtime settings for SongWalk, read from the environment (and .env).

Variables:
- SONGWALK_TABLE_PATH      similarity table CSV (default: public/subgraph.csv)
- SONGWALK_WALK_STEPS      random walk length (default: 500)
- SONGWALK_MAX_RESULTS     recommendations returned (default: 5)
- SONGWALK_CANDIDATE_POOL  top-ranked nodes considered for diversity (default: 10)
- SONGWALK_HUBS_PATH       optional CSV with name,is_hub columns
- SONGWALK_SEED            optional integer seed for the walk
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd
from dotenv import load_dotenv


# ----------------------------
# Defaults
# ----------------------------

DEFAULT_TABLE_PATH = os.path.join("public", "subgraph.csv")
DEFAULT_WALK_STEPS = 500
DEFAULT_MAX_RESULTS = 5
DEFAULT_CANDIDATE_POOL = 10

# Songs that dominate visitation in the bundled table.
# They are still recommended, just after the others.
DEFAULT_HUB_NAMES = (
    "Adelitas Way",
    "Scream",
    "Hate Love",
    "Dirty Little Thing",
    "It's Not Over",
)


@dataclass(frozen=True)
class Settings:
    table_path: str = DEFAULT_TABLE_PATH
    walk_steps: int = DEFAULT_WALK_STEPS
    max_results: int = DEFAULT_MAX_RESULTS
    candidate_pool: int = DEFAULT_CANDIDATE_POOL
    hubs_path: Optional[str] = None
    seed: Optional[int] = None


def default_hubs() -> Dict[str, bool]:
    return {name: True for name in DEFAULT_HUB_NAMES}


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise RuntimeError(f"Invalid integer in {name}: {raw!r}") from None


def load_settings() -> Settings:
    """
    Load settings from environment variables, after merging a local .env file.
    Empty variables fall back to the defaults.
    """
    load_dotenv()

    return Settings(
        table_path=os.getenv("SONGWALK_TABLE_PATH") or DEFAULT_TABLE_PATH,
        walk_steps=_env_int("SONGWALK_WALK_STEPS", DEFAULT_WALK_STEPS),
        max_results=_env_int("SONGWALK_MAX_RESULTS", DEFAULT_MAX_RESULTS),
        candidate_pool=_env_int("SONGWALK_CANDIDATE_POOL", DEFAULT_CANDIDATE_POOL),
        hubs_path=os.getenv("SONGWALK_HUBS_PATH") or None,
        seed=_env_int("SONGWALK_SEED", None),
    )


def load_hubs(path: Optional[str] = None) -> Dict[str, bool]:
    """
    Hub configuration: name -> is_hub.

    With no path, the built-in list is used. Otherwise the CSV must have a
    `name` column; `is_hub` is optional and defaults to True for every row.
    """
    if not path:
        return default_hubs()

    if not os.path.exists(path):
        raise FileNotFoundError(f"Hub list not found: {path}")

    df = pd.read_csv(path, dtype={"name": str})
    if "name" not in df.columns:
        raise RuntimeError(f"Hub list {path} has no 'name' column")

    if "is_hub" not in df.columns:
        df["is_hub"] = True

    df = df.dropna(subset=["name"])
    flags = df["is_hub"].map(_as_flag)

    return {str(name).strip(): flag for name, flag in zip(df["name"], flags)}


def _as_flag(value) -> bool:
    if pd.isna(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)
