from __future__ import annotations

from typing import Iterable

import pytest

from songwalk.loader import load_graph


class FixedRandom:
    """Replays a fixed list of samples, cycling when it runs out."""

    def __init__(self, samples: Iterable[float]):
        self.samples = list(samples)
        self.calls = 0

    def random(self) -> float:
        value = self.samples[self.calls % len(self.samples)]
        self.calls += 1
        return value


def make_table(rows, header="source,target,value") -> str:
    lines = [header]
    for row in rows:
        lines.append(",".join(str(v) for v in row))
    return "\n".join(lines) + "\n"


@pytest.fixture
def chain_state():
    # X -> Y, Y <-> Z
    return load_graph(make_table([("X", "Y", 1.0), ("Y", "Z", 1.0), ("Z", "Y", 1.0)]))


@pytest.fixture
def full_table() -> str:
    header = "source,target,value,s_artist,t_artist,s_tags,t_tags,s_attribute,t_attribute"
    rows = [
        '"Song A","Song B",0.9,Band One,Band Two,"[(\'rock\', 10)]","[(\'pop\', 3)]",song,song',
        '"Song A","Song C",0.5,Band One,Band Three,"[(\'rock\', 10)]","[(\'indie\', 2)]",song,song',
        '"Song B","Song C",0.7,Band Two,Band Three,"[(\'pop\', 3)]","[(\'indie\', 2)]",song,song',
        '"Song C","Song A",0.4,Band Three,Band One,"[(\'indie\', 2)]","[(\'rock\', 10)]",song,song',
        '"Artist: Band One","Song A",1.0,N/A,Band One,[],[],artist,song',
    ]
    return "\n".join([header] + rows) + "\n"
