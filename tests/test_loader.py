from __future__ import annotations

import networkx as nx
import pytest

from songwalk.loader import (
    Edge,
    build_graph_state,
    load_graph,
    load_graph_file,
    parse_csv,
    parse_csv_line,
    parse_edge,
    parse_weight,
    records_frame,
)

from conftest import make_table


# ----------------------------
# Line / record parsing
# ----------------------------

def test_parse_csv_line_splits_and_trims():
    assert parse_csv_line(" a , b ,c") == ["a", "b", "c"]


def test_parse_csv_line_keeps_commas_inside_quotes():
    assert parse_csv_line('"Hello, Goodbye",Beatles,1') == ["Hello, Goodbye", "Beatles", "1"]


def test_parse_csv_line_doubled_quote_is_literal():
    assert parse_csv_line('"The ""Best"" Song",x') == ['The "Best" Song', "x"]


def test_parse_csv_line_trailing_empty_field():
    assert parse_csv_line("a,b,") == ["a", "b", ""]


def test_parse_csv_line_drops_leftover_edge_quotes():
    assert parse_csv_line('"""x""",y') == ["x", "y"]
    assert parse_csv_line('"""",z') == ["", "z"]


def test_parse_csv_joins_multiline_quoted_field():
    text = 'source,target,value\n"Line one\nline two",B,2\nC,D,3\n'
    records = parse_csv(text)

    assert records == [
        {"source": "Line one\nline two", "target": "B", "value": "2"},
        {"source": "C", "target": "D", "value": "3"},
    ]


def test_parse_csv_drops_rows_with_wrong_field_count():
    text = "source,target,value\nA,B,1\nbroken,row\nC,D,2,extra\nE,F,3\n"
    records = parse_csv(text)

    assert [r["source"] for r in records] == ["A", "E"]


def test_parse_csv_malformed_row_does_not_swallow_next_row():
    text = "source,target,value\nonly-one-field\nA,B,1\n"
    assert parse_csv(text) == [{"source": "A", "target": "B", "value": "1"}]


def test_parse_csv_handles_crlf_and_blank_lines():
    text = "source,target,value\r\nA,B,1\r\n\r\n\nC,D,2\r\n"
    records = parse_csv(text)

    assert records == [
        {"source": "A", "target": "B", "value": "1"},
        {"source": "C", "target": "D", "value": "2"},
    ]


def test_parse_csv_header_only_or_empty():
    assert parse_csv("") == []
    assert parse_csv("source,target,value") == []


def test_parse_csv_unterminated_quote_never_emits():
    text = 'source,target,value\nA,B,1\n"open,C,2\n'
    assert parse_csv(text) == [{"source": "A", "target": "B", "value": "1"}]


# ----------------------------
# Edges
# ----------------------------

@pytest.mark.parametrize(
    "raw,expected",
    [("1.5", 1.5), (" 2 ", 2.0), ("abc", 0.0), ("", 0.0), (None, 0.0), ("nan", 0.0), ("-3", 0.0), ("inf", 0.0)],
)
def test_parse_weight(raw, expected):
    assert parse_weight(raw) == expected


def test_parse_edge_trims_names():
    assert parse_edge({"source": " A ", "target": "B ", "value": "0.3"}) == Edge("A", "B", 0.3)


@pytest.mark.parametrize(
    "record",
    [
        {"source": "", "target": "B", "value": "1"},
        {"source": "A", "target": "  ", "value": "1"},
        {"source": "A", "target": "A", "value": "1"},
        {"target": "B", "value": "1"},
    ],
)
def test_parse_edge_skips_unusable_rows(record):
    assert parse_edge(record) is None


# ----------------------------
# Graph construction
# ----------------------------

def test_parallel_edges_keep_max_weight():
    state = load_graph(make_table([("a", "b", 0.2), ("a", "b", 0.9), ("a", "b", 0.4)]))

    assert state.forward["a"]["b"]["weight"] == 0.9
    assert state.reverse["b"]["a"]["weight"] == 0.9
    assert state.forward.number_of_edges() == 1


def test_self_loops_never_enter_graphs():
    state = load_graph(make_table([("a", "a", 5.0), ("a", "b", 1.0)]))

    assert not state.forward.has_edge("a", "a")
    assert not state.reverse.has_edge("a", "a")
    assert state.universe == ("a", "b")


def test_self_loop_only_name_is_not_in_universe():
    state = load_graph(make_table([("solo", "solo", 1.0), ("a", "b", 1.0)]))
    assert "solo" not in state.universe


def test_reverse_graph_mirrors_forward():
    state = load_graph(make_table([("a", "b", 1.0), ("c", "b", 2.0)]))

    assert dict(state.reverse.adj["b"]) == {"a": {"weight": 1.0}, "c": {"weight": 2.0}}
    assert not state.reverse.adj["a"]


def test_universe_closure_and_order():
    state = load_graph(make_table([("X", "Y", 1), ("Y", "Z", 1), ("W", "X", 1)]))

    assert state.universe == ("X", "Y", "Z", "W")
    for G in (state.forward, state.reverse):
        assert set(G.nodes) <= set(state.universe)


def test_malformed_row_not_partially_loaded():
    text = "source,target,value\nA,B,1\nC,D\nE,F,2\n"
    state = load_graph(text)

    assert "C" not in state.universe
    assert "D" not in state.universe
    assert len(state.records) == 2


def test_reparsing_is_idempotent(full_table):
    first = load_graph(full_table)
    second = load_graph(full_table)

    assert nx.to_dict_of_dicts(first.forward) == nx.to_dict_of_dicts(second.forward)
    assert nx.to_dict_of_dicts(first.reverse) == nx.to_dict_of_dicts(second.reverse)
    assert first.universe == second.universe


def test_records_keep_metadata_columns(full_table):
    state = load_graph(full_table)

    assert state.records[0]["s_artist"] == "Band One"
    assert state.records[0]["s_tags"] == "[('rock', 10)]"
    assert state.records[-1]["s_attribute"] == "artist"


def test_build_graph_state_from_edges():
    state = build_graph_state([Edge("a", "b", 1.0), Edge("b", "c", 0.0)])

    assert state.forward["b"]["c"]["weight"] == 0.0
    assert state.records == ()


def test_records_frame(full_table):
    df = records_frame(load_graph(full_table))

    assert len(df) == 5
    assert {"source", "target", "value", "s_artist"} <= set(df.columns)


def test_records_frame_empty():
    df = records_frame(load_graph(""))
    assert list(df.columns) == ["source", "target", "value"]
    assert df.empty


def test_load_graph_file(tmp_path, full_table):
    path = tmp_path / "subgraph.csv"
    path.write_text(full_table, encoding="utf-8")

    state = load_graph_file(str(path))
    assert state.forward["Song A"]["Song B"]["weight"] == 0.9


def test_load_graph_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_graph_file(str(tmp_path / "nope.csv"))
