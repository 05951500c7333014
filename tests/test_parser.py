import io

import pytest

from diffgraph.data_processing import parse_line, parse_lines, read_events
from diffgraph.models import EdgeRecord, IgnoredLine, NodeFull, NodeMinimal, ParseFailure

from conftest import full_node, minimal_node


def test_parse_full_node_line():
    line = (
        "12 [label=\"mul abserr=1.5e-08 relerr=3.2e-05 addr=4005d6 "
        "disas='mulsd xmm0, xmm1' func='compute' src=main.c:42\"];\n"
    )
    event = parse_line(line, lineno=3, source="trace.dot")

    assert isinstance(event, NodeFull)
    assert event.id == 12
    assert event.label == "mul"
    assert event.abserr == pytest.approx(1.5e-08)
    assert event.relerr == pytest.approx(3.2e-05)
    assert event.addr == "4005d6"
    assert event.disas == "mulsd xmm0, xmm1"
    assert event.func == "compute"
    assert event.src == "main.c:42"
    assert event.lineno == 3


def test_parse_minimal_node_line():
    event = parse_line(minimal_node(7, "add", "0.25", "1e-3"))

    assert isinstance(event, NodeMinimal)
    assert (event.id, event.label) == (7, "add")
    assert event.abserr == 0.25
    assert event.relerr == pytest.approx(0.001)


def test_parse_label_quoted_on_its_own():
    event = parse_line('0 [label="x" abserr=0.0 relerr=1.0];')

    assert isinstance(event, NodeMinimal)
    assert event.label == "x"
    assert event.relerr == 1.0


def test_parse_edge_line():
    event = parse_line("3 -> 14;\r\n", lineno=9)

    assert event == EdgeRecord(lineno=9, src=3, dst=14)


@pytest.mark.parametrize(
    "line",
    [
        "digraph trace {",
        "}",
        "",
        "node [shape=box];",
        "  3 -> 4;",
        "3 -> 4",
        "a -> b;",
        # uppercase hex is not a valid address, and the line is too long for the minimal form
        full_node(1, "add", 0.0, 0.0, addr="40ABCD"),
    ],
)
def test_unrecognized_lines_are_ignored(line):
    assert isinstance(parse_line(line, lineno=5), IgnoredLine)


@pytest.mark.parametrize(
    "line, field, text",
    [
        (minimal_node(1, "add", "abc", "0.1"), "abserr", "abc"),
        (minimal_node(1, "add", "0.1", "nan"), "relerr", "nan"),
        (minimal_node(1, "add", "0.1", "inf"), "relerr", "inf"),
        (minimal_node(1, "add", "0.1", "1_0"), "relerr", "1_0"),
        (minimal_node(1, "add", "0.1", "1e999"), "relerr", "1e999"),
        (minimal_node(1, "add", "-1e400", "0.1"), "abserr", "-1e400"),
        (full_node(1, "add", "0.0", "1e999"), "relerr", "1e999"),
        (full_node(1, "add", "0.0", "0.1.2"), "relerr", "0.1.2"),
    ],
)
def test_malformed_numbers_are_reported(line, field, text):
    event = parse_line(line, lineno=2, source="bad.dot")

    assert isinstance(event, ParseFailure)
    assert event.field == field
    assert event.text == text
    assert event.describe() == f"bad.dot:2: malformed {field} value {text!r}"


def test_parse_lines_numbers_from_one():
    events = list(parse_lines(io.StringIO("digraph trace {\n0 -> 1;\n}\n")))

    assert [event.lineno for event in events] == [1, 2, 3]
    assert isinstance(events[1], EdgeRecord)


def test_read_events_concatenates_files(tmp_path):
    first = tmp_path / "first.dot"
    second = tmp_path / "second.dot"
    first.write_text(minimal_node(0, "x", 0.0, 0.0) + "\n")
    second.write_text("0 -> 1;\n" + minimal_node(1, "y", 0.0, 0.5) + "\n")

    events = list(read_events([str(first), str(second)]))

    assert [type(event) for event in events] == [NodeMinimal, EdgeRecord, NodeMinimal]
    assert [event.lineno for event in events] == [1, 1, 2]


def test_read_events_uses_stdin_for_dash_and_no_paths():
    stdin = io.StringIO("0 -> 1;\n")
    assert list(read_events([], stdin=stdin)) == [EdgeRecord(1, 0, 1)]

    stdin = io.StringIO("0 -> 1;\n")
    assert list(read_events(["-"], stdin=stdin)) == [EdgeRecord(1, 0, 1)]
