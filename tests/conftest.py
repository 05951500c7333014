"""
Shared fixtures for diffgraph tests.
"""
import io

import pytest

from diffgraph.data_processing import annotate_trace, parse_lines


def full_node(node_id, label, abserr, relerr, addr="400", disas="add", func="f", src="a.c:1"):
    return (
        f'{node_id} [label="{label} abserr={abserr} relerr={relerr} addr={addr} '
        f"disas='{disas}' func='{func}' src={src}\"];"
    )


def minimal_node(node_id, label, abserr, relerr):
    return f'{node_id} [label="{label} abserr={abserr} relerr={relerr}"];'


@pytest.fixture
def annotate():
    """Parse a block of DOT text and run it through the whole annotation pipeline."""

    def _annotate(text):
        return annotate_trace(parse_lines(io.StringIO(text)))

    return _annotate


@pytest.fixture
def example_trace_text():
    """The two-node trace: one exact node feeding one node with full error."""
    return "\n".join(
        [
            "digraph trace {",
            '0 [label="x" abserr=0.0 relerr=0.0];',
            '1 [label="y" abserr=0.0 relerr=1.0];',
            "0 -> 1;",
            "}",
            "",
        ]
    )


@pytest.fixture
def collapsible_trace_text():
    """Two zero-error nodes in `f` (0 -> 1) fed by node 2 of `g`."""
    return "\n".join(
        [
            full_node(0, "a", 0.0, 0.0, addr="400", disas="add", func="f", src="a.c:1"),
            full_node(1, "b", 0.0, 0.0, addr="404", disas="sub", func="f", src="a.c:2"),
            full_node(2, "c", 0.5, 1.0, addr="408", disas="mul", func="g", src="a.c:3"),
            "2 -> 0;",
            "0 -> 1;",
            "",
        ]
    )
