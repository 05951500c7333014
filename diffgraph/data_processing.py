"""Trace parsing, graph assembly, error normalization and clustering."""

from __future__ import annotations

import logging
import math
import re
import sys
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, TextIO, Tuple

import networkx as nx
import numpy as np

from diffgraph.config import CHANNEL_MAX
from diffgraph.models import (
    Cluster,
    DiffNode,
    EdgeRecord,
    IgnoredLine,
    NodeFull,
    NodeMinimal,
    ParseEvent,
    ParseFailure,
)
from diffgraph.utils import clamp_channel, profile_time, round_half_away

# The label attribute closes either at the end of the record or right after
# the label token (label="add" abserr=...).
_NODE_FULL_RE = re.compile(
    r"^(\d+) \[label=\"([^ \"]*)\"? abserr=([^ ]*) relerr=([^ ]*) addr=([0-9a-f]*) "
    r"disas='([^']*)' func='([^']*)' src=([^ \"]*)\"?\];$",
    re.ASCII,
)
_NODE_MINIMAL_RE = re.compile(
    r"^(\d+) \[label=\"([^ \"]*)\"? abserr=([^ ]*) relerr=([^ \"]*)\"?\];$",
    re.ASCII,
)
_EDGE_RE = re.compile(r"^(\d+) -> (\d+);$", re.ASCII)
_FLOAT_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)

STDIN_NAME = "<stdin>"


class GraphParseError(ValueError):
    def __init__(self, failure: ParseFailure) -> None:
        super().__init__(failure.describe())
        self.failure = failure


# ------------------------------
# Line parser
# ------------------------------


def _parse_float(text: str) -> Optional[float]:
    if not _FLOAT_RE.match(text):
        return None
    value = float(text)
    # Overflowing exponents such as 1e999 come back as inf.
    if not math.isfinite(value):
        return None
    return value


def _parse_errors(
    lineno: int, source: str, abserr_text: str, relerr_text: str
) -> Tuple[Optional[float], Optional[float], Optional[ParseFailure]]:
    abserr = _parse_float(abserr_text)
    if abserr is None:
        return None, None, ParseFailure(lineno, source, "abserr", abserr_text)
    relerr = _parse_float(relerr_text)
    if relerr is None:
        return None, None, ParseFailure(lineno, source, "relerr", relerr_text)
    return abserr, relerr, None


def parse_line(line: str, lineno: int = 0, source: str = STDIN_NAME) -> ParseEvent:
    """Classify one line of diff-tool DOT output.

    Lines matching neither node template nor the edge template come back as
    ``IgnoredLine``; a node line whose error fields are not numbers comes back
    as ``ParseFailure``.
    """
    line = line.rstrip("\r\n")

    match = _NODE_FULL_RE.match(line)
    if match:
        abserr, relerr, failure = _parse_errors(lineno, source, match.group(3), match.group(4))
        if failure:
            return failure
        return NodeFull(
            lineno,
            int(match.group(1)),
            match.group(2),
            abserr,
            relerr,
            addr=match.group(5),
            disas=match.group(6),
            func=match.group(7),
            src=match.group(8),
        )

    match = _NODE_MINIMAL_RE.match(line)
    if match:
        abserr, relerr, failure = _parse_errors(lineno, source, match.group(3), match.group(4))
        if failure:
            return failure
        return NodeMinimal(lineno, int(match.group(1)), match.group(2), abserr, relerr)

    match = _EDGE_RE.match(line)
    if match:
        return EdgeRecord(lineno, int(match.group(1)), int(match.group(2)))

    return IgnoredLine(lineno)


def parse_lines(lines: Iterable[str], source: str = STDIN_NAME) -> Iterator[ParseEvent]:
    for lineno, line in enumerate(lines, start=1):
        yield parse_line(line, lineno, source)


def read_events(paths: Sequence[str], stdin: Optional[TextIO] = None) -> Iterator[ParseEvent]:
    """Parse each input in turn, as one concatenated stream; ``-`` is stdin."""
    for path in paths or ["-"]:
        if path == "-":
            yield from parse_lines(stdin or sys.stdin, STDIN_NAME)
            continue
        with open(path, "r", encoding="utf-8") as handle:
            yield from parse_lines(handle, path)


# ------------------------------
# Graph store
# ------------------------------


class TraceGraph:
    """Nodes keyed by id; edges are wired through a networkx DiGraph.

    Edges are buffered until ``wire_edges`` so that node definitions alone
    decide iteration order. An edge may name an id that was never defined;
    the DiGraph keeps such ids as bare vertices without a ``record``.
    """

    def __init__(self) -> None:
        self._digraph = nx.DiGraph()
        self._pending_edges: List[Tuple[int, int]] = []

    def __iter__(self) -> Iterator[DiffNode]:
        for _, record in self._digraph.nodes(data="record"):
            if record is not None:
                yield record

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __contains__(self, node_id: int) -> bool:
        return self.get(node_id) is not None

    def get(self, node_id: int) -> Optional[DiffNode]:
        if node_id not in self._digraph:
            return None
        return self._digraph.nodes[node_id].get("record")

    def add_node(self, node: DiffNode) -> None:
        if node.id in self:
            logging.debug("Node %s redefined; keeping the later definition", node.id)
        self._digraph.add_node(node.id, record=node)

    def add_edge(self, src: int, dst: int) -> None:
        self._pending_edges.append((src, dst))

    def wire_edges(self) -> int:
        """Deduplicate buffered edges and fill every node's adjacency lists."""
        unique = list(dict.fromkeys(self._pending_edges))
        logging.debug(
            "Wiring %d edge(s), %d duplicate(s) dropped",
            len(unique),
            len(self._pending_edges) - len(unique),
        )
        self._pending_edges = []
        self._digraph.add_edges_from(unique)
        for node in self:
            node.outgoing = list(self._digraph.successors(node.id))
            node.incoming = list(self._digraph.predecessors(node.id))
        return len(unique)

    def remove_isolated(self) -> List[int]:
        isolated = list(nx.isolates(self._digraph))
        self._digraph.remove_nodes_from(isolated)
        return isolated

    def max_referenced_id(self) -> int:
        """Largest id among defined nodes and edge endpoints, -1 when empty."""
        return max(self._digraph.nodes, default=-1)


@profile_time
def build_graph(events: Iterable[ParseEvent]) -> TraceGraph:
    """Assemble a wired graph store; raises GraphParseError on the first malformed line."""
    graph = TraceGraph()
    ignored = 0
    for event in events:
        if isinstance(event, ParseFailure):
            raise GraphParseError(event)
        if isinstance(event, (NodeFull, NodeMinimal)):
            graph.add_node(event.to_node())
        elif isinstance(event, EdgeRecord):
            graph.add_edge(event.src, event.dst)
        else:
            ignored += 1
    logging.debug("Ignored %d unrecognized line(s)", ignored)
    graph.wire_edges()
    return graph


def remove_isolated_nodes(graph: TraceGraph) -> List[int]:
    removed = graph.remove_isolated()
    if removed:
        logging.debug("Removed %d isolated node(s): %s", len(removed), removed)
    return removed


# ------------------------------
# Error normalization and coloring
# ------------------------------


def compute_color_factor(nodes: Sequence[DiffNode]) -> float:
    """Scale that maps the largest transformed relative error to full intensity."""
    errors = np.fromiter((node.relerr for node in nodes), dtype=float, count=len(nodes))
    max_error = max(0.0, float(errors.max())) if errors.size else 0.0
    logging.debug("Maximum transformed relative error: %s", max_error)
    if max_error == 0:
        return 0.0
    return CHANNEL_MAX / max_error


def color_nodes(nodes: Sequence[DiffNode], factor: float) -> None:
    if not nodes:
        return
    errors = np.array([node.relerr for node in nodes], dtype=float)
    colors = clamp_channel(CHANNEL_MAX - round_half_away(errors * factor))
    for node, color in zip(nodes, colors):
        node.color = int(color)


def build_clusters(nodes: Iterable[DiffNode]) -> Dict[str, Cluster]:
    clusters: Dict[str, Cluster] = {}
    for node in nodes:
        cluster = clusters.get(node.func)
        if cluster is None:
            clusters[node.func] = Cluster.from_node(node)
        else:
            cluster.add(node)
    logging.debug("Grouped nodes into %d function cluster(s)", len(clusters))
    return clusters


def color_clusters(clusters: Iterable[Cluster], factor: float) -> None:
    for cluster in clusters:
        cluster.color = int(clamp_channel(round_half_away(cluster.relerr * factor)))


# ------------------------------
# Pipeline
# ------------------------------


@dataclass
class AnnotatedTrace:
    graph: TraceGraph
    clusters: Dict[str, Cluster]
    factor: float

    @property
    def nodes(self) -> List[DiffNode]:
        return list(self.graph)


@profile_time
def annotate_trace(events: Iterable[ParseEvent]) -> AnnotatedTrace:
    """Run parse events through assembly, filtering, coloring and clustering."""
    graph = build_graph(events)
    remove_isolated_nodes(graph)
    nodes = list(graph)
    factor = compute_color_factor(nodes)
    color_nodes(nodes, factor)
    clusters = build_clusters(nodes)
    color_clusters(clusters.values(), factor)
    logging.info("Annotated %d node(s) in %d cluster(s)", len(nodes), len(clusters))
    return AnnotatedTrace(graph=graph, clusters=clusters, factor=factor)
