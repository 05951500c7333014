"""DOT generation for annotated traces."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set

from diffgraph.config import CHANNEL_MAX, CLUSTER_PEN_WIDTH, GRAPH_NAME, LabelSource, RenderConfig
from diffgraph.data_processing import AnnotatedTrace
from diffgraph.models import Cluster, DiffNode
from diffgraph.utils import (
    cluster_pen_color,
    dot_cluster_id,
    dot_escape,
    format_float,
    node_fill_color,
    profile_time,
)


def _label_text(node: DiffNode, config: RenderConfig) -> str:
    text = node.label
    if config.label_source is LabelSource.DISAS and node.disas:
        text = node.disas
    if config.verbose:
        text += (
            f" abserr={format_float(node.abserr)} relerr={format_float(node.display_relerr)}"
            f" addr={node.addr} disas='{node.disas}' func='{node.func}' src={node.src}"
        )
    return text


def _node_record(node: DiffNode, config: RenderConfig) -> str:
    label = dot_escape(_label_text(node, config))
    return f'{node.id} [label="{label}" style=filled fillcolor="{node_fill_color(node.color)}"];'


def _edge_records(
    src: int, targets: Iterable[int], alias: Dict[int, int], collapsed: bool = False
) -> List[str]:
    """Edges from ``src``, with collapsed members replaced by their box node.

    When ``collapsed`` is set, edges that land back on ``src`` are internal to
    its cluster and are dropped. Repeats produced by the rewiring are emitted
    once.
    """
    lines: List[str] = []
    seen: Set[int] = set()
    for dst in targets:
        dst = alias.get(dst, dst)
        if dst in seen or (collapsed and dst == src):
            continue
        seen.add(dst)
        lines.append(f"{src} -> {dst};")
    return lines


def _cluster_block(cluster: Cluster, config: RenderConfig, alias: Dict[int, int]) -> List[str]:
    label = dot_escape(f"function:{cluster.name} relerr:{format_float(cluster.display_relerr)}")
    lines = [
        f"subgraph {dot_cluster_id(cluster.name)}{{",
        f"penwidth={CLUSTER_PEN_WIDTH}",
        f'color="{cluster_pen_color(cluster.color)}"',
        f'label="{label}"',
    ]
    lines.extend(f"{node_id};" for node_id in cluster.node_ids)
    for node in cluster.nodes:
        lines.append(_node_record(node, config))
        lines.extend(_edge_records(node.id, node.outgoing, alias))
    lines.append("}")
    return lines


def _collapsed_block(cluster: Cluster, box_id: int, alias: Dict[int, int]) -> List[str]:
    label = dot_escape(f"function:{cluster.name} nodes:{len(cluster.nodes)}")
    # Only zero-error clusters collapse, so the box is always unshaded.
    lines = [f'{box_id} [label="{label}" shape=box style=filled fillcolor="{node_fill_color(CHANNEL_MAX)}"];']
    targets = [dst for node in cluster.nodes for dst in node.outgoing]
    lines.extend(_edge_records(box_id, targets, alias, collapsed=True))
    return lines


def plan_collapse(trace: AnnotatedTrace, config: RenderConfig) -> Dict[str, int]:
    """Assign a fresh node id to every cluster that collapses into a box."""
    if not config.collapse:
        return {}
    next_id = trace.graph.max_referenced_id() + 1
    boxes: Dict[str, int] = {}
    for name, cluster in trace.clusters.items():
        if cluster.relerr == 0:
            boxes[name] = next_id
            next_id += 1
    logging.debug("Collapsing %d zero-error cluster(s)", len(boxes))
    return boxes


@profile_time
def render_dot(trace: AnnotatedTrace, config: RenderConfig) -> str:
    boxes = plan_collapse(trace, config)
    alias: Dict[int, int] = {}
    for name, box_id in boxes.items():
        for node_id in trace.clusters[name].node_ids:
            alias[node_id] = box_id

    lines = [f"digraph {GRAPH_NAME} {{", f"fontsize={config.font_size}"]
    for name, cluster in trace.clusters.items():
        if name in boxes:
            lines.extend(_collapsed_block(cluster, boxes[name], alias))
        else:
            lines.extend(_cluster_block(cluster, config, alias))
    lines.append("}")
    return "\n".join(lines) + "\n"
