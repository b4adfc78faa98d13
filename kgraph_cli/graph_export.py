"""Graph export helpers for DOT and JSON snapshot outputs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .models import Edge, GraphSnapshot, Node


def export_dot(snapshot: GraphSnapshot, output_file: Path, focus: str = "") -> None:
    nodes, edges = _focused_subgraph(snapshot, focus)

    lines = ["digraph KnowledgeGraph {"]
    lines.append("  rankdir=LR;")

    for node in nodes:
        label = f"{node.node_type.value}\\n{node.title}"
        lines.append(f'  "{_esc(node.node_id)}" [label="{_esc(label)}"];')

    for edge in edges:
        style = "" if edge.is_hierarchical else ", style=dashed"
        lines.append(
            f'  "{_esc(edge.from_id)}" -> "{_esc(edge.to_id)}" '
            f'[label="{edge.relation.value}"{style}];'
        )

    lines.append("}")
    output_file.write_text("\n".join(lines), encoding="utf-8")


def snapshot_payload(snapshot: GraphSnapshot, focus: str = "") -> Dict[str, Any]:
    """Snapshot as a document that the ``file`` source reads back."""
    nodes, edges = _focused_subgraph(snapshot, focus)
    return {
        "nodes": [_node_record(node) for node in nodes],
        "edges": [
            {"from_id": e.from_id, "to_id": e.to_id, "relation": e.relation.value}
            for e in edges
        ],
    }


def export_json(snapshot: GraphSnapshot, output_file: Path, focus: str = "") -> None:
    payload = snapshot_payload(snapshot, focus)
    output_file.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _node_record(node: Node) -> Dict[str, Any]:
    data: Dict[str, Any] = {"title": node.title}
    for key in ("status", "description", "project", "url", "identifier"):
        value = getattr(node, key)
        if value:
            data[key] = value
    if node.priority:
        data["priority"] = node.priority
    if node.labels:
        data["labels"] = list(node.labels)
    record: Dict[str, Any] = {"id": node.node_id, "type": node.node_type.value, "data": data}
    if node.source:
        record["source"] = node.source
    return record


def _focused_subgraph(snapshot: GraphSnapshot, focus: str) -> Tuple[List[Node], List[Edge]]:
    """Nodes matching *focus* plus their direct neighbours; everything if none match."""
    nodes = snapshot.node_map()
    edges = [e for e in snapshot.edges if e.from_id in nodes and e.to_id in nodes]
    if not focus:
        return list(nodes.values()), edges

    needle = focus.lower()
    focus_ids = {
        node_id
        for node_id, node in nodes.items()
        if needle in node_id.lower() or needle in node.title.lower()
    }
    if not focus_ids:
        return list(nodes.values()), edges

    edge_subset = [e for e in edges if e.from_id in focus_ids or e.to_id in focus_ids]
    keep = set(focus_ids)
    for e in edge_subset:
        keep.add(e.from_id)
        keep.add(e.to_id)
    return [node for node_id, node in nodes.items() if node_id in keep], edge_subset


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
