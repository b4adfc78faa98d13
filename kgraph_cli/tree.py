"""Collapse a filtered node/edge collection into an ordered forest."""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Sequence, Set, Tuple

from .models import Edge, Forest, Node, NodeType, StatusKind

_TYPE_PRIORITY: Dict[NodeType, int] = {
    NodeType.SERVICE: 0,
    NodeType.PROJECT: 1,
    NodeType.ISSUE: 2,
    NodeType.PR: 3,
    NodeType.COMMIT: 4,
    NodeType.FILE: 5,
}

# Live work first, then upcoming, completed, blocked.
_STATUS_PRIORITY: Dict[StatusKind, int] = {
    StatusKind.ACTIVE: 0,
    StatusKind.DONE: 2,
    StatusKind.BLOCKED: 3,
}


def type_priority(node_type: NodeType) -> int:
    return _TYPE_PRIORITY.get(node_type, 99)


def status_priority(kind: StatusKind) -> int:
    return _STATUS_PRIORITY.get(kind, 1)


def root_sort_key(node: Node) -> Tuple[int, str, str]:
    return (type_priority(node.node_type), node.title, node.node_id)


def child_sort_key(node: Node) -> Tuple[int, int, str, str]:
    return (
        type_priority(node.node_type),
        status_priority(node.status_kind),
        node.title,
        node.node_id,
    )


def build_forest(nodes: Sequence[Node], edges: Iterable[Edge]) -> Forest:
    """Build the ordered forest for already-filtered nodes and edges.

    Only hierarchical edges whose endpoints are both present contribute.
    A node with several hierarchical parents is listed under each of them.
    Nodes that sit on a hierarchical cycle unreachable from any root are
    reached through ``Forest.detached`` entry points, picked in root order.
    """
    node_map: Dict[str, Node] = {}
    for node in nodes:
        node_map.setdefault(node.node_id, node)

    children: Dict[str, List[str]] = {}
    parented: Set[str] = set()
    seen_pairs: Set[Tuple[str, str]] = set()
    for edge in edges:
        if not edge.is_hierarchical:
            continue
        if edge.from_id not in node_map or edge.to_id not in node_map:
            continue
        pair = (edge.from_id, edge.to_id)
        if pair in seen_pairs:
            continue
        seen_pairs.add(pair)
        children.setdefault(edge.from_id, []).append(edge.to_id)
        parented.add(edge.to_id)

    sorted_children = {
        parent: tuple(sorted(kids, key=lambda nid: child_sort_key(node_map[nid])))
        for parent, kids in children.items()
    }

    roots = tuple(
        sorted(
            (nid for nid in node_map if nid not in parented),
            key=lambda nid: root_sort_key(node_map[nid]),
        )
    )

    reached = _reachable(roots, sorted_children)
    detached: List[str] = []
    if len(reached) < len(node_map):
        leftovers = sorted(
            (nid for nid in node_map if nid not in reached),
            key=lambda nid: root_sort_key(node_map[nid]),
        )
        for nid in leftovers:
            if nid in reached:
                continue
            detached.append(nid)
            reached |= _reachable((nid,), sorted_children)

    return Forest(
        roots=roots,
        children=sorted_children,
        nodes=node_map,
        detached=tuple(detached),
    )


def _reachable(starts: Iterable[str], children: Dict[str, Tuple[str, ...]]) -> Set[str]:
    seen: Set[str] = set()
    stack = list(starts)
    while stack:
        nid = stack.pop()
        if nid in seen:
            continue
        seen.add(nid)
        stack.extend(children.get(nid, ()))
    return seen


def flatten(forest: Forest, collapsed: AbstractSet[str] = frozenset()) -> Tuple[str, ...]:
    """Depth-first preorder of the visible nodes, each id listed once.

    Descendants of collapsed nodes are omitted. This is the order the
    up/down keys walk through.
    """
    order: List[str] = []
    seen: Set[str] = set()
    stack = list(reversed(forest.top_level))
    while stack:
        nid = stack.pop()
        if nid in seen:
            continue
        seen.add(nid)
        order.append(nid)
        if nid in collapsed:
            continue
        stack.extend(reversed(forest.children_of(nid)))
    return tuple(order)
