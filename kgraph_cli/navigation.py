"""Focus movement over the forest and the relationships list.

Horizontal moves follow hierarchical edges; vertical moves walk the
flattened tree order. Every function returns the new focus, or the
current one when the move has no target.
"""

from __future__ import annotations

from typing import AbstractSet, List, Optional, Sequence, Tuple

from .models import Edge, Forest, Node, RelationItem
from .tree import flatten


def move_left(focus_id: Optional[str], forest: Forest, edges: Sequence[Edge]) -> Optional[str]:
    """Focus the first hierarchical parent still present in the forest."""
    if focus_id is None:
        return None
    for edge in edges:
        if edge.is_hierarchical and edge.to_id == focus_id and edge.from_id in forest.nodes:
            return edge.from_id
    return focus_id


def move_right(
    focus_id: Optional[str],
    forest: Forest,
    edges: Sequence[Edge],
    collapsed: AbstractSet[str] = frozenset(),
) -> Optional[str]:
    """Focus the first hierarchical child still present in the forest.

    A collapsed node keeps focus, since its children are not on screen.
    """
    if focus_id is None or focus_id in collapsed:
        return focus_id
    for edge in edges:
        if edge.is_hierarchical and edge.from_id == focus_id and edge.to_id in forest.nodes:
            return edge.to_id
    return focus_id


def move_down(
    focus_id: Optional[str], forest: Forest, collapsed: AbstractSet[str] = frozenset()
) -> Optional[str]:
    return _step(focus_id, flatten(forest, collapsed), 1)


def move_up(
    focus_id: Optional[str], forest: Forest, collapsed: AbstractSet[str] = frozenset()
) -> Optional[str]:
    return _step(focus_id, flatten(forest, collapsed), -1)


def _step(focus_id: Optional[str], order: Tuple[str, ...], delta: int) -> Optional[str]:
    if not order:
        return focus_id
    if focus_id not in order:
        return order[0] if delta > 0 else order[-1]
    return order[(order.index(focus_id) + delta) % len(order)]


# ------------------------------------------------------------------
# Relationships list
# ------------------------------------------------------------------

def relations_for(
    focus_id: Optional[str],
    forest: Forest,
    edges: Sequence[Edge],
) -> Tuple[RelationItem, ...]:
    """Outgoing relations of *focus_id* first, then incoming ones, in edge order.

    Edges whose other endpoint is not in the forest are left out.
    """
    if focus_id is None:
        return ()
    outgoing: List[RelationItem] = []
    incoming: List[RelationItem] = []
    for edge in edges:
        if edge.from_id == focus_id:
            item = _relation_item(forest.get(edge.to_id), edge, outgoing=True)
            if item is not None:
                outgoing.append(item)
        elif edge.to_id == focus_id:
            item = _relation_item(forest.get(edge.from_id), edge, outgoing=False)
            if item is not None:
                incoming.append(item)
    return tuple(outgoing + incoming)


def _relation_item(other: Optional[Node], edge: Edge, outgoing: bool) -> Optional[RelationItem]:
    if other is None:
        return None
    return RelationItem(
        node_id=other.node_id,
        title=other.title,
        node_type=other.node_type,
        relation=edge.relation,
        outgoing=outgoing,
    )


def clamp_selection(index: int, count: int) -> int:
    if count <= 0:
        return 0
    return min(max(0, index), count - 1)


def move_relation(index: int, count: int, delta: int) -> int:
    """Move the relationships selection by *delta* with wraparound."""
    if count <= 0:
        return 0
    return (clamp_selection(index, count) + delta) % count


def commit_relation(
    focus_id: Optional[str], items: Sequence[RelationItem], index: int
) -> Optional[str]:
    """Node id the selected relation points at, or the current focus if none."""
    if not items:
        return focus_id
    return items[clamp_selection(index, len(items))].node_id
