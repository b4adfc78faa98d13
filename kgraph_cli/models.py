"""Core data models shared by sources, the tree builder and the navigator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple


class NodeType(str, Enum):
    PROJECT = "Project"
    ISSUE = "Issue"
    PR = "PR"
    COMMIT = "Commit"
    FILE = "File"
    SERVICE = "Service"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Any) -> "NodeType":
        """Map a free-text type name onto the enum, case-insensitively."""
        if isinstance(raw, NodeType):
            return raw
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        if text in ("pull_request", "pullrequest", "pull request"):
            return cls.PR
        return cls.UNKNOWN


class Relation(str, Enum):
    OWNS = "owns"
    IMPLEMENTS = "implements"
    MODIFIES = "modifies"
    BLOCKS = "blocks"
    RELATED = "related"
    CALLS = "calls"
    MENTIONS = "mentions"
    PARENT_OF = "parent_of"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "Relation":
        if isinstance(raw, Relation):
            return raw
        text = str(raw or "").strip().lower().replace("-", "_")
        if text == "parentof":
            return cls.PARENT_OF
        for member in cls:
            if member.value == text:
                return member
        return cls.UNKNOWN

    @property
    def is_hierarchical(self) -> bool:
        return self in HIERARCHICAL_RELATIONS


HIERARCHICAL_RELATIONS: FrozenSet[Relation] = frozenset(
    {Relation.OWNS, Relation.IMPLEMENTS, Relation.MODIFIES}
)


class StatusKind(str, Enum):
    """Normalized status bucket derived once from the raw status text."""

    ACTIVE = "active"
    OPEN = "open"
    BACKLOG = "backlog"
    DRAFT = "draft"
    DONE = "done"
    BLOCKED = "blocked"
    NONE = "none"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "StatusKind":
        text = str(raw or "").strip().lower()
        if not text:
            return cls.NONE
        return _STATUS_ALIASES.get(text, cls.UNKNOWN)


_STATUS_ALIASES: Dict[str, StatusKind] = {
    "in progress": StatusKind.ACTIVE,
    "in_progress": StatusKind.ACTIVE,
    "started": StatusKind.ACTIVE,
    "in review": StatusKind.ACTIVE,
    "open": StatusKind.OPEN,
    "backlog": StatusKind.BACKLOG,
    "todo": StatusKind.BACKLOG,
    "pending": StatusKind.BACKLOG,
    "triage": StatusKind.BACKLOG,
    "draft": StatusKind.DRAFT,
    "done": StatusKind.DONE,
    "completed": StatusKind.DONE,
    "merged": StatusKind.DONE,
    "closed": StatusKind.DONE,
    "blocked": StatusKind.BLOCKED,
    "canceled": StatusKind.BLOCKED,
    "cancelled": StatusKind.BLOCKED,
}


@dataclass(frozen=True)
class Node:
    node_id: str
    node_type: NodeType
    title: str
    description: str = ""
    status: str = ""
    status_kind: StatusKind = StatusKind.NONE
    priority: int = 0
    labels: Tuple[str, ...] = ()
    project: str = ""
    url: str = ""
    identifier: str = ""
    source: str = ""

    @classmethod
    def create(
        cls,
        node_id: str,
        node_type: Any,
        title: str = "",
        status: str = "",
        **kwargs: Any,
    ) -> "Node":
        """Build a node from loosely typed values, normalizing type and status."""
        labels = kwargs.pop("labels", ()) or ()
        return cls(
            node_id=node_id,
            node_type=NodeType.parse(node_type),
            title=title or node_id,
            status=status or "",
            status_kind=StatusKind.parse(status),
            labels=tuple(dict.fromkeys(str(label) for label in labels)),
            **kwargs,
        )

    @property
    def is_structural(self) -> bool:
        """Projects and services anchor the tree and ignore status filtering."""
        return self.node_type in (NodeType.PROJECT, NodeType.SERVICE)


@dataclass(frozen=True)
class Edge:
    from_id: str
    to_id: str
    relation: Relation

    @classmethod
    def create(cls, from_id: str, to_id: str, relation: Any) -> "Edge":
        return cls(from_id=from_id, to_id=to_id, relation=Relation.parse(relation))

    @property
    def is_hierarchical(self) -> bool:
        return self.relation.is_hierarchical


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable node/edge collection delivered wholesale on load or refresh."""

    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()

    def node_map(self) -> Dict[str, Node]:
        return {node.node_id: node for node in self.nodes}

    def merged(self, other: "GraphSnapshot") -> "GraphSnapshot":
        """Concatenate two snapshots; the first occurrence of a node id wins."""
        seen = {node.node_id for node in self.nodes}
        extra = tuple(n for n in other.nodes if n.node_id not in seen)
        return GraphSnapshot(nodes=self.nodes + extra, edges=self.edges + other.edges)


@dataclass(frozen=True)
class Forest:
    """Ordered roots plus ordered children derived from filtered nodes/edges.

    ``detached`` holds entry points into hierarchical cycles that no root
    reaches; those nodes all have a parent, so they are never roots.
    """

    roots: Tuple[str, ...] = ()
    children: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    nodes: Mapping[str, Node] = field(default_factory=dict)
    detached: Tuple[str, ...] = ()

    @property
    def top_level(self) -> Tuple[str, ...]:
        return self.roots + self.detached

    def children_of(self, node_id: str) -> Tuple[str, ...]:
        return self.children.get(node_id, ())

    def has_children(self, node_id: str) -> bool:
        return bool(self.children.get(node_id))

    def get(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass(frozen=True)
class RelationItem:
    """One row of the Relationships view."""

    node_id: str
    title: str
    node_type: NodeType
    relation: Relation
    outgoing: bool
