"""Type, status and free-text filtering of a graph snapshot."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .models import Edge, Node, NodeType, StatusKind


class TypeFilter(str, Enum):
    ALL = "All"
    PROJECTS_AND_WORK = "ProjectsAndWork"
    ISSUES = "Issues"
    PRS = "PRs"
    FILES = "Files"
    COMMITS = "Commits"

    @property
    def label(self) -> str:
        return "Projects" if self is TypeFilter.PROJECTS_AND_WORK else self.value

    @property
    def types(self) -> Optional[FrozenSet[NodeType]]:
        """Allowed node types, or ``None`` when every type passes."""
        return _TYPE_FILTER_TYPES[self]

    def cycle(self) -> "TypeFilter":
        return _TYPE_FILTER_CYCLE[self]

    @classmethod
    def parse(cls, raw: str) -> "TypeFilter":
        text = (raw or "").strip().lower()
        for member in cls:
            if text in (member.value.lower(), member.label.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown type filter: {raw!r}")


_TYPE_FILTER_TYPES = {
    TypeFilter.ALL: None,
    TypeFilter.PROJECTS_AND_WORK: frozenset(
        {NodeType.PROJECT, NodeType.ISSUE, NodeType.PR, NodeType.SERVICE}
    ),
    TypeFilter.ISSUES: frozenset({NodeType.ISSUE}),
    TypeFilter.PRS: frozenset({NodeType.PR}),
    TypeFilter.FILES: frozenset({NodeType.FILE}),
    TypeFilter.COMMITS: frozenset({NodeType.COMMIT}),
}

_TYPE_FILTER_CYCLE = {
    TypeFilter.PROJECTS_AND_WORK: TypeFilter.ISSUES,
    TypeFilter.ISSUES: TypeFilter.PRS,
    TypeFilter.PRS: TypeFilter.COMMITS,
    TypeFilter.COMMITS: TypeFilter.FILES,
    TypeFilter.FILES: TypeFilter.ALL,
    TypeFilter.ALL: TypeFilter.PROJECTS_AND_WORK,
}


class StatusFilter(str, Enum):
    ALL = "All"
    ACTIVE = "Active"
    NOT_DONE = "NotDone"
    DONE = "Done"

    @property
    def label(self) -> str:
        return _STATUS_FILTER_LABELS[self]

    def cycle(self) -> "StatusFilter":
        members = list(StatusFilter)
        return members[(members.index(self) + 1) % len(members)]

    def matches(self, kind: StatusKind) -> bool:
        if self is StatusFilter.ACTIVE:
            return kind is StatusKind.ACTIVE
        if self is StatusFilter.NOT_DONE:
            return kind is not StatusKind.DONE
        if self is StatusFilter.DONE:
            return kind is StatusKind.DONE
        return True

    @classmethod
    def parse(cls, raw: str) -> "StatusFilter":
        text = (raw or "").strip().lower().replace(" ", "").replace("_", "")
        for member in cls:
            if text in (member.value.lower(), member.name.lower().replace("_", "")):
                return member
        raise ValueError(f"Unknown status filter: {raw!r}")


_STATUS_FILTER_LABELS = {
    StatusFilter.ALL: "All Status",
    StatusFilter.ACTIVE: "Active Only",
    StatusFilter.NOT_DONE: "Not Done",
    StatusFilter.DONE: "Done Only",
}


@dataclass(frozen=True)
class FilterSpec:
    type_filter: TypeFilter = TypeFilter.PROJECTS_AND_WORK
    status_filter: StatusFilter = StatusFilter.ALL
    search: str = ""

    def with_type(self, type_filter: TypeFilter) -> "FilterSpec":
        return replace(self, type_filter=type_filter)

    def with_status(self, status_filter: StatusFilter) -> "FilterSpec":
        return replace(self, status_filter=status_filter)

    def with_search(self, search: str) -> "FilterSpec":
        return replace(self, search=search)

    def accepts(self, node: Node) -> bool:
        allowed = self.type_filter.types
        if allowed is not None and node.node_type not in allowed:
            return False
        if not node.is_structural and not self.status_filter.matches(node.status_kind):
            return False
        if self.search and self.search.lower() not in node.title.lower():
            return False
        return True


def filter_edges(edges: Iterable[Edge], node_ids: Iterable[str]) -> Tuple[Edge, ...]:
    """Keep only edges whose endpoints are both in *node_ids*."""
    present = set(node_ids)
    return tuple(e for e in edges if e.from_id in present and e.to_id in present)


def apply_filter(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    spec: FilterSpec,
) -> Tuple[Tuple[Node, ...], Tuple[Edge, ...]]:
    """Return the nodes that pass *spec* and the edges between them.

    Input order is preserved. An empty result is valid.
    """
    kept: List[Node] = [node for node in nodes if spec.accepts(node)]
    return tuple(kept), filter_edges(edges, (n.node_id for n in kept))
