"""Render a forest into width-bounded, decorated Rich text lines.

Every line records the node id it shows, so the viewport and the
navigator can locate the focused node without re-walking the tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, List, Optional, Sequence, Tuple

from rich.style import Style
from rich.text import Text

from .models import Forest, Node, NodeType, RelationItem, StatusKind

EMPTY_MESSAGE = "No nodes match current filter. Press 'f' to change filter."

MID_CONNECTOR = "├── "
LAST_CONNECTOR = "└── "
MID_CONTINUATION = "│   "
LAST_CONTINUATION = "    "

ICON_EXPANDED = "▾ "
ICON_COLLAPSED = "▸ "
ICON_LEAF = "  "

# Columns reserved for the collapse, type and status icons around the title.
DECORATION_RESERVE = 15
MIN_TITLE_CHARS = 10
ELLIPSIS = "..."

ACCENT = "#00E898"

TYPE_ICONS: Dict[NodeType, str] = {
    NodeType.PROJECT: "📦",
    NodeType.ISSUE: "🔹",
    NodeType.PR: "🔀",
    NodeType.COMMIT: "💾",
    NodeType.FILE: "📄",
    NodeType.SERVICE: "⚙️",
    NodeType.UNKNOWN: "❓",
}

TYPE_COLORS: Dict[NodeType, str] = {
    NodeType.PROJECT: "color(33)",
    NodeType.ISSUE: "color(214)",
    NodeType.PR: "color(135)",
    NodeType.COMMIT: "color(250)",
    NodeType.FILE: "color(70)",
    NodeType.SERVICE: "color(45)",
}

STATUS_ICONS: Dict[StatusKind, str] = {
    StatusKind.DONE: "[✓]",
    StatusKind.ACTIVE: "[◐]",
    StatusKind.OPEN: "[◐]",
    StatusKind.BACKLOG: "[○]",
    StatusKind.DRAFT: "[◌]",
    StatusKind.BLOCKED: "[✗]",
}

STATUS_COLORS: Dict[StatusKind, str] = {
    StatusKind.DONE: "color(42)",
    StatusKind.ACTIVE: "color(214)",
    StatusKind.OPEN: "color(214)",
    StatusKind.BACKLOG: "color(240)",
    StatusKind.BLOCKED: "color(196)",
}

DEFAULT_COLOR = "color(252)"
PREFIX_STYLE = Style.parse("color(240)")
FOCUS_STYLE = Style(bold=True, color=ACCENT, bgcolor="color(236)")
MUTED_STYLE = Style.parse("color(240)")


def type_icon(node_type: NodeType) -> str:
    return TYPE_ICONS.get(node_type, TYPE_ICONS[NodeType.UNKNOWN])


def status_icon(kind: StatusKind) -> str:
    return STATUS_ICONS.get(kind, "[-]")


def type_style(node_type: NodeType) -> Style:
    return Style.parse(TYPE_COLORS.get(node_type, DEFAULT_COLOR))


def status_style(kind: StatusKind) -> Style:
    return Style.parse(STATUS_COLORS.get(kind, DEFAULT_COLOR))


def truncate_title(title: str, budget: int) -> str:
    """Cut *title* to *budget* columns, keeping at least ten characters.

    The ellipsis is appended only when something was removed.
    """
    limit = max(budget, MIN_TITLE_CHARS + len(ELLIPSIS))
    if len(title) <= limit:
        return title
    return title[: limit - len(ELLIPSIS)] + ELLIPSIS


@dataclass(frozen=True)
class RenderedTree:
    """Rendered lines plus the node id behind each line (``None`` for chrome)."""

    lines: Tuple[Text, ...]
    line_ids: Tuple[Optional[str], ...]

    def index_of(self, node_id: Optional[str]) -> int:
        """First line index showing *node_id*, or -1 when it is not visible."""
        if node_id is None:
            return -1
        try:
            return self.line_ids.index(node_id)
        except ValueError:
            return -1

    @property
    def plain(self) -> Tuple[str, ...]:
        return tuple(line.plain for line in self.lines)

    def __len__(self) -> int:
        return len(self.lines)


def render_forest(
    forest: Forest,
    collapsed: AbstractSet[str],
    focus_id: Optional[str],
    max_width: int,
) -> RenderedTree:
    """Render every visible node of *forest* as one styled line.

    Subtrees of collapsed nodes are skipped. A node already on its own
    ancestor path is shown but not expanded again, so hierarchical
    cycles terminate.
    """
    if not forest.top_level:
        return RenderedTree(lines=(Text(EMPTY_MESSAGE, style=MUTED_STYLE),), line_ids=(None,))

    lines: List[Text] = []
    line_ids: List[Optional[str]] = []
    top = forest.top_level
    for i, node_id in enumerate(top):
        _render_node(
            forest, collapsed, focus_id, max_width,
            node_id, "", i == len(top) - 1, (), lines, line_ids,
        )
    return RenderedTree(lines=tuple(lines), line_ids=tuple(line_ids))


def _render_node(
    forest: Forest,
    collapsed: AbstractSet[str],
    focus_id: Optional[str],
    max_width: int,
    node_id: str,
    prefix: str,
    is_last: bool,
    ancestors: Tuple[str, ...],
    lines: List[Text],
    line_ids: List[Optional[str]],
) -> None:
    node = forest.get(node_id)
    if node is None:
        return

    connector = LAST_CONNECTOR if is_last else MID_CONNECTOR
    has_children = forest.has_children(node_id)
    on_path = node_id in ancestors
    folded = node_id in collapsed or on_path

    lines.append(
        render_line(node, prefix, connector, has_children, folded, node_id == focus_id, max_width)
    )
    line_ids.append(node_id)

    if not has_children or folded:
        return

    child_prefix = prefix + (LAST_CONTINUATION if is_last else MID_CONTINUATION)
    kids = forest.children_of(node_id)
    path = ancestors + (node_id,)
    for i, child_id in enumerate(kids):
        _render_node(
            forest, collapsed, focus_id, max_width,
            child_id, child_prefix, i == len(kids) - 1, path, lines, line_ids,
        )


def render_line(
    node: Node,
    prefix: str,
    connector: str,
    has_children: bool,
    collapsed: bool,
    focused: bool,
    max_width: int,
) -> Text:
    if has_children:
        collapse_icon = ICON_COLLAPSED if collapsed else ICON_EXPANDED
    else:
        collapse_icon = ICON_LEAF

    budget = max_width - len(prefix) - len(connector) - DECORATION_RESERVE
    title = truncate_title(node.title, budget)
    annotation = f" [{node.status}]" if node.status else ""
    body = f"{collapse_icon}{type_icon(node.node_type)}{status_icon(node.status_kind)} {title}"

    line = Text(prefix + connector, style=PREFIX_STYLE)
    if focused:
        line.append(body + annotation, style=FOCUS_STYLE)
    else:
        line.append(body, style=type_style(node.node_type))
        if annotation:
            line.append(annotation, style=status_style(node.status_kind) + Style(dim=True))
    return line


# ------------------------------------------------------------------
# Relationships list
# ------------------------------------------------------------------

NO_RELATIONS_MESSAGE = "No relationships found for this node."
SELECTED_MARKER = "▶ "
RELATION_TITLE_WIDTH = 40
SELECTED_STYLE = Style(bold=True, color="#FFFFFF", bgcolor="#7C78FF")
OUTGOING_HEADER_STYLE = Style(bold=True, color="#7C78FF")
INCOMING_HEADER_STYLE = Style(bold=True, color="#8E8AFF")


def relation_line(item: RelationItem, selected: bool, max_width: int) -> Text:
    arrow = "→" if item.outgoing else "←"
    title = truncate_title(item.title, min(RELATION_TITLE_WIDTH, max_width - 12))
    marker = SELECTED_MARKER if selected else "  "
    line = Text(f"{marker}{type_icon(item.node_type)} {title} {arrow} ")
    if selected:
        line.append(item.relation.value)
        line.stylize(SELECTED_STYLE)
    else:
        line.append(item.relation.value, style=Style(color=ACCENT))
    return line


def render_relation_list(
    items: Sequence[RelationItem], selected: int, max_width: int
) -> Tuple[RenderedTree, int]:
    """Render outgoing then incoming relations under section headers.

    Returns the lines and the line index of the selected row (-1 when the
    list is empty). Row ids are the related node ids.
    """
    if not items:
        empty = Text(NO_RELATIONS_MESSAGE, style=MUTED_STYLE + Style(italic=True))
        return RenderedTree(lines=(empty,), line_ids=(None,)), -1

    lines: List[Text] = []
    line_ids: List[Optional[str]] = []
    selected_line = -1

    def add(text: Text, node_id: Optional[str] = None) -> None:
        lines.append(text)
        line_ids.append(node_id)

    outgoing = [(i, item) for i, item in enumerate(items) if item.outgoing]
    incoming = [(i, item) for i, item in enumerate(items) if not item.outgoing]
    sections = (
        ("→ Outgoing Relations:", OUTGOING_HEADER_STYLE, outgoing),
        ("← Incoming Relations:", INCOMING_HEADER_STYLE, incoming),
    )
    for header, style, rows in sections:
        if not rows:
            continue
        if lines:
            add(Text(""))
        add(Text(header, style=style))
        for index, item in rows:
            if index == selected:
                selected_line = len(lines)
            add(relation_line(item, index == selected, max_width), item.node_id)

    add(Text(""))
    add(
        Text(
            f"Total: {len(outgoing)} outgoing, {len(incoming)} incoming | "
            "j/k: navigate | Enter: jump to selected",
            style=MUTED_STYLE,
        )
    )
    return RenderedTree(lines=tuple(lines), line_ids=tuple(line_ids)), selected_line
