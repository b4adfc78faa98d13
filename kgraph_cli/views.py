"""Screen composition for each view mode plus the status bar.

Everything here is a pure function of :class:`~kgraph_cli.state.ViewState`
returning Rich ``Text``; the Textual app only paints the result.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from rich.style import Style
from rich.text import Text

from .models import Node, NodeType
from .render import ACCENT, MUTED_STYLE, status_style, truncate_title, type_icon
from .state import ViewMode, ViewState
from .viewport import clamp_scroll

GRAPH_TITLE = "📊 Knowledge Graph"
DETAILS_TITLE = "📝 Node Details"
RELATIONS_TITLE = "🔗 Relationships (j/k to select, Enter to jump)"
CONFIRM_TITLE = "Confirm Action"

NO_SELECTION = "No node selected. Press Tab to view Graph and select a node."
NO_DATA = "No nodes loaded. Press 'r' to refresh."

DETAILS_MAX_WIDTH = 80
DETAILS_RELATION_PREVIEW = 5
STATUS_TITLE_WIDTH = 25

TITLE_STYLE = Style(bold=True, color=ACCENT)
PRIMARY = "#7C78FF"
SECONDARY = "#8E8AFF"
ERROR_STYLE = Style(bold=True, color="#EF4444")
LOADING_STYLE = Style(italic=True, color="#F59E0B")

PRIORITY_LABELS = {1: "Urgent", 2: "High", 3: "Medium"}
PRIORITY_COLORS = {1: "#DC2626", 2: "#F97316", 3: "#FBBF24"}

KEY_HINTS = {
    ViewMode.GRAPH: "/:search | f:type | s:status | jk:nav | Enter:toggle | q:quit",
    ViewMode.DETAILS: "PgUp/PgDn:scroll | Tab:Relations | Esc:back | q:quit",
    ViewMode.CONFIRM: "y:confirm | n:cancel",
}


@dataclass(frozen=True)
class Frame:
    """One painted screen: a title, the visible body slice and a scroll hint."""

    title: str
    lines: Tuple[Text, ...]
    scroll_hint: str = ""


def priority_label(priority: int) -> str:
    return PRIORITY_LABELS.get(priority, "Low")


def _window(lines: Tuple[Text, ...], scroll: int, height: int) -> Tuple[Tuple[Text, ...], str]:
    end = min(len(lines), scroll + height)
    visible = lines[scroll:end]
    hint = ""
    if len(lines) > height:
        hint = f"[{scroll + 1}-{end} of {len(lines)} lines]"
    return visible, hint


# ----------------------------------------------------------------------
# Graph
# ----------------------------------------------------------------------

def render_graph(state: ViewState) -> Frame:
    if not state.snapshot.nodes:
        return Frame(GRAPH_TITLE, (Text(NO_DATA, style=MUTED_STYLE),))
    header = Text(f"Filter: {state.filter_spec.type_filter.label}", style=TITLE_STYLE)
    header.append(f" ({state.match_count} nodes)", style=MUTED_STYLE)
    visible, hint = _window(state.rendered.lines, state.scroll, state.body_height)
    return Frame(GRAPH_TITLE, (header,) + visible, hint)


# ----------------------------------------------------------------------
# Details
# ----------------------------------------------------------------------

def details_line_count(state: ViewState) -> int:
    """Number of lines the Details panel shows for the focused node."""
    node = state.focused_node
    if node is None:
        return 1
    return len(details_lines(node, state, min(DETAILS_MAX_WIDTH, state.body_width)))


def render_details(state: ViewState) -> Frame:
    node = state.focused_node
    if node is None:
        return Frame(DETAILS_TITLE, (Text(NO_SELECTION, style=MUTED_STYLE),))
    width = min(DETAILS_MAX_WIDTH, state.body_width)
    lines = tuple(details_lines(node, state, width))
    scroll = clamp_scroll(state.details_scroll, len(lines), state.body_height)
    visible, hint = _window(lines, scroll, state.body_height)
    return Frame(DETAILS_TITLE, visible, hint)


def details_lines(node: Node, state: ViewState, width: int) -> List[Text]:
    """Full description of *node*: badges, status, text, labels and links."""
    lines: List[Text] = []
    title = f"[{node.identifier}] {node.title}" if node.identifier else node.title
    lines.append(Text(f"{type_icon(node.node_type)} {title}", style=TITLE_STYLE + Style(underline=True)))
    lines.append(Text(""))

    badges = Text(f" Type: {node.node_type.value} ", style=Style(bold=True, color="#FFFFFF", bgcolor=PRIMARY))
    if node.project:
        badges.append("  ")
        badges.append(f" 📦 {node.project} ", style=Style(color="#FFFFFF", bgcolor=SECONDARY))
    lines.append(badges)
    lines.append(Text(""))

    if node.status:
        lines.append(Text(f"Status: {node.status}", style=status_style(node.status_kind) + Style(bold=True)))
    if node.priority > 0:
        color = PRIORITY_COLORS.get(node.priority, "#6B7280")
        lines.append(Text(f"🔥 Priority: {priority_label(node.priority)}", style=Style(bold=True, color=color)))
    lines.append(Text(""))

    if node.description:
        lines.append(Text("Description:"))
        for paragraph in node.description.splitlines() or [""]:
            for chunk in textwrap.wrap(paragraph, max(10, width - 4)) or [""]:
                lines.append(Text(chunk))

    if node.labels:
        lines.append(Text(""))
        labels = Text("🏷  Labels: ")
        for label in node.labels:
            labels.append(f" {label} ", style=Style(color="#FFFFFF", bgcolor=SECONDARY))
            labels.append(" ")
        lines.append(labels)

    relations = state.relations
    if relations:
        lines.append(Text(""))
        lines.append(Text(f"🔗 Related ({len(relations)} connections):", style=Style(bold=True, color=SECONDARY)))
        for item in relations[:DETAILS_RELATION_PREVIEW]:
            arrow = "→" if item.outgoing else "←"
            lines.append(
                Text(
                    f"  {type_icon(item.node_type)} {truncate_title(item.title, 30)} "
                    f"{arrow} ({item.relation.value})",
                    style=MUTED_STYLE,
                )
            )
        extra = len(relations) - DETAILS_RELATION_PREVIEW
        if extra > 0:
            lines.append(Text(f"  ... and {extra} more (Tab to Relations view)", style=MUTED_STYLE + Style(italic=True)))

    if node.url:
        lines.append(Text(""))
        link = Text("🔗 Link: ", style=MUTED_STYLE + Style(bold=True))
        link.append(node.url, style=Style(color=ACCENT, underline=True))
        lines.append(link)

    lines.append(Text(""))
    lines.append(Text(f"ID: {node.node_id}", style=MUTED_STYLE + Style(dim=True)))

    if not node.description and node.node_type is NodeType.ISSUE:
        lines.append(Text(""))
        lines.append(
            Text(
                "💡 Description not loaded. Use the link above to view full details.",
                style=MUTED_STYLE + Style(italic=True),
            )
        )
    return lines


# ----------------------------------------------------------------------
# Relationships
# ----------------------------------------------------------------------

def render_relations(state: ViewState) -> Frame:
    node = state.focused_node
    if node is None:
        return Frame(RELATIONS_TITLE, (Text(NO_SELECTION, style=MUTED_STYLE),))
    header = Text(f"Relationships for: {node.title}", style=TITLE_STYLE)
    listing, _ = state.relation_listing
    visible, hint = _window(listing.lines, state.relation_scroll, state.body_height)
    return Frame(RELATIONS_TITLE, (header, Text("")) + visible, hint)


# ----------------------------------------------------------------------
# Confirmation overlay
# ----------------------------------------------------------------------

def render_confirm(state: ViewState) -> Frame:
    buttons = Text()
    buttons.append(" [y] Yes ", style=Style(bold=True, color="#000000", bgcolor=ACCENT))
    buttons.append("  ")
    buttons.append(" [n] No ", style=Style(color="#FFFFFF", bgcolor="#71717A"))
    return Frame(
        CONFIRM_TITLE,
        (Text(state.pending_action, style=Style(bold=True)), Text(""), buttons),
    )


_BODY_RENDERERS: Dict[ViewMode, Callable[[ViewState], Frame]] = {
    ViewMode.GRAPH: render_graph,
    ViewMode.DETAILS: render_details,
    ViewMode.RELATIONSHIPS: render_relations,
    ViewMode.CONFIRM: render_confirm,
}


def render_body(state: ViewState) -> Frame:
    """Dispatch on the view mode; every mode has exactly one renderer."""
    return _BODY_RENDERERS[state.mode](state)


# ----------------------------------------------------------------------
# Status bar
# ----------------------------------------------------------------------

def search_bar(state: ViewState) -> Text:
    bar = Text("/ ", style=TITLE_STYLE)
    bar.append(f"{state.search_query}█")
    bar.append(f"  ({state.match_count} matches)", style=MUTED_STYLE)
    bar.append("  Enter:select | Esc:cancel", style=MUTED_STYLE)
    return bar


def key_hints(state: ViewState) -> str:
    if state.mode is ViewMode.RELATIONSHIPS:
        count = len(state.relations)
        if count:
            return f"jk:select ({state.relation_index + 1}/{count}) | Enter:jump | Tab:Graph | q:quit"
        return "Tab:Graph | q:quit"
    return KEY_HINTS[state.mode]


def status_parts(state: ViewState) -> List[Tuple[str, Style]]:
    parts: List[Tuple[str, Style]] = [(f"[{state.mode.value}]", Style(bold=True, color=ACCENT))]
    if state.mode is ViewMode.GRAPH:
        spec = state.filter_spec
        parts.append((f"Type: {spec.type_filter.label}", Style()))
        if spec.status_filter.value != "All":
            parts.append((f"Status: {spec.status_filter.label}", Style(bold=True, color=ACCENT)))
        if spec.search:
            parts.append((f'Search: "{spec.search}"', Style(bold=True, color=ACCENT)))
    parts.append((f"{state.match_count}/{state.total_nodes} nodes", Style()))
    node = state.focused_node
    if node is not None:
        parts.append((f"→ {truncate_title(node.title, STATUS_TITLE_WIDTH)}", Style()))
    if state.loading:
        parts.append(("Loading...", LOADING_STYLE))
    if state.error:
        parts.append((f"Error: {state.error}", ERROR_STYLE))
    if state.message:
        parts.append((state.message, MUTED_STYLE))
    return parts


def status_bar(state: ViewState) -> Text:
    """One-line summary: view, filters, focus, loading and errors, key hints."""
    if state.search_active:
        return search_bar(state)
    bar = Text()
    for i, (text, style) in enumerate(status_parts(state)):
        if i:
            bar.append(" | ")
        bar.append(text, style=style)
    hints = key_hints(state)
    spacing = max(2, state.width - bar.cell_len - len(hints) - 4)
    bar.append(" " * spacing)
    bar.append(hints, style=MUTED_STYLE)
    return bar
