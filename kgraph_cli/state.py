"""Immutable view state and the pure key dispatcher driving it.

A :class:`ViewState` bundles everything the navigator shows: the loaded
snapshot, the active filters, collapse set, focus, scroll offsets, view
mode and back-stack. Every transition returns a new value; nothing here
performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import FrozenSet, Optional, Tuple

from .filters import FilterSpec, StatusFilter, TypeFilter, apply_filter
from .models import Edge, Forest, GraphSnapshot, Node, RelationItem
from .navigation import (
    clamp_selection,
    commit_relation,
    move_down,
    move_left,
    move_relation,
    move_right,
    move_up,
    relations_for,
)
from .render import RenderedTree, render_forest, render_relation_list
from .tree import build_forest, flatten
from .viewport import DEFAULT_PADDING, clamp_scroll, ensure_visible, visible_height

# Columns kept free on either side of the tree.
BODY_MARGIN = 4


class ViewMode(str, Enum):
    GRAPH = "Graph"
    DETAILS = "Details"
    RELATIONSHIPS = "Relations"
    CONFIRM = "Confirm"

    def next(self) -> "ViewMode":
        return _FORWARD.get(self, ViewMode.GRAPH)

    def previous(self) -> "ViewMode":
        return _BACKWARD.get(self, ViewMode.GRAPH)


_FORWARD = {
    ViewMode.GRAPH: ViewMode.DETAILS,
    ViewMode.DETAILS: ViewMode.RELATIONSHIPS,
    ViewMode.RELATIONSHIPS: ViewMode.GRAPH,
}
_BACKWARD = {v: k for k, v in _FORWARD.items()}


@dataclass(frozen=True)
class NavigationStack:
    """Linear history of view modes for the back key."""

    modes: Tuple[ViewMode, ...] = ()

    def push(self, mode: ViewMode) -> "NavigationStack":
        return NavigationStack(self.modes + (mode,))

    def pop(self) -> Tuple["NavigationStack", Optional[ViewMode]]:
        if not self.modes:
            return self, None
        return NavigationStack(self.modes[:-1]), self.modes[-1]

    @property
    def is_empty(self) -> bool:
        return not self.modes

    def __len__(self) -> int:
        return len(self.modes)


@dataclass(frozen=True)
class ViewState:
    snapshot: GraphSnapshot = field(default_factory=GraphSnapshot)
    filter_spec: FilterSpec = field(default_factory=FilterSpec)
    collapsed: FrozenSet[str] = frozenset()
    focus_id: Optional[str] = None
    scroll: int = 0
    mode: ViewMode = ViewMode.GRAPH
    stack: NavigationStack = field(default_factory=NavigationStack)
    search_active: bool = False
    relation_index: int = 0
    relation_scroll: int = 0
    details_scroll: int = 0
    width: int = 80
    height: int = 24
    padding: int = DEFAULT_PADDING
    loading: bool = False
    error: str = ""
    message: str = ""
    pending_action: str = ""

    @classmethod
    def initial(
        cls,
        snapshot: Optional[GraphSnapshot] = None,
        filter_spec: Optional[FilterSpec] = None,
        **kwargs,
    ) -> "ViewState":
        """Fresh session state focused on the first node in tree order."""
        state = cls(
            snapshot=snapshot or GraphSnapshot(),
            filter_spec=filter_spec or FilterSpec(),
            **kwargs,
        )
        return state._settle()

    # ------------------------------------------------------------------
    # Derived views (computed once per state value)
    # ------------------------------------------------------------------

    @cached_property
    def filtered(self) -> Tuple[Tuple[Node, ...], Tuple[Edge, ...]]:
        return apply_filter(self.snapshot.nodes, self.snapshot.edges, self.filter_spec)

    @property
    def filtered_nodes(self) -> Tuple[Node, ...]:
        return self.filtered[0]

    @property
    def filtered_edges(self) -> Tuple[Edge, ...]:
        return self.filtered[1]

    @cached_property
    def forest(self) -> Forest:
        return build_forest(*self.filtered)

    @cached_property
    def order(self) -> Tuple[str, ...]:
        return flatten(self.forest, self.collapsed)

    @property
    def body_width(self) -> int:
        return max(1, self.width - BODY_MARGIN)

    @property
    def body_height(self) -> int:
        return visible_height(self.height)

    @cached_property
    def rendered(self) -> RenderedTree:
        return render_forest(self.forest, self.collapsed, self.focus_id, self.body_width)

    @cached_property
    def relations(self) -> Tuple[RelationItem, ...]:
        return relations_for(self.focus_id, self.forest, self.filtered_edges)

    @cached_property
    def relation_listing(self) -> Tuple[RenderedTree, int]:
        return render_relation_list(self.relations, self.relation_index, self.body_width)

    @property
    def focused_node(self) -> Optional[Node]:
        return self.forest.get(self.focus_id)

    @property
    def match_count(self) -> int:
        return len(self.filtered_nodes)

    @property
    def search_query(self) -> str:
        return self.filter_spec.search

    @property
    def total_nodes(self) -> int:
        return len(self.snapshot.nodes)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _settle(self, reset_scroll: bool = False) -> "ViewState":
        """Reconcile focus, scroll and selection after anything changed.

        Focus that left the filtered set moves to the first node in tree
        order and the scroll offset returns to the top.
        """
        state = self
        if reset_scroll and state.scroll:
            state = replace(state, scroll=0)
        if state.focus_id not in state.forest.nodes:
            first = state.order[0] if state.order else None
            state = replace(state, focus_id=first, scroll=0, relation_index=0, relation_scroll=0)
        return state._follow_focus()

    def _follow_focus(self) -> "ViewState":
        rendered = self.rendered
        scroll = ensure_visible(
            len(rendered), self.body_height, self.scroll,
            rendered.index_of(self.focus_id), self.padding,
        )
        index = clamp_selection(self.relation_index, len(self.relations))
        state = self
        if scroll != self.scroll or index != self.relation_index:
            state = replace(self, scroll=scroll, relation_index=index)
        listing, selected_line = state.relation_listing
        relation_scroll = ensure_visible(
            len(listing), state.body_height, state.relation_scroll, selected_line, state.padding,
        )
        if relation_scroll != state.relation_scroll:
            state = replace(state, relation_scroll=relation_scroll)
        return state

    def _focus(self, node_id: Optional[str]) -> "ViewState":
        if node_id == self.focus_id:
            return self
        return replace(
            self, focus_id=node_id, relation_index=0, relation_scroll=0, details_scroll=0
        )._follow_focus()

    # ------------------------------------------------------------------
    # Snapshot, filters and layout
    # ------------------------------------------------------------------

    def with_snapshot(self, snapshot: GraphSnapshot, errors: Tuple[str, ...] = ()) -> "ViewState":
        """Replace the loaded graph atomically; focus and collapse state survive."""
        return replace(
            self, snapshot=snapshot, loading=False, error="; ".join(errors),
        )._settle()

    def with_load_error(self, error: str) -> "ViewState":
        """Record a failed load while keeping the last-known-good snapshot."""
        return replace(self, loading=False, error=error)

    def with_loading(self, loading: bool = True) -> "ViewState":
        return replace(self, loading=loading)

    def with_filter(self, spec: FilterSpec) -> "ViewState":
        if spec == self.filter_spec:
            return self
        return replace(self, filter_spec=spec)._settle(reset_scroll=True)

    def cycle_type_filter(self) -> "ViewState":
        return self.with_filter(self.filter_spec.with_type(self.filter_spec.type_filter.cycle()))

    def cycle_status_filter(self) -> "ViewState":
        return self.with_filter(
            self.filter_spec.with_status(self.filter_spec.status_filter.cycle())
        )

    def with_type_filter(self, type_filter: TypeFilter) -> "ViewState":
        return self.with_filter(self.filter_spec.with_type(type_filter))

    def with_status_filter(self, status_filter: StatusFilter) -> "ViewState":
        return self.with_filter(self.filter_spec.with_status(status_filter))

    def with_size(self, width: int, height: int) -> "ViewState":
        if (width, height) == (self.width, self.height):
            return self
        return replace(self, width=width, height=height)._follow_focus()

    # ------------------------------------------------------------------
    # Focus movement and collapse
    # ------------------------------------------------------------------

    def move_left(self) -> "ViewState":
        return self._focus(move_left(self.focus_id, self.forest, self.filtered_edges))

    def move_right(self) -> "ViewState":
        return self._focus(
            move_right(self.focus_id, self.forest, self.filtered_edges, self.collapsed)
        )

    def move_down(self) -> "ViewState":
        return self._focus(move_down(self.focus_id, self.forest, self.collapsed))

    def move_up(self) -> "ViewState":
        return self._focus(move_up(self.focus_id, self.forest, self.collapsed))

    def focus(self, node_id: str) -> "ViewState":
        """Focus *node_id* if it is part of the filtered forest."""
        if node_id not in self.forest.nodes:
            return self
        return self._focus(node_id)

    def toggle_collapse(self, node_id: Optional[str] = None) -> "ViewState":
        node_id = node_id if node_id is not None else self.focus_id
        if node_id is None:
            return self
        collapsed = self.collapsed ^ {node_id}
        return replace(self, collapsed=frozenset(collapsed))._follow_focus()

    def is_collapsed(self, node_id: str) -> bool:
        return node_id in self.collapsed

    # ------------------------------------------------------------------
    # View modes and back-stack
    # ------------------------------------------------------------------

    def with_mode(self, mode: ViewMode) -> "ViewState":
        if mode == self.mode:
            return self
        return replace(self, mode=mode)._follow_focus()

    def cycle_view(self) -> "ViewState":
        return self.with_mode(self.mode.next())

    def cycle_view_back(self) -> "ViewState":
        return self.with_mode(self.mode.previous())

    def push_view(self, mode: ViewMode) -> "ViewState":
        return replace(self, stack=self.stack.push(self.mode), mode=mode)._follow_focus()

    def back(self) -> "ViewState":
        stack, previous = self.stack.pop()
        if previous is None:
            return self
        return replace(self, stack=stack, mode=previous)._follow_focus()

    def drill(self) -> "ViewState":
        """Toggle a node that has children, or open Details for a leaf."""
        if self.focus_id is None:
            return self
        if self.forest.has_children(self.focus_id):
            return self.toggle_collapse(self.focus_id)
        return self.push_view(ViewMode.DETAILS)

    # ------------------------------------------------------------------
    # Relationships list
    # ------------------------------------------------------------------

    def move_relation(self, delta: int) -> "ViewState":
        index = move_relation(self.relation_index, len(self.relations), delta)
        return replace(self, relation_index=index)._follow_focus()

    def commit_relation(self) -> "ViewState":
        """Focus the selected relation's node and return to the graph."""
        if not self.relations:
            return self
        target = commit_relation(self.focus_id, self.relations, self.relation_index)
        return self._focus(target).with_mode(ViewMode.GRAPH)

    # ------------------------------------------------------------------
    # Details panel
    # ------------------------------------------------------------------

    def scroll_details(self, delta: int) -> "ViewState":
        """Move the Details window by *delta* lines, kept within its content."""
        from .views import details_line_count

        scroll = clamp_scroll(self.details_scroll + delta, details_line_count(self), self.body_height)
        if scroll == self.details_scroll:
            return self
        return replace(self, details_scroll=scroll)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def start_search(self) -> "ViewState":
        return replace(self, search_active=True)

    def with_search(self, query: str) -> "ViewState":
        return self.with_filter(self.filter_spec.with_search(query))

    def _focus_first_match(self) -> "ViewState":
        if not self.order:
            return self
        return replace(self, scroll=0)._focus(self.order[0])._follow_focus()

    def type_search(self, text: str) -> "ViewState":
        return self.with_search(self.search_query + text)._focus_first_match()

    def search_backspace(self) -> "ViewState":
        if not self.search_query:
            return self
        return self.with_search(self.search_query[:-1])

    def commit_search(self) -> "ViewState":
        return replace(self, search_active=False)._focus_first_match()

    def cancel_search(self) -> "ViewState":
        return replace(self, search_active=False).with_search("")

    # ------------------------------------------------------------------
    # Confirmation overlay
    # ------------------------------------------------------------------

    def request_confirmation(self, action: str) -> "ViewState":
        return replace(self.push_view(ViewMode.CONFIRM), pending_action=action)

    def accept_confirmation(self) -> "ViewState":
        if self.mode is not ViewMode.CONFIRM:
            return self
        action = self.pending_action
        return replace(self.back(), pending_action="", message=f"Confirmed: {action}")

    def reject_confirmation(self) -> "ViewState":
        if self.mode is not ViewMode.CONFIRM:
            return self
        action = self.pending_action
        return replace(self.back(), pending_action="", message=f"Cancelled: {action}")


# ----------------------------------------------------------------------
# Key dispatch
# ----------------------------------------------------------------------

LEFT_KEYS = ("h", "left")
DOWN_KEYS = ("j", "down")
UP_KEYS = ("k", "up")
RIGHT_KEYS = ("l", "right")
PAGE_DOWN_KEYS = ("pagedown", "ctrl+d")
PAGE_UP_KEYS = ("pageup", "ctrl+u")


def handle_key(state: ViewState, key: str) -> ViewState:
    """Apply one keystroke to *state* and return the resulting state.

    *key* is a key name such as ``"enter"`` or ``"shift+tab"``, or the
    typed character for printable keys. Unknown keys leave the state
    unchanged.
    """
    if state.mode is ViewMode.CONFIRM:
        return _handle_confirm_key(state, key)
    if state.search_active:
        return _handle_search_key(state, key)

    if key in LEFT_KEYS:
        return state.move_left()
    if key in RIGHT_KEYS:
        return state.move_right()
    if key in DOWN_KEYS:
        if state.mode is ViewMode.RELATIONSHIPS:
            return state.move_relation(1)
        return state.move_down()
    if key in UP_KEYS:
        if state.mode is ViewMode.RELATIONSHIPS:
            return state.move_relation(-1)
        return state.move_up()
    if key == "enter":
        if state.mode is ViewMode.GRAPH:
            return state.drill()
        if state.mode is ViewMode.RELATIONSHIPS:
            return state.commit_relation()
        return state
    if key == "escape":
        return state.back()
    if key == "tab":
        return state.cycle_view()
    if key == "shift+tab":
        return state.cycle_view_back()

    if state.mode is ViewMode.DETAILS:
        page = max(1, state.body_height - 1)
        if key in PAGE_DOWN_KEYS:
            return state.scroll_details(page)
        if key in PAGE_UP_KEYS:
            return state.scroll_details(-page)

    if state.mode is ViewMode.GRAPH:
        if key == "f":
            return state.cycle_type_filter()
        if key == "s":
            return state.cycle_status_filter()
        if key in ("/", "slash"):
            return state.start_search()
    return state


def _handle_search_key(state: ViewState, key: str) -> ViewState:
    if key == "escape":
        return state.cancel_search()
    if key == "enter":
        return state.commit_search()
    if key == "backspace":
        return state.search_backspace()
    if key == "space":
        key = " "
    if len(key) == 1 and key.isprintable():
        return state.type_search(key)
    return state


def _handle_confirm_key(state: ViewState, key: str) -> ViewState:
    if key in ("y", "Y", "enter"):
        return state.accept_confirmation()
    if key in ("n", "N", "escape"):
        return state.reject_confirmation()
    return state
