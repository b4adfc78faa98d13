"""Tests for tree and relationship-list rendering."""

from kgraph_cli.models import Edge, Node, NodeType, Relation, RelationItem
from kgraph_cli.render import (
    EMPTY_MESSAGE,
    FOCUS_STYLE,
    NO_RELATIONS_MESSAGE,
    render_forest,
    render_relation_list,
    truncate_title,
)
from kgraph_cli.tree import build_forest


class TestTruncateTitle:
    """Tests for width-bounded titles."""

    def test_short_title_unchanged(self):
        assert truncate_title("Fix parser", 40) == "Fix parser"

    def test_long_title_gets_ellipsis(self):
        title = "abcdefghijklmnopqrstuvwxyz"
        assert truncate_title(title, 20) == "abcdefghijklmnopq..."

    def test_keeps_ten_characters_when_squeezed(self):
        result = truncate_title("abcdefghijklmnopqrstuvwxyz", 2)
        assert result == "abcdefghij..."


class TestRenderForest:
    """Tests for render_forest."""

    def test_chain_lines(self, chain_snapshot):
        forest = build_forest(chain_snapshot.nodes, chain_snapshot.edges)
        rendered = render_forest(forest, frozenset(), "A", 80)

        assert rendered.line_ids == ("A", "B", "C")
        plain = rendered.plain
        assert plain[0].startswith("└── ▾ ")
        assert plain[1].startswith("    └── ▾ ")
        assert plain[2].startswith("        └──   ")
        assert "Bug in parser [In Progress]" in plain[1]

    def test_collapsed_marker_hides_children(self, chain_snapshot):
        forest = build_forest(chain_snapshot.nodes, chain_snapshot.edges)
        rendered = render_forest(forest, frozenset({"A"}), None, 80)

        assert rendered.line_ids == ("A",)
        assert rendered.plain[0].startswith("└── ▸ ")

    def test_siblings_use_branch_connectors(self, mixed_status_snapshot):
        forest = build_forest(mixed_status_snapshot.nodes, mixed_status_snapshot.edges)
        rendered = render_forest(forest, frozenset(), None, 80)

        assert rendered.line_ids == ("A", "B", "C", "D")
        assert rendered.plain[1].startswith("    ├── ")
        assert rendered.plain[2].startswith("    │   └── ")
        assert rendered.plain[3].startswith("    └── ")

    def test_focused_line_highlighted(self, chain_snapshot):
        forest = build_forest(chain_snapshot.nodes, chain_snapshot.edges)
        rendered = render_forest(forest, frozenset(), "B", 80)

        assert any(span.style == FOCUS_STYLE for span in rendered.lines[1].spans)
        assert not any(span.style == FOCUS_STYLE for span in rendered.lines[0].spans)

    def test_empty_forest(self):
        rendered = render_forest(build_forest((), ()), frozenset(), None, 80)
        assert rendered.plain == (EMPTY_MESSAGE,)
        assert rendered.line_ids == (None,)
        assert rendered.index_of("A") == -1

    def test_render_is_repeatable(self, mixed_status_snapshot):
        forest = build_forest(mixed_status_snapshot.nodes, mixed_status_snapshot.edges)
        first = render_forest(forest, frozenset({"B"}), "A", 60)
        second = render_forest(forest, frozenset({"B"}), "A", 60)
        assert first.plain == second.plain
        assert first.line_ids == second.line_ids

    def test_cycle_rendered_without_recursing(self):
        nodes = (Node.create("x", "Issue", title="x"), Node.create("y", "Issue", title="y"))
        edges = (Edge.create("x", "y", "owns"), Edge.create("y", "x", "owns"))
        rendered = render_forest(build_forest(nodes, edges), frozenset(), None, 80)

        assert rendered.line_ids == ("x", "y", "x")
        assert "▸" in rendered.plain[2]

    def test_narrow_width_still_shows_ten_characters(self):
        node = Node.create("i", "Issue", title="A very long issue title indeed")
        rendered = render_forest(build_forest((node,), ()), frozenset(), None, 10)
        assert "A very lon..." in rendered.plain[0]


class TestRenderRelationList:
    """Tests for the relationships list."""

    def _items(self):
        return (
            RelationItem("C", "Fix parser", NodeType.PR, Relation.OWNS, True),
            RelationItem("A", "Alpha", NodeType.PROJECT, Relation.OWNS, False),
        )

    def test_sections_and_selection(self):
        listing, selected_line = render_relation_list(self._items(), 1, 80)
        plain = listing.plain

        assert plain[0] == "→ Outgoing Relations:"
        assert "← Incoming Relations:" in plain
        assert plain[selected_line].startswith("▶ ")
        assert listing.line_ids[selected_line] == "A"
        assert plain[-1].startswith("Total: 1 outgoing, 1 incoming")

    def test_empty(self):
        listing, selected_line = render_relation_list((), 0, 80)
        assert listing.plain == (NO_RELATIONS_MESSAGE,)
        assert selected_line == -1
