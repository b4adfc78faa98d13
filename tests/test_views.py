"""Tests for screen composition and the status bar."""

from dataclasses import replace

from kgraph_cli.filters import FilterSpec, StatusFilter
from kgraph_cli.models import GraphSnapshot, Node
from kgraph_cli.state import ViewMode, ViewState, handle_key
from kgraph_cli.views import (
    DETAILS_TITLE,
    GRAPH_TITLE,
    NO_DATA,
    NO_SELECTION,
    details_line_count,
    details_lines,
    priority_label,
    render_body,
    status_bar,
)


def plain(frame):
    return [line.plain for line in frame.lines]


class TestGraphFrame:
    def test_header_and_lines(self, chain_snapshot):
        frame = render_body(ViewState.initial(chain_snapshot))

        assert frame.title == GRAPH_TITLE
        assert plain(frame)[0] == "Filter: Projects (3 nodes)"
        assert len(frame.lines) == 4
        assert frame.scroll_hint == ""

    def test_no_data(self):
        frame = render_body(ViewState.initial())
        assert plain(frame) == [NO_DATA]

    def test_scroll_hint(self, wide_snapshot):
        frame = render_body(ViewState.initial(wide_snapshot, height=24))
        assert frame.scroll_hint == "[1-18 of 41 lines]"
        assert len(frame.lines) == 19


class TestDetailsFrame:
    def test_issue_details(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot).focus("B").with_mode(ViewMode.DETAILS)
        frame = render_body(state)
        text = "\n".join(plain(frame))

        assert frame.title == DETAILS_TITLE
        assert "Bug in parser" in text
        assert "Status: In Progress" in text
        assert "Related (2 connections)" in text
        assert "ID: B" in text
        assert "Description not loaded" in text

    def test_description_labels_and_link(self):
        node = Node.create(
            "issue:9",
            "Issue",
            title="Crash on start",
            status="Todo",
            description="Stack trace attached.",
            labels=["bug", "p1"],
            url="https://example.com/9",
            priority=1,
            identifier="KG-9",
        )
        state = ViewState.initial(GraphSnapshot(nodes=(node,)))
        text = "\n".join(line.plain for line in details_lines(node, state, 80))

        assert "[KG-9] Crash on start" in text
        assert "Priority: Urgent" in text
        assert "Stack trace attached." in text
        assert "bug" in text and "p1" in text
        assert "https://example.com/9" in text
        assert "Description not loaded" not in text

    def test_many_relations_are_summarised(self, wide_snapshot):
        state = ViewState.initial(wide_snapshot).with_mode(ViewMode.DETAILS)
        text = "\n".join(plain(render_body(state)))
        assert "Related (40 connections)" in text

    def test_no_selection(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot).with_search("zzz").with_mode(ViewMode.DETAILS)
        assert plain(render_body(state)) == [NO_SELECTION]

    def test_long_description_scrolls(self, long_description_snapshot):
        state = ViewState.initial(long_description_snapshot, height=24).focus("L")
        state = state.with_mode(ViewMode.DETAILS)
        node = state.focused_node
        lines = [line.plain for line in details_lines(node, state, state.body_width)]
        total = details_line_count(state)
        assert total == len(lines) > state.body_height

        frame = render_body(state)
        assert frame.scroll_hint == f"[1-18 of {total} lines]"

        frame = render_body(handle_key(state, "pagedown"))
        assert frame.scroll_hint == f"[18-35 of {total} lines]"
        assert plain(frame)[0] == lines[17]

    def test_scroll_offset_clamped_when_rendering(self, long_description_snapshot):
        state = ViewState.initial(long_description_snapshot, height=24).focus("L")
        state = replace(state.with_mode(ViewMode.DETAILS), details_scroll=500)
        total = details_line_count(state)
        assert render_body(state).scroll_hint == f"[{total - 17}-{total} of {total} lines]"


class TestRelationsFrame:
    def test_header(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot).focus("B").with_mode(ViewMode.RELATIONSHIPS)
        lines = plain(render_body(state))
        assert lines[0] == "Relationships for: Bug in parser"
        assert "→ Outgoing Relations:" in lines


class TestConfirmFrame:
    def test_shows_pending_action(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot).request_confirmation("Open it?")
        lines = plain(render_body(state))
        assert lines[0] == "Open it?"
        assert "[y] Yes" in lines[2]


class TestStatusBar:
    def test_graph_status(self, chain_snapshot):
        text = status_bar(ViewState.initial(chain_snapshot)).plain
        assert text.startswith("[Graph] | Type: Projects | 3/3 nodes | → Alpha")
        assert "q:quit" in text

    def test_match_count_in_every_view(self, mixed_status_snapshot):
        state = ViewState.initial(
            mixed_status_snapshot, FilterSpec(status_filter=StatusFilter.NOT_DONE)
        )
        assert "3/4 nodes" in status_bar(state).plain
        assert "3/4 nodes" in status_bar(state.with_mode(ViewMode.DETAILS)).plain
        assert "3/4 nodes" in status_bar(state.with_mode(ViewMode.RELATIONSHIPS)).plain

    def test_status_filter_shown_when_narrowed(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot, FilterSpec(status_filter=StatusFilter.ACTIVE))
        assert "Status: Active Only" in status_bar(state).plain

    def test_search_bar(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot)
        for key in ("/", "f", "i", "x"):
            state = handle_key(state, key)
        text = status_bar(state).plain
        assert text.startswith("/ fix█")
        assert "(1 matches)" in text

    def test_loading_and_error(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot).with_loading().with_load_error("git: boom")
        text = status_bar(state).plain
        assert "Error: git: boom" in text
        assert "Loading..." not in text
        assert "Loading..." in status_bar(state.with_loading()).plain

    def test_relations_hint(self, chain_snapshot):
        state = ViewState.initial(chain_snapshot).focus("B").with_mode(ViewMode.RELATIONSHIPS)
        assert "jk:select (1/2)" in status_bar(state).plain


def test_priority_label():
    assert priority_label(1) == "Urgent"
    assert priority_label(3) == "Medium"
    assert priority_label(0) == "Low"


def test_every_mode_renders(chain_snapshot):
    state = ViewState.initial(chain_snapshot)
    for mode in ViewMode:
        assert render_body(state.with_mode(mode)).title
