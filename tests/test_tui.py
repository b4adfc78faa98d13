"""Headless tests for the Textual navigator."""

import asyncio

from kgraph_cli.cli_tui import KnowledgeGraphApp
from kgraph_cli.models import GraphSnapshot
from kgraph_cli.sources import Loader, MockSource
from kgraph_cli.state import ViewMode


def _run(scenario):
    asyncio.run(scenario())


async def _loaded(app, pilot):
    await app.workers.wait_for_complete()
    await pilot.pause()


class TestNavigatorApp:
    """Drive the app with simulated key presses."""

    def test_loads_and_navigates(self):
        async def scenario():
            app = KnowledgeGraphApp(Loader([MockSource()]))
            async with app.run_test(size=(100, 30)) as pilot:
                await _loaded(app, pilot)
                assert not app.state.loading
                assert app.state.total_nodes == 17
                assert app.state.focus_id == "service:api"
                assert app.state.width == 100

                await pilot.press("j")
                assert app.state.focus_id == "issue:5"
                await pilot.press("h")
                assert app.state.focus_id == "project:kgraph"

                await pilot.press("f")
                assert app.state.filter_spec.type_filter.value == "Issues"

        _run(scenario)

    def test_search_mode_captures_letters(self):
        async def scenario():
            app = KnowledgeGraphApp(Loader([MockSource()]))
            async with app.run_test(size=(100, 30)) as pilot:
                await _loaded(app, pilot)
                await pilot.press("slash", "g", "u", "i", "d", "e")
                assert app.state.search_active
                assert app.state.search_query == "guide"
                assert app.state.focus_id == "issue:6"

                await pilot.press("escape")
                assert not app.state.search_active
                assert app.state.search_query == ""

        _run(scenario)

    def test_open_link_asks_first(self, monkeypatch):
        opened = []
        monkeypatch.setattr("kgraph_cli.cli_tui.webbrowser.open", opened.append)

        async def scenario():
            app = KnowledgeGraphApp(Loader([MockSource()]))
            async with app.run_test(size=(100, 30)) as pilot:
                await _loaded(app, pilot)
                app._apply(app.state.focus("project:kgraph"))

                await pilot.press("o")
                assert app.state.mode is ViewMode.CONFIRM
                await pilot.press("n")
                assert app.state.mode is ViewMode.GRAPH
                assert opened == []

                await pilot.press("o", "y")
                assert opened == ["https://example.com/kgraph"]
                assert app.state.message.startswith("Confirmed")

        _run(scenario)

    def test_stale_load_discarded(self):
        async def scenario():
            app = KnowledgeGraphApp(Loader([MockSource()]))
            async with app.run_test(size=(100, 30)) as pilot:
                await _loaded(app, pilot)
                app._apply_snapshot(0, GraphSnapshot(), ())
                assert app.state.total_nodes == 17

                app._apply_load_error(app._generation, "network down")
                assert app.state.error == "network down"
                assert app.state.total_nodes == 17

        _run(scenario)
