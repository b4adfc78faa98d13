"""Full-screen Textual navigator driving the pure view state."""

from __future__ import annotations

import logging
import webbrowser
from typing import Optional, Tuple

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from .filters import FilterSpec
from .models import GraphSnapshot
from .sources import Loader
from .state import ViewMode, ViewState, handle_key
from .views import render_body, status_bar

logger = logging.getLogger(__name__)

ACCEPT_KEYS = ("y", "Y", "enter")


class KnowledgeGraphApp(App):
    """Keyboard-driven knowledge-graph navigator.

    All navigation logic lives in :func:`kgraph_cli.state.handle_key`; the
    app only translates key events, runs loads in a worker thread and
    paints the current :class:`ViewState`.
    """

    TITLE = "kgraph"

    CSS = """
    Screen {
        layout: vertical;
    }

    #view-title {
        height: 2;
        width: 100%;
        content-align: center top;
        text-style: bold;
        color: #00E898;
    }

    #body {
        height: 1fr;
        width: 100%;
        padding: 0 2;
    }

    #scroll-hint {
        height: 1;
        color: $text-muted;
        padding: 0 2;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: #27273A;
        color: #A1A1AA;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True, show=False),
        Binding("tab", "view_key('tab')", "Next view", priority=True, show=False),
        Binding("shift+tab", "view_key('shift+tab')", "Previous view", priority=True, show=False),
    ]

    def __init__(
        self,
        loader: Loader,
        filter_spec: Optional[FilterSpec] = None,
        padding: int = 2,
    ):
        super().__init__()
        self.loader = loader
        self.state = ViewState.initial(filter_spec=filter_spec, padding=padding)
        self._generation = 0
        self._pending_url = ""
        self._view_mounted = False

    def compose(self) -> ComposeResult:
        yield Static("", id="view-title")
        yield Static("", id="body")
        yield Static("", id="scroll-hint")
        yield Static("", id="status-bar")

    def on_mount(self) -> None:
        self._view_mounted = True
        self.state = self.state.with_size(self.size.width, self.size.height)
        self.load_snapshot()

    def on_resize(self, event) -> None:
        self._apply(self.state.with_size(event.size.width, event.size.height))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_snapshot(self) -> None:
        """Start a load; results of any earlier, still-running load are dropped."""
        self._generation += 1
        self._apply(self.state.with_loading(True))
        self._load_worker(self._generation)

    @work(exclusive=True, thread=True)
    def _load_worker(self, generation: int) -> None:
        try:
            snapshot, errors = self.loader.load_all()
        except Exception as exc:
            logger.exception("Snapshot load failed")
            self.call_from_thread(self._apply_load_error, generation, str(exc))
            return
        self.call_from_thread(self._apply_snapshot, generation, snapshot, errors)

    def _apply_snapshot(
        self, generation: int, snapshot: GraphSnapshot, errors: Tuple[str, ...]
    ) -> None:
        if generation != self._generation:
            logger.debug("Discarding superseded load %d", generation)
            return
        self._apply(self.state.with_snapshot(snapshot, errors))

    def _apply_load_error(self, generation: int, message: str) -> None:
        if generation != self._generation:
            return
        self._apply(self.state.with_load_error(message))

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def action_view_key(self, key: str) -> None:
        self._apply(handle_key(self.state, key))

    def on_key(self, event) -> None:
        state = self.state
        key = event.key
        if state.search_active and event.is_printable and event.character:
            key = event.character

        event.stop()
        event.prevent_default()

        if not state.search_active and state.mode is not ViewMode.CONFIRM:
            if key == "q":
                self.exit()
                return
            if key == "r":
                self.load_snapshot()
                return
            if key == "o":
                self._request_open()
                return

        if state.mode is ViewMode.CONFIRM and key in ACCEPT_KEYS and self._pending_url:
            webbrowser.open(self._pending_url)
            self._pending_url = ""

        self._apply(handle_key(state, key))

    def _request_open(self) -> None:
        node = self.state.focused_node
        if node is None or not node.url:
            return
        self._pending_url = node.url
        self._apply(self.state.request_confirmation(f"Open {node.url} in browser?"))

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def _apply(self, state: ViewState) -> None:
        self.state = state
        if state.mode is not ViewMode.CONFIRM:
            self._pending_url = ""
        self._paint()

    def _paint(self) -> None:
        if not self._view_mounted:
            return
        frame = render_body(self.state)
        self.query_one("#view-title", Static).update(frame.title)
        self.query_one("#body", Static).update(Text("\n").join(frame.lines))
        self.query_one("#scroll-hint", Static).update(frame.scroll_hint)
        self.query_one("#status-bar", Static).update(status_bar(self.state))


def run_navigator(loader: Loader, filter_spec: Optional[FilterSpec] = None, padding: int = 2) -> None:
    KnowledgeGraphApp(loader, filter_spec=filter_spec, padding=padding).run()
