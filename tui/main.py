"""
Terminal viewer for FAISS index bundles.

The app holds a reference to the connection manager and re-renders whenever the
manager reports a state change; it never mutates connection state itself.
"""

import sys
from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import Header, Footer, Static, Button, Input, DataTable

from faiss_viewer.core import config
from faiss_viewer.core.connection import ConnectionManager, ConnectionState
from faiss_viewer.core.errors import ViewerError
from util.logging import logger
from .views import (
    summary_lines,
    record_row,
    record_detail,
    search_results_text,
    parse_vector,
)

DETAIL_MAX_COMPONENTS = 64


class ViewerApp(App):
    """FAISS Bundle Viewer TUI Application."""

    CSS = """
    .title {
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
        color: blue;
    }

    .section-title {
        text-style: bold;
        color: cyan;
    }

    #summary {
        border: solid cyan;
        padding: 1;
        height: auto;
    }

    #controls {
        height: auto;
        margin-bottom: 1;
    }

    #bundle-path {
        width: 1fr;
    }

    #records {
        height: 1fr;
        border: solid white;
    }

    #detail {
        border: solid white;
        padding: 1;
        height: 1fr;
        overflow-y: auto;
    }
    """

    TITLE = "FAISS Bundle Viewer"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh_index", "Refresh"),
        ("d", "disconnect_index", "Disconnect"),
    ]

    def __init__(self, manager: Optional[ConnectionManager] = None, bundle_path: Optional[str] = None):
        super().__init__()
        self.manager = manager if manager is not None else ConnectionManager()
        self.bundle_path = bundle_path
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(
            Static("", id="summary"),
            Horizontal(
                Input(id="bundle-path", placeholder="Path to bundle JSON..."),
                Button("Connect", id="connect-button", variant="primary"),
                Button("Refresh", id="refresh-button", variant="success"),
                Button("Disconnect", id="disconnect-button", variant="error"),
                id="controls",
            ),
            Input(id="query-vector", placeholder="Query vector, e.g. 0.1, 0.2, 0.3"),
            DataTable(id="records", cursor_type="row"),
            Static("Select a record to see its details", id="detail"),
        )
        yield Footer()

    async def on_mount(self) -> None:
        """Subscribe to state changes and connect to the requested or last bundle."""
        table = self.query_one("#records", DataTable)
        table.add_columns("ID", "Role", "Thread ID", "Vector Length", "Content")

        self._unsubscribe = self.manager.on_state_changed(self.render_state)
        self.render_state()

        if self.bundle_path:
            await self.connect_to(self.bundle_path)
        elif config.is_auto_restore_enabled():
            await self.manager.restore()

    async def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        await self.manager.close()

    def render_state(self) -> None:
        """Re-read manager state and redraw summary and records table."""
        self.query_one("#summary", Static).update("\n".join(summary_lines(self.manager)))

        table = self.query_one("#records", DataTable)
        table.clear()
        if self.manager.get_connection_state() == ConnectionState.CONNECTED:
            for position, record in enumerate(self.manager.list_all_records()):
                table.add_row(*record_row(record), key=str(position))

    async def connect_to(self, path: str) -> None:
        try:
            await self.manager.connect(path)
            self.notify(f"Connected to {path}", title="Connected", severity="information")
        except ViewerError as e:
            self.notify(f"Failed to connect to FAISS index: {e}", title="Connection Failed", severity="error")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id

        if button_id == "connect-button":
            path = self.query_one("#bundle-path", Input).value.strip()
            if path:
                await self.connect_to(path)
        elif button_id == "refresh-button":
            await self.action_refresh_index()
        elif button_id == "disconnect-button":
            await self.action_disconnect_index()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "bundle-path":
            if event.value.strip():
                await self.connect_to(event.value.strip())
        elif event.input.id == "query-vector":
            await self.run_search(event.value)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        records = self.manager.list_all_records()
        position = int(event.row_key.value)
        if 0 <= position < len(records):
            detail = record_detail(records[position], max_components=DETAIL_MAX_COMPONENTS)
            self.query_one("#detail", Static).update(detail)

    async def run_search(self, text: str) -> None:
        try:
            vector = parse_vector(text)
        except ValueError as e:
            self.notify(f"Invalid query vector: {e}", title="Search", severity="warning")
            return

        try:
            hits = await self.manager.search(vector, config.get_default_top_k())
        except ViewerError as e:
            self.notify(f"Search failed: {e}", title="Search Failed", severity="error")
            return

        if hits is None:
            self.notify("Connect to an index before searching", title="Search", severity="warning")
            return
        self.query_one("#detail", Static).update(search_results_text(hits))

    async def action_refresh_index(self) -> None:
        try:
            await self.manager.refresh()
        except ViewerError as e:
            self.notify(f"Refresh failed: {e}", title="Refresh Failed", severity="error")

    async def action_disconnect_index(self) -> None:
        await self.manager.disconnect()
        self.query_one("#detail", Static).update("Select a record to see its details")


def main():
    """Viewer entry point. Optional first argument is a bundle path."""
    issues = config.validate_config()
    if issues:
        print(f"❌ Viewer configuration error: {'; '.join(issues)}")
        sys.exit(1)

    bundle_path = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        app = ViewerApp(bundle_path=bundle_path)
        app.run()
    except KeyboardInterrupt:
        print("\nℹ️  Viewer interrupted by user")
        logger.info("Viewer exited via keyboard interrupt")
    except Exception as e:
        error_msg = f"Viewer startup failed: {e}"
        print(f"❌ {error_msg}")
        logger.error(error_msg)
        sys.exit(1)

if __name__ == "__main__":
    main()
