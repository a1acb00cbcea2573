"""Published tab: markers of loads already sent to the chat."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable

from core.errors import CargoscopeError

from ..modals import ConfirmScreen
from ..rows import coerce_row_key


class PublishedTab(Container):
    """Published markers. Retracting deletes the message, never the marker."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._current: Optional[str] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="published-panel"):
            yield DataTable(id="published-table", cursor_type="row")
            with Horizontal(id="published-actions"):
                yield Button("Delete message", id="published-retract", variant="error")

    def on_mount(self) -> None:
        table = self.query_one("#published-table", DataTable)
        table.add_column("load", key="load", width=14)
        table.add_column("published at", key="published_at", width=22)
        table.add_column("chat", key="chat", width=18)
        table.add_column("message", key="message", width=10)
        table.zebra_stripes = True
        self._table_ready = True
        self.refresh_rows()

    def refresh_rows(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#published-table", DataTable)
        table.clear()
        markers = self.app.services.queue.list_published()
        if self._current not in {marker.load_id for marker in markers}:
            self._current = None
        for marker in markers:
            table.add_row(
                marker.load_id,
                marker.published_at.strftime("%Y-%m-%d %H:%M:%S"),
                marker.chat_id or "",
                "" if marker.message_id is None else str(marker.message_id),
                key=marker.load_id,
            )
        self._update_action_state()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        self._current = coerce_row_key(event.row_key)
        self._update_action_state()

    def _update_action_state(self) -> None:
        disabled = self._current is None or self.app.services.publisher is None
        self.query_one("#published-retract", Button).disabled = disabled

    @on(Button.Pressed, "#published-retract")
    def _on_retract(self) -> None:
        publisher = self.app.services.publisher
        if self._current is None or publisher is None:
            return
        load_id = self._current

        async def _handle(confirmed: bool | None) -> None:
            if not confirmed:
                return
            try:
                await publisher.retract(load_id)
                self.app.set_status(f"deleted message of {load_id}")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)

        self.app.push_screen(
            ConfirmScreen("Delete chat message?", f"load {load_id} stays marked as published", "Delete"),
            _handle,
        )
