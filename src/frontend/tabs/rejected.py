"""Rejected tab: restore or purge declined loads."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable

from core.errors import CargoscopeError

from ..modals import ConfirmScreen
from ..rows import coerce_row_key, load_row


class RejectedTab(Container):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._current: Optional[str] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="rejected-panel"):
            yield DataTable(id="rejected-table", cursor_type="row")
            with Horizontal(id="rejected-actions"):
                yield Button("Restore", id="rejected-restore", variant="success")
                yield Button("Delete forever", id="rejected-purge", variant="error")

    def on_mount(self) -> None:
        table = self.query_one("#rejected-table", DataTable)
        table.add_column("load", key="load", width=12)
        table.add_column("route", key="route", width=20)
        table.add_column("cargo", key="cargo", width=16)
        table.add_column("rate", key="rate", width=10)
        table.add_column("contacts", key="contacts", width=16)
        table.zebra_stripes = True
        self._table_ready = True
        self.refresh_rows()

    def refresh_rows(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#rejected-table", DataTable)
        table.clear()
        loads = self.app.services.queue.list_rejected()
        if self._current not in {load.load_id for load in loads}:
            self._current = None
        for load in loads:
            table.add_row(*load_row(load), key=load.load_id)
        self._update_action_state()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        self._current = coerce_row_key(event.row_key)
        self._update_action_state()

    def _update_action_state(self) -> None:
        self.query_one("#rejected-restore", Button).disabled = self._current is None
        self.query_one("#rejected-purge", Button).disabled = self._current is None

    @on(Button.Pressed, "#rejected-restore")
    def _on_restore(self) -> None:
        if self._current is None:
            return
        try:
            self.app.services.queue.restore(self._current)
            self.app.set_status(f"restored {self._current}")
        except CargoscopeError as exc:
            self.app.set_status(str(exc), error=True)
        self.app.refresh_tabs()

    @on(Button.Pressed, "#rejected-purge")
    def _on_purge(self) -> None:
        if self._current is None:
            return
        load_id = self._current

        def _handle(confirmed: bool | None) -> None:
            if not confirmed:
                return
            try:
                self.app.services.queue.purge(load_id)
                self.app.set_status(f"deleted {load_id}")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)
            self.app.refresh_tabs()

        self.app.push_screen(ConfirmScreen("Delete load forever?", load_id, "Delete"), _handle)
