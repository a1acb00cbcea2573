"""Whitelist tab: trusted logisticians whose loads enter the queue."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable

from core.errors import CargoscopeError

from ..modals import AddActorScreen, ConfirmScreen
from ..rows import clip_text, coerce_row_key


class WhitelistTab(Container):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._current: Optional[int] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="whitelist-panel"):
            yield DataTable(id="whitelist-table", cursor_type="row")
            with Horizontal(id="whitelist-actions"):
                yield Button("Add", id="whitelist-add", variant="success")
                yield Button("Remove", id="whitelist-remove", variant="error")
                yield Button("Refresh contacts", id="whitelist-refresh")

    def on_mount(self) -> None:
        table = self.query_one("#whitelist-table", DataTable)
        table.add_column("actor", key="actor", width=10)
        table.add_column("name", key="name", width=28)
        table.add_column("phone", key="phone", width=16)
        table.add_column("telegram", key="telegram", width=16)
        table.add_column("added", key="added", width=20)
        table.zebra_stripes = True
        self._table_ready = True
        self.refresh_rows()

    def refresh_rows(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#whitelist-table", DataTable)
        table.clear()
        entries = self.app.services.whitelist.list()
        if self._current not in {entry.entry_key for entry in entries}:
            self._current = None
        for entry in entries:
            table.add_row(
                str(entry.actor_id),
                clip_text(entry.name, 28),
                entry.phone or "",
                entry.telegram or "",
                entry.added_at.strftime("%Y-%m-%d %H:%M") if entry.added_at else "",
                key=str(entry.entry_key),
            )
        self.query_one("#whitelist-remove", Button).disabled = self._current is None

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        self._current = int(coerce_row_key(event.row_key))
        self.query_one("#whitelist-remove", Button).disabled = False

    @on(Button.Pressed, "#whitelist-add")
    def _on_add(self) -> None:
        async def _handle(payload: dict[str, Any] | None) -> None:
            if payload is None:
                return
            whitelist = self.app.services.whitelist
            try:
                if payload.get("actor_id") is not None:
                    entry = whitelist.add(
                        payload["actor_id"],
                        payload["name"],
                        phone=payload.get("phone"),
                        telegram=payload.get("telegram"),
                    )
                else:
                    entry = await whitelist.add_by_phone(payload["phone"], payload.get("telegram"))
                self.app.set_status(f"whitelisted {entry.name} ({entry.actor_id}); sync requested")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)
            self.refresh_rows()

        self.app.push_screen(AddActorScreen(), _handle)

    @on(Button.Pressed, "#whitelist-remove")
    def _on_remove(self) -> None:
        if self._current is None:
            return
        entry_key = self._current

        def _handle(confirmed: bool | None) -> None:
            if not confirmed:
                return
            try:
                self.app.services.whitelist.remove(entry_key)
                self.app.set_status("removed from whitelist; sync requested")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)
            self.refresh_rows()

        self.app.push_screen(
            ConfirmScreen("Remove from whitelist?", "Their pending loads leave the queue on the next sync", "Remove"),
            _handle,
        )

    @on(Button.Pressed, "#whitelist-refresh")
    async def _on_refresh(self) -> None:
        try:
            updated = await self.app.services.whitelist.refresh_contacts()
            self.app.set_status(f"refreshed {updated} contacts")
        except CargoscopeError as exc:
            self.app.set_status(str(exc), error=True)
        self.refresh_rows()
