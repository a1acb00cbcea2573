"""Topics tab."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable

from core.errors import CargoscopeError

from ..modals import AddTopicScreen, ConfirmScreen
from ..rows import coerce_row_key


class TopicsTab(Container):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._current: Optional[int] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="topics-panel"):
            yield DataTable(id="topics-table", cursor_type="row")
            with Horizontal(id="topics-actions"):
                yield Button("Add", id="topics-add", variant="success")
                yield Button("Remove", id="topics-remove", variant="error")

    def on_mount(self) -> None:
        table = self.query_one("#topics-table", DataTable)
        table.add_column("name", key="name", width=30)
        table.add_column("topic id", key="topic_id", width=12)
        table.zebra_stripes = True
        self._table_ready = True
        self.refresh_rows()

    def refresh_rows(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#topics-table", DataTable)
        table.clear()
        topics = self.app.services.topics.list()
        if self._current not in {topic.entry_key for topic in topics}:
            self._current = None
        for topic in topics:
            table.add_row(topic.name, str(topic.topic_id), key=str(topic.entry_key))
        self.query_one("#topics-remove", Button).disabled = self._current is None

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        self._current = int(coerce_row_key(event.row_key))
        self.query_one("#topics-remove", Button).disabled = False

    @on(Button.Pressed, "#topics-add")
    def _on_add(self) -> None:
        def _handle(payload: dict[str, Any] | None) -> None:
            if payload is None:
                return
            try:
                topic = self.app.services.topics.add(payload["name"], payload["topic_id"])
                self.app.set_status(f"added topic {topic.name}")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)
            self.refresh_rows()

        self.app.push_screen(AddTopicScreen(), _handle)

    @on(Button.Pressed, "#topics-remove")
    def _on_remove(self) -> None:
        if self._current is None:
            return
        entry_key = self._current

        def _handle(confirmed: bool | None) -> None:
            if not confirmed:
                return
            try:
                self.app.services.topics.remove(entry_key)
                self.app.set_status("topic removed")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)
            self.refresh_rows()

        self.app.push_screen(ConfirmScreen("Remove topic?", "", "Remove"), _handle)
