"""Pending tab: publish or reject loads awaiting moderation."""

from __future__ import annotations

from typing import Any, Optional

from rich.text import Text
from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static

from adapters.load_formatting import format_load_message
from core.errors import CargoscopeError, NotFoundError

from ..modals import ConfirmScreen, PublishScreen
from ..rows import coerce_row_key, load_row

MARK = "●"


class PendingTab(Container):
    """Pending queue with single and bulk moderation actions."""

    BINDINGS = [("space", "toggle_mark", "Mark")]

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._current: Optional[str] = None
        self._marked: set[str] = set()
        self._table_ready = False

    def compose(self):
        with Vertical(id="pending-panel"):
            with Horizontal(id="pending-body"):
                with Container(id="pending-left"):
                    yield DataTable(id="pending-table", cursor_type="row")
                with Container(id="pending-right"):
                    yield Static("Preview", id="pending-title")
                    yield Static("", id="pending-preview")
            with Horizontal(id="pending-actions"):
                yield Button("Publish", id="pending-publish", variant="success")
                yield Button("Reject", id="pending-reject", variant="error")
                yield Button("Mark", id="pending-mark")
                yield Button("Publish marked", id="pending-publish-marked")
                yield Button("Reject marked", id="pending-reject-marked")

    def on_mount(self) -> None:
        table = self.query_one("#pending-table", DataTable)
        table.add_column("", key="mark", width=2)
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
        table = self.query_one("#pending-table", DataTable)
        table.clear()
        loads = self.app.services.queue.list_pending()
        present = {load.load_id for load in loads}
        self._marked &= present
        if self._current not in present:
            self._current = None
        for load in loads:
            mark = MARK if load.load_id in self._marked else ""
            table.add_row(mark, *load_row(load), key=load.load_id)
        self.query_one("#pending-title", Static).update(f"Preview ({len(loads)} pending, {len(self._marked)} marked)")
        self._show_preview()
        self._update_action_state()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        self._current = coerce_row_key(event.row_key)
        self._show_preview()
        self._update_action_state()

    def _show_preview(self) -> None:
        preview = self.query_one("#pending-preview", Static)
        if self._current is None:
            preview.update("")
            return
        try:
            load = self.app.services.queue.get_pending(self._current)
        except CargoscopeError as exc:
            preview.update(str(exc))
            return
        preview.update(Text(format_load_message(load, mode="markdown")))

    def _update_action_state(self) -> None:
        has_current = self._current is not None
        can_publish = self.app.services.publisher is not None
        self.query_one("#pending-publish", Button).disabled = not (has_current and can_publish)
        self.query_one("#pending-reject", Button).disabled = not has_current
        self.query_one("#pending-mark", Button).disabled = not has_current
        self.query_one("#pending-publish-marked", Button).disabled = not (self._marked and can_publish)
        self.query_one("#pending-reject-marked", Button).disabled = not self._marked

    def action_toggle_mark(self) -> None:
        if self._current is None:
            return
        if self._current in self._marked:
            self._marked.discard(self._current)
        else:
            self._marked.add(self._current)
        table = self.query_one("#pending-table", DataTable)
        table.update_cell(self._current, "mark", MARK if self._current in self._marked else "")
        self._update_action_state()

    @on(Button.Pressed, "#pending-mark")
    def _on_mark(self) -> None:
        self.action_toggle_mark()

    @on(Button.Pressed, "#pending-publish")
    def _on_publish(self) -> None:
        if self._current is None:
            return
        load_ids = [self._current]
        self._ask_publish(load_ids)

    @on(Button.Pressed, "#pending-publish-marked")
    def _on_publish_marked(self) -> None:
        if self._marked:
            self._ask_publish(sorted(self._marked))

    def _ask_publish(self, load_ids: list[str]) -> None:
        services = self.app.services
        default_topic = services.publish_config.default_topic_id if services.publish_config else None

        async def _handle(choice: dict[str, Any] | None) -> None:
            if choice is None:
                return
            await self._publish(load_ids, choice.get("topic_id"))

        self.app.push_screen(PublishScreen(len(load_ids), services.topics.list(), default_topic), _handle)

    async def _publish(self, load_ids: list[str], topic_id: Optional[int]) -> None:
        publisher = self.app.services.publisher
        if publisher is None:
            return
        try:
            if len(load_ids) == 1:
                message_id = await publisher.publish(load_ids[0], topic_id)
                self.app.set_status(f"published {load_ids[0]} (message {message_id})")
            else:
                report = await publisher.publish_many(load_ids, topic_id)
                self.app.set_status(
                    f"published {len(report.published)}, failed {len(report.failed)}, missing {len(report.missing)}"
                )
        except NotFoundError as exc:
            # Includes loads delivered just before an eviction or another moderator moved them.
            self.app.set_status(str(exc), error=True)
        except CargoscopeError as exc:
            self.app.set_status(f"publish failed: {exc}", error=True)
        self._marked.difference_update(load_ids)
        self.app.refresh_tabs()

    @on(Button.Pressed, "#pending-reject")
    def _on_reject(self) -> None:
        if self._current is None:
            return
        load_id = self._current

        def _handle(confirmed: bool | None) -> None:
            if not confirmed:
                return
            try:
                self.app.services.queue.reject(load_id)
                self.app.set_status(f"rejected {load_id}")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)
            self.app.refresh_tabs()

        self.app.push_screen(ConfirmScreen("Reject load?", load_id, "Reject"), _handle)

    @on(Button.Pressed, "#pending-reject-marked")
    def _on_reject_marked(self) -> None:
        load_ids = sorted(self._marked)
        if not load_ids:
            return

        def _handle(confirmed: bool | None) -> None:
            if not confirmed:
                return
            try:
                result = self.app.services.queue.reject_many(load_ids)
                self.app.set_status(f"rejected {result.applied_count}, not pending {len(result.missing)}")
            except CargoscopeError as exc:
                self.app.set_status(str(exc), error=True)
            self._marked.difference_update(load_ids)
            self.app.refresh_tabs()

        self.app.push_screen(ConfirmScreen("Reject marked loads?", f"{len(load_ids)} loads", "Reject"), _handle)
