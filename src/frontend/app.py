"""Main Textual app for the Cargoscope moderation console."""

from __future__ import annotations

import logging
import os
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import ContentSwitcher, Footer, Static, Tab, Tabs

import settings
from core.errors import CargoscopeError
from core.worker import SyncOutcome
from services import Services

from .constants import ERROR_RED, SUCCESS_GREEN, TELEGRAM_BLUE
from .tabs.pending import PendingTab
from .tabs.published import PublishedTab
from .tabs.rejected import RejectedTab
from .tabs.topics import TopicsTab
from .tabs.whitelist import WhitelistTab

LOGGER = logging.getLogger(__name__)


class ModerationApp(App):
    """Moderation console over the pending, rejected and published sets."""

    BINDINGS = [
        ("ctrl+r", "rescan", "Rescan"),
        ("q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
    ]

    CSS = f"""
    Screen {{
        background: #0f1a21;
        color: #e8eef5;
    }}

    #header {{
        height: 7;
        padding: 1 4;
        border-bottom: solid #2a3a46;
    }}

    #header-left, #header-right {{
        width: 1fr;
    }}

    #header-right {{
        text-align: right;
    }}

    #title {{
        text-style: bold;
    }}

    .subtle {{
        color: #c6d2dd;
    }}

    #tabs-bar {{
        height: 4;
        padding: 0 4;
        border-bottom: solid #2a3a46;
    }}

    #tabs {{
        width: auto;
    }}

    #content {{
        height: 1fr;
        padding: 0 2;
    }}

    DataTable {{
        height: 1fr;
    }}

    #pending-left {{
        width: 3fr;
    }}

    #pending-right {{
        width: 2fr;
        padding: 0 1;
        border-left: solid #2a3a46;
    }}

    #pending-title {{
        text-style: bold;
    }}

    #pending-actions, #rejected-actions, #published-actions,
    #whitelist-actions, #topics-actions {{
        height: 3;
    }}

    .status-ok {{
        color: {SUCCESS_GREEN};
    }}

    .status-error {{
        color: {ERROR_RED};
    }}

    .modal-dialog {{
        width: 60;
        height: auto;
        padding: 1 2;
        background: #16242e;
        border: solid {TELEGRAM_BLUE};
    }}

    .modal-title {{
        text-style: bold;
    }}

    .modal-error {{
        color: {ERROR_RED};
    }}

    .modal-actions {{
        height: 3;
        margin-top: 1;
    }}

    ModalScreen {{
        align: center middle;
    }}
    """

    def __init__(self, services: Services, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.services = services

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static("", id="status-line")
                with Vertical(id="header-right"):
                    yield Static(f"db: {os.path.basename(settings.DB_PATH)}", classes="subtle")
                    yield Static(self._publish_text(), classes="subtle")
                    yield Static("sync: waiting", id="sync-status", classes="subtle")

        with Container(id="tabs-bar"):
            with Center(id="tabs-center"):
                yield Tabs(
                    Tab("Pending", id="pending"),
                    Tab("Rejected", id="rejected"),
                    Tab("Published", id="published"),
                    Tab("Whitelist", id="whitelist"),
                    Tab("Topics", id="topics"),
                    id="tabs",
                )

        with ContentSwitcher(id="content", initial="pending"):
            yield PendingTab(id="pending")
            yield RejectedTab(id="rejected")
            yield PublishedTab(id="published")
            yield WhitelistTab(id="whitelist")
            yield TopicsTab(id="topics")
        yield Footer()

    async def on_mount(self) -> None:
        try:
            await self.services.start()
        except CargoscopeError as exc:
            LOGGER.error("Could not start services: %s", exc)
            self.set_status(str(exc), error=True)
        worker = self.services.worker
        worker.on_outcome = self._on_sync_outcome
        self.run_worker(
            worker.run_forever(run_on_start=self.services.sync_config.run_on_start),
            name="sync",
            exclusive=True,
        )

    async def on_unmount(self) -> None:
        await self.services.close()

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or ""
        if not tab_id:
            return
        self.query_one("#content", ContentSwitcher).current = tab_id

    def action_rescan(self) -> None:
        self.services.worker.request("manual rescan")
        self.set_status("rescan requested")

    def set_status(self, message: str, error: bool = False) -> None:
        status = self.query_one("#status-line", Static)
        status.remove_class("status-ok", "status-error")
        status.add_class("status-error" if error else "status-ok")
        status.update(message)

    def refresh_tabs(self) -> None:
        for tab_type in (PendingTab, RejectedTab, PublishedTab):
            self.query_one(tab_type).refresh_rows()

    def _on_sync_outcome(self, outcome: SyncOutcome) -> None:
        status = self.query_one("#sync-status", Static)
        stamp = outcome.finished_at.astimezone().strftime("%H:%M:%S")
        if outcome.ok and outcome.result is not None:
            status.update(
                f"sync {stamp}: +{outcome.result.newly_queued} -{outcome.result.evicted} ({outcome.reason})"
            )
        else:
            status.update(Text(f"sync {stamp} failed: {outcome.error}", style=ERROR_RED))
        self.refresh_tabs()

    def _publish_text(self) -> str:
        config = self.services.publish_config
        if config is None:
            return "publishing: disabled"
        return f"publishing: {settings.PUBLISH_METHOD} -> {config.chat_id}"

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("CARGO", TELEGRAM_BLUE),
            ("SCOPE > Moderation", "bold"),
        )
