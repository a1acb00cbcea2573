"""Modal dialogs for the moderation console."""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Select, Static

from core.models import Topic

from .validators import parse_positive_int, parse_telegram_handle, phone_error


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no confirmation for destructive actions."""

    def __init__(self, title: str, body: str, confirm_label: str = "Confirm") -> None:
        super().__init__()
        self._title = title
        self._body = body
        self._confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        yield Container(
            Static(self._title, classes="modal-title"),
            Static(self._body, classes="modal-body"),
            Horizontal(
                Button(self._confirm_label, id="confirm-yes", variant="error"),
                Button("Cancel", id="confirm-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm-yes")


class AddActorScreen(ModalScreen[dict[str, Any] | None]):
    """Whitelist an actor by ATI id, or by phone number lookup."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Add logistician", classes="modal-title"),
            Static("", id="actor-error", classes="modal-error"),
            Static("ATI contact id (or leave empty and use phone)", classes="form-label"),
            Input(placeholder="1123", id="actor-id"),
            Static("name", classes="form-label"),
            Input(placeholder="Name", id="actor-name"),
            Static("phone", classes="form-label"),
            Input(placeholder="+7 (937) 004-64-92", id="actor-phone"),
            Static("telegram (optional)", classes="form-label"),
            Input(placeholder="@handle", id="actor-telegram"),
            Horizontal(
                Button("Add", id="actor-confirm", variant="success"),
                Button("Cancel", id="actor-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "actor-cancel":
            self.dismiss(None)
            return
        if event.button.id != "actor-confirm":
            return
        raw_id = self.query_one("#actor-id", Input).value
        name = self.query_one("#actor-name", Input).value.strip()
        phone = self.query_one("#actor-phone", Input).value.strip()
        telegram = parse_telegram_handle(self.query_one("#actor-telegram", Input).value)
        error = self.query_one("#actor-error", Static)

        if raw_id.strip():
            parsed = parse_positive_int(raw_id, "contact id")
            if parsed.error:
                error.update(parsed.error)
                return
            if not name:
                error.update("name is required when adding by id")
                return
            self.dismiss(
                {"actor_id": parsed.value, "name": name, "phone": phone or None, "telegram": telegram}
            )
            return

        problem = phone_error(phone)
        if problem:
            error.update(problem)
            return
        self.dismiss({"phone": phone, "telegram": telegram})


class AddTopicScreen(ModalScreen[dict[str, Any] | None]):
    def compose(self) -> ComposeResult:
        yield Container(
            Static("Add topic", classes="modal-title"),
            Static("", id="topic-error", classes="modal-error"),
            Static("name", classes="form-label"),
            Input(placeholder="Refrigerated", id="topic-name"),
            Static("topic id (message_thread_id)", classes="form-label"),
            Input(placeholder="42", id="topic-id"),
            Horizontal(
                Button("Add", id="topic-confirm", variant="success"),
                Button("Cancel", id="topic-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "topic-cancel":
            self.dismiss(None)
            return
        if event.button.id != "topic-confirm":
            return
        name = self.query_one("#topic-name", Input).value.strip()
        parsed = parse_positive_int(self.query_one("#topic-id", Input).value, "topic id")
        error = self.query_one("#topic-error", Static)
        if not name:
            error.update("name is required")
            return
        if parsed.error:
            error.update(parsed.error)
            return
        self.dismiss({"name": name, "topic_id": parsed.value})


class PublishScreen(ModalScreen[dict[str, Any] | None]):
    """Pick the destination topic before publishing."""

    def __init__(self, count: int, topics: list[Topic], default_topic_id: int | None) -> None:
        super().__init__()
        self._count = count
        self._topics = topics
        self._default_topic_id = default_topic_id

    def compose(self) -> ComposeResult:
        options = [(f"{topic.name} ({topic.topic_id})", topic.topic_id) for topic in self._topics]
        known = {topic.topic_id for topic in self._topics}
        initial = self._default_topic_id if self._default_topic_id in known else Select.BLANK
        yield Container(
            Static(f"Publish {self._count} load(s)?", classes="modal-title"),
            Static("topic (empty: configured default)", classes="form-label"),
            Select(options, prompt="default", allow_blank=True, value=initial, id="publish-topic"),
            Horizontal(
                Button("Publish", id="publish-confirm", variant="success"),
                Button("Cancel", id="publish-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "publish-confirm":
            self.dismiss(None)
            return
        value = self.query_one("#publish-topic", Select).value
        self.dismiss({"topic_id": value if isinstance(value, int) else None})
