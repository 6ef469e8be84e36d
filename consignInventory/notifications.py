"""Per-request notification hub feeding Django messages and HTMX triggers."""
from __future__ import annotations

import json
from typing import Callable

from django.contrib import messages

Subscriber = Callable[[str, str], None]

LEVELS = ("info", "success", "warning", "error")
REFRESH_EVENT = "settlements:refresh"


class Notifier:
    """
    Explicit publish/subscribe object owned by one request.

    Views call ``notify``; every subscriber receives ``(level, text)``. The
    collected events are written back to the browser with ``attach``.
    """

    def __init__(self, request=None, *, refresh_event: str = REFRESH_EVENT):
        self.request = request
        self.refresh_event = refresh_event
        self.events: list[dict] = []
        self.refresh = False
        self._subscribers: list[Subscriber] = []
        if request is not None:
            self.subscribe(self._to_messages)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns a function that removes it again."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, text: str, level: str = "info", *, refresh: bool = False) -> None:
        if level not in LEVELS:
            level = "info"
        self.events.append({"text": text, "level": level})
        self.refresh = self.refresh or refresh
        for callback in list(self._subscribers):
            callback(level, text)

    def success(self, text: str, **kwargs) -> None:
        self.notify(text, "success", **kwargs)

    def warning(self, text: str, **kwargs) -> None:
        self.notify(text, "warning", **kwargs)

    def error(self, text: str, *, refresh: bool = True) -> None:
        """Failures always ask the page to re-sync from the database."""
        self.notify(text, "error", refresh=refresh)

    def _to_messages(self, level: str, text: str) -> None:
        messages.add_message(self.request, getattr(messages, level.upper()), text)

    def trigger_payload(self) -> dict:
        payload: dict = {}
        if self.events:
            payload["showMessage"] = self.events[-1]
        if self.refresh:
            payload[self.refresh_event] = True
        return payload

    def attach(self, response):
        payload = self.trigger_payload()
        if payload:
            response["HX-Trigger"] = json.dumps(payload)
        return response
