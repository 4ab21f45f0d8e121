from __future__ import annotations

from dataclasses import dataclass

from django.contrib import messages
from django.http import HttpRequest

from apps.payments.domain.ports import NotificationLevel

_MESSAGE_LEVELS = {
    NotificationLevel.INFO: messages.INFO,
    NotificationLevel.SUCCESS: messages.SUCCESS,
    NotificationLevel.ERROR: messages.ERROR,
}


class MessagesNotifier:
    """Django messages framework sink; rendered as toasts by the base layout."""

    def __init__(self, request: HttpRequest) -> None:
        self._request = request

    def notify(self, *, level: NotificationLevel, message: str) -> None:
        messages.add_message(self._request, _MESSAGE_LEVELS[level], message, fail_silently=True)


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str


class CollectingNotifier:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, *, level: NotificationLevel, message: str) -> None:
        self.notifications.append(Notification(level=level, message=message))

    def as_list(self) -> list[dict]:
        return [{"level": str(item.level), "message": item.message} for item in self.notifications]
