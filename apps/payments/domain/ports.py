from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from apps.payments.domain.confirmation_state_machine import ConfirmationState
from apps.payments.domain.types import (
    CaptureResult,
    CheckoutRequest,
    CheckoutSession,
    OrderVerification,
    RedirectContext,
)


class NotificationLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class RecordedOutcome:
    state: ConfirmationState
    article_id: str | None = None


class OrderServicePort(Protocol):
    code: str
    name: str

    def verify_order(self, *, context: RedirectContext) -> OrderVerification:
        ...

    def capture_order(self, *, verification: OrderVerification) -> CaptureResult:
        ...

    def create_order(self, *, checkout: CheckoutRequest) -> CheckoutSession:
        ...


class ConfirmationRegistryPort(Protocol):
    def acquire(self, key: str) -> bool:
        ...

    def release(self, key: str) -> None:
        ...

    def recorded(self, key: str) -> RecordedOutcome | None:
        ...

    def record(self, key: str, outcome: RecordedOutcome) -> None:
        ...

    def discard_failure(self, key: str) -> bool:
        ...


class NotifierPort(Protocol):
    def notify(self, *, level: NotificationLevel, message: str) -> None:
        ...


class NavigatorPort(Protocol):
    def navigate(self, *, target: str, delay_seconds: int) -> None:
        ...
