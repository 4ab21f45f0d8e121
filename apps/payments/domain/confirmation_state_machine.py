from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from apps.payments.domain.errors import InvalidTransitionError


class ConfirmationStatus(StrEnum):
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ConfirmationEvent(StrEnum):
    CREDENTIALS_MISSING = "credentials_missing"
    VERIFICATION_FAILED = "verification_failed"
    CAPTURE_FAILED = "capture_failed"
    CAPTURED = "captured"


REASON_MISSING_CREDENTIALS = "missing credentials"
REASON_VERIFICATION_FAILED = "verification failed"
REASON_CAPTURE_FAILED = "capture failed"


@dataclass(frozen=True)
class ConfirmationState:
    status: ConfirmationStatus
    reason: str = ""

    @classmethod
    def processing(cls) -> "ConfirmationState":
        return cls(status=ConfirmationStatus.PROCESSING)

    @classmethod
    def succeeded(cls) -> "ConfirmationState":
        return cls(status=ConfirmationStatus.SUCCEEDED)

    @classmethod
    def failed(cls, reason: str) -> "ConfirmationState":
        return cls(status=ConfirmationStatus.FAILED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.status != ConfirmationStatus.PROCESSING

    def to_dict(self) -> dict:
        return {"status": str(self.status), "reason": self.reason}

    @classmethod
    def from_dict(cls, data: dict) -> "ConfirmationState":
        return cls(status=ConfirmationStatus(data["status"]), reason=data.get("reason") or "")


class ConfirmationStateMachine:
    """
    Post-checkout confirmation flow.

    Every transition leaves `processing` and lands on a terminal state; there is
    no way back. A fresh attempt starts from a new `processing` state.
    """

    _TRANSITIONS: dict[ConfirmationEvent, ConfirmationState] = {
        ConfirmationEvent.CREDENTIALS_MISSING: ConfirmationState.failed(REASON_MISSING_CREDENTIALS),
        ConfirmationEvent.VERIFICATION_FAILED: ConfirmationState.failed(REASON_VERIFICATION_FAILED),
        ConfirmationEvent.CAPTURE_FAILED: ConfirmationState.failed(REASON_CAPTURE_FAILED),
        ConfirmationEvent.CAPTURED: ConfirmationState.succeeded(),
    }

    @staticmethod
    def initial() -> ConfirmationState:
        return ConfirmationState.processing()

    @classmethod
    def apply(cls, state: ConfirmationState, event: ConfirmationEvent) -> ConfirmationState:
        if state.is_terminal:
            raise InvalidTransitionError(f"Invalid transition: {state.status} -> {event}")
        return cls._TRANSITIONS[event]
