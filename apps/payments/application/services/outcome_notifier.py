from __future__ import annotations

from django.conf import settings

from apps.payments.domain.confirmation_state_machine import (
    REASON_CAPTURE_FAILED,
    REASON_MISSING_CREDENTIALS,
    REASON_VERIFICATION_FAILED,
    ConfirmationState,
    ConfirmationStatus,
)
from apps.payments.domain.policies import success_redirect_url
from apps.payments.domain.ports import NavigatorPort, NotificationLevel, NotifierPort

SUCCESS_MESSAGE = "Payment successful! Your article is now unlocked."
PROCESSING_MESSAGE = "Your payment is already being processed. Please wait a moment."

_FAILURE_HINTS = {
    REASON_MISSING_CREDENTIALS: "The payment provider did not send back the payment details.",
    REASON_VERIFICATION_FAILED: "We could not verify your payment with the provider.",
    REASON_CAPTURE_FAILED: "Your payment was verified but could not be completed.",
}


def failure_message(reason: str) -> str:
    hint = _FAILURE_HINTS.get(reason, "Something went wrong while processing your payment.")
    return f"Payment failed ({reason}). {hint} Please try again."


class OutcomeNotifier:
    @staticmethod
    def redirect_target(*, article_id: str | None) -> str:
        template = getattr(settings, "PAYMENTS_SUCCESS_REDIRECT_URL", "/articles/{article_id}/")
        return success_redirect_url(template=template, article_id=article_id)

    @staticmethod
    def announce(
        state: ConfirmationState,
        *,
        article_id: str | None,
        notifier: NotifierPort,
        navigator: NavigatorPort,
    ) -> None:
        if state.status == ConfirmationStatus.SUCCEEDED:
            notifier.notify(level=NotificationLevel.SUCCESS, message=SUCCESS_MESSAGE)
            navigator.navigate(
                target=OutcomeNotifier.redirect_target(article_id=article_id),
                delay_seconds=int(getattr(settings, "PAYMENTS_SUCCESS_REDIRECT_DELAY_SECONDS", 3)),
            )
            return
        if state.status == ConfirmationStatus.FAILED:
            notifier.notify(level=NotificationLevel.ERROR, message=failure_message(state.reason))
            return
        notifier.notify(level=NotificationLevel.INFO, message=PROCESSING_MESSAGE)
