from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from apps.payments.application.facade import PaymentsFacade
from apps.payments.application.services.outcome_notifier import OutcomeNotifier
from apps.payments.domain.confirmation_state_machine import (
    ConfirmationEvent,
    ConfirmationState,
    ConfirmationStateMachine,
    ConfirmationStatus,
)
from apps.payments.domain.errors import (
    CaptureFailedError,
    MissingCredentialsError,
    OrderServiceNotConfigured,
    VerificationError,
)
from apps.payments.domain.policies import read_redirect_context
from apps.payments.domain.ports import (
    ConfirmationRegistryPort,
    NavigatorPort,
    NotifierPort,
    OrderServicePort,
    RecordedOutcome,
)
from apps.payments.domain.types import RedirectContext

logger = logging.getLogger("folio.payments")


@dataclass(frozen=True)
class ConfirmPaymentCommand:
    query_params: Mapping[str, str]
    notifier: NotifierPort
    navigator: NavigatorPort
    retry: bool = False


@dataclass(frozen=True)
class ConfirmPaymentResult:
    state: ConfirmationState
    context: RedirectContext | None = None
    article_id: str | None = None
    replayed: bool = False
    in_flight: bool = False

    @property
    def retry_allowed(self) -> bool:
        return self.state.status == ConfirmationStatus.FAILED and self.context is not None


class ConfirmPaymentUseCase:
    """
    Verify a returning checkout with the order service, then capture it.

    One attempt per `(token, PayerID)` runs at a time; concurrent entries see
    `processing`. A terminal outcome is recorded and replayed on re-entry
    without any outbound call. `retry=True` discards a recorded failure so a
    fresh attempt can run; a recorded success is never captured again.
    Failures end in a terminal state, they are not raised.
    """

    @staticmethod
    def execute(
        cmd: ConfirmPaymentCommand,
        *,
        order_service: OrderServicePort | None = None,
        registry: ConfirmationRegistryPort | None = None,
    ) -> ConfirmPaymentResult:
        result = ConfirmPaymentUseCase._run(cmd, order_service=order_service, registry=registry)
        OutcomeNotifier.announce(
            result.state,
            article_id=result.article_id,
            notifier=cmd.notifier,
            navigator=cmd.navigator,
        )
        return result

    @staticmethod
    def _run(
        cmd: ConfirmPaymentCommand,
        *,
        order_service: OrderServicePort | None,
        registry: ConfirmationRegistryPort | None,
    ) -> ConfirmPaymentResult:
        state = ConfirmationStateMachine.initial()
        try:
            context = read_redirect_context(cmd.query_params)
        except MissingCredentialsError as exc:
            logger.warning("payment_confirmation_failed", extra={"cause": exc.cause})
            return ConfirmPaymentResult(
                state=ConfirmationStateMachine.apply(state, ConfirmationEvent.CREDENTIALS_MISSING)
            )

        registry = registry or PaymentsFacade.confirmation_registry()
        key = context.dedup_key

        recorded = registry.recorded(key)
        if recorded is not None and not (cmd.retry and recorded.state.status == ConfirmationStatus.FAILED):
            return ConfirmPaymentResult(
                state=recorded.state, context=context, article_id=recorded.article_id, replayed=True
            )

        if not registry.acquire(key):
            logger.info("payment_confirmation_in_flight", extra={"dedup_key": key})
            return ConfirmPaymentResult(state=state, context=context, in_flight=True)

        release_lock = True
        try:
            # Outcomes only change under the lock, so this read is authoritative.
            recorded = registry.recorded(key)
            if recorded is not None:
                if not (cmd.retry and recorded.state.status == ConfirmationStatus.FAILED):
                    return ConfirmPaymentResult(
                        state=recorded.state, context=context, article_id=recorded.article_id, replayed=True
                    )
                registry.discard_failure(key)
                logger.info("payment_confirmation_retry", extra={"dedup_key": key})

            state, article_id = ConfirmPaymentUseCase._verify_and_capture(
                state, context=context, order_service=order_service
            )
            try:
                registry.record(key, RecordedOutcome(state=state, article_id=article_id))
            except Exception:
                # Without a record, the lock is all that stops a second capture until its TTL runs out.
                release_lock = False
                logger.exception(
                    "payment_outcome_record_failed",
                    extra={"dedup_key": key, "status": str(state.status)},
                )
        finally:
            if release_lock:
                registry.release(key)

        return ConfirmPaymentResult(state=state, context=context, article_id=article_id)

    @staticmethod
    def _verify_and_capture(
        state: ConfirmationState,
        *,
        context: RedirectContext,
        order_service: OrderServicePort | None,
    ) -> tuple[ConfirmationState, str | None]:
        key = context.dedup_key
        try:
            service = order_service or PaymentsFacade.order_service()
            verification = service.verify_order(context=context)
        except VerificationError as exc:
            logger.warning(
                "payment_verification_failed",
                extra={"cause": exc.cause, "dedup_key": key, "detail": str(exc)},
            )
            return ConfirmationStateMachine.apply(state, ConfirmationEvent.VERIFICATION_FAILED), None
        except OrderServiceNotConfigured as exc:
            logger.error(
                "payment_verification_failed",
                extra={"cause": "not_configured", "dedup_key": key, "detail": str(exc)},
            )
            return ConfirmationStateMachine.apply(state, ConfirmationEvent.VERIFICATION_FAILED), None

        try:
            service.capture_order(verification=verification)
        except CaptureFailedError as exc:
            logger.error(
                "payment_capture_failed",
                extra={
                    "cause": exc.cause,
                    "dedup_key": key,
                    "order_id": verification.order_id,
                    "detail": str(exc),
                },
            )
            return ConfirmationStateMachine.apply(state, ConfirmationEvent.CAPTURE_FAILED), verification.article_id

        logger.info(
            "payment_captured",
            extra={"dedup_key": key, "order_id": verification.order_id, "article_id": verification.article_id},
        )
        return ConfirmationStateMachine.apply(state, ConfirmationEvent.CAPTURED), verification.article_id
