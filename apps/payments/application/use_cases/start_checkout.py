from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from apps.payments.application.facade import PaymentsFacade
from apps.payments.domain.errors import CheckoutError, OrderServiceNotConfigured
from apps.payments.domain.ports import OrderServicePort
from apps.payments.domain.types import CheckoutRequest

logger = logging.getLogger("folio.payments")


@dataclass(frozen=True)
class StartCheckoutCommand:
    user_id: int | str | None
    article_id: int | str
    amount: Decimal | str
    currency: str = "USD"
    item_name: str = ""
    subscription_plan_id: int | str | None = None


@dataclass(frozen=True)
class StartCheckoutResult:
    approval_url: str
    provider_order_id: str | None


class StartCheckoutUseCase:
    @staticmethod
    def execute(cmd: StartCheckoutCommand, *, order_service: OrderServicePort | None = None) -> StartCheckoutResult:
        user_id = str(cmd.user_id or "").strip()
        if not user_id:
            raise CheckoutError("User information not available. Please login again.", cause="unauthorized")

        article_id = str(cmd.article_id or "").strip()
        if not article_id:
            raise CheckoutError("Article is required.", cause="invalid", field="article_id")

        try:
            amount = Decimal(str(cmd.amount))
        except (InvalidOperation, ValueError) as exc:
            raise CheckoutError("Amount is invalid.", cause="invalid", field="amount") from exc
        if not amount.is_finite() or amount <= 0:
            raise CheckoutError("Amount must be greater than zero.", cause="invalid", field="amount")

        currency = (cmd.currency or "USD").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise CheckoutError("Currency is invalid.", cause="invalid", field="currency")

        plan_id = str(cmd.subscription_plan_id).strip() if cmd.subscription_plan_id not in (None, "") else None
        checkout = CheckoutRequest(
            user_id=user_id,
            article_id=article_id,
            amount=amount,
            currency=currency,
            item_name=(cmd.item_name or "").strip()[:127],
            subscription_plan_id=plan_id,
        )

        try:
            service = order_service or PaymentsFacade.order_service()
        except OrderServiceNotConfigured as exc:
            logger.error("checkout_failed", extra={"cause": "not_configured", "detail": str(exc)})
            raise CheckoutError("Payments are not available right now.", cause="not_configured") from exc

        try:
            session = service.create_order(checkout=checkout)
        except CheckoutError as exc:
            logger.warning(
                "checkout_failed",
                extra={"cause": exc.cause, "article_id": article_id, "detail": str(exc)},
            )
            raise

        logger.info(
            "checkout_started",
            extra={"article_id": article_id, "provider_order_id": session.provider_order_id},
        )
        return StartCheckoutResult(approval_url=session.approval_url, provider_order_id=session.provider_order_id)
