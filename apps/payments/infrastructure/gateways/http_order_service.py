from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import uuid4

import requests

from apps.payments.domain.errors import CaptureFailedError, CheckoutError, VerificationError
from apps.payments.domain.types import (
    CaptureResult,
    CheckoutRequest,
    CheckoutSession,
    OrderVerification,
    RedirectContext,
)

logger = logging.getLogger("folio.payments")

VERIFY_PATH = "paypal/return"
CAPTURE_PATH = "paypal/capture-order"
CREATE_ORDER_PATH = "paypal/create-order"


class _CallFailed(Exception):
    def __init__(self, message: str, *, cause: str, status_code: int | None = None):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code


class HttpOrderServiceGateway:
    """
    Client for the backend order service that fronts the payment provider.

    Every call is bounded by `timeout`; a timeout is reported exactly like any
    other failed call. Nothing is retried here.
    """

    code = "http"
    name = "Order service (HTTP)"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._api_key = api_key
        self._timeout = float(timeout)
        self._session = session or requests.Session()

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if extra:
            headers.update(extra)
        return headers

    def _call(self, method: str, path: str, *, operation: str, **kwargs: Any) -> dict:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.exceptions.Timeout as exc:
            raise _CallFailed(f"{operation} timed out.", cause="timeout") from exc
        except requests.exceptions.RequestException as exc:
            raise _CallFailed(f"{operation} request failed: {exc}", cause="network") from exc

        logger.info(
            "order_service_response",
            extra={"operation": operation, "status_code": response.status_code},
        )
        if not 200 <= response.status_code < 300:
            raise _CallFailed(
                f"{operation} returned HTTP {response.status_code}.",
                cause="http_status",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise _CallFailed(f"{operation} returned a non-JSON body.", cause="malformed_response") from exc
        if not isinstance(data, dict):
            raise _CallFailed(f"{operation} returned an unexpected body.", cause="malformed_response")
        if data.get("success") is not True:
            raise _CallFailed(f"{operation} was rejected by the order service.", cause="rejected")
        return data

    def verify_order(self, *, context: RedirectContext) -> OrderVerification:
        params = {
            "token": context.transaction_token,
            "payerId": context.payer_id,
            "_": uuid4().hex,
        }
        try:
            data = self._call(
                "GET",
                VERIFY_PATH,
                operation="verify",
                params=params,
                headers=self._headers({"Cache-Control": "no-cache", "Pragma": "no-cache"}),
            )
        except _CallFailed as exc:
            raise VerificationError(str(exc), cause=exc.cause) from exc

        order = data.get("order") if isinstance(data.get("order"), dict) else {}
        values = {
            "provider_order_id": data.get("paypal_order_id"),
            "order_id": order.get("id"),
            "article_id": order.get("article_id"),
            "user_id": order.get("user_id"),
        }
        missing = sorted(key for key, value in values.items() if value in (None, ""))
        if missing:
            raise VerificationError(
                f"verify response is missing: {', '.join(missing)}.",
                cause="malformed_response",
            )
        return OrderVerification(**{key: str(value) for key, value in values.items()})

    def capture_order(self, *, verification: OrderVerification) -> CaptureResult:
        payload = {
            "paypal_order_id": verification.provider_order_id,
            "order_id": verification.order_id,
            "article_id": verification.article_id,
            "user_id": verification.user_id,
        }
        try:
            self._call("POST", CAPTURE_PATH, operation="capture", json=payload, headers=self._headers())
        except _CallFailed as exc:
            raise CaptureFailedError(str(exc), cause=exc.cause) from exc
        return CaptureResult(provider_order_id=verification.provider_order_id, order_id=verification.order_id)

    def create_order(self, *, checkout: CheckoutRequest) -> CheckoutSession:
        payload = {
            "amount": _format_amount(checkout.amount),
            "currency": checkout.currency,
            "user_id": checkout.user_id,
            "item_name": checkout.item_name,
            "article_id": checkout.article_id,
            "subscription_plan_id": checkout.subscription_plan_id,
        }
        try:
            data = self._call("POST", CREATE_ORDER_PATH, operation="create_order", json=payload, headers=self._headers())
        except _CallFailed as exc:
            cause = "unauthorized" if exc.status_code == 401 else exc.cause
            raise CheckoutError(str(exc), cause=cause) from exc

        approval_url = (data.get("approval_url") or "").strip()
        if not approval_url:
            raise CheckoutError("create_order response has no approval_url.", cause="malformed_response")
        provider_order_id = data.get("paypal_order_id")
        return CheckoutSession(
            approval_url=approval_url,
            provider_order_id=str(provider_order_id) if provider_order_id else None,
        )


def _format_amount(amount: Decimal) -> str:
    return str(amount.quantize(Decimal("0.01")))
