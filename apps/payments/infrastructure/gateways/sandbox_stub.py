from __future__ import annotations

from urllib.parse import urlencode
from uuid import uuid4

from apps.payments.domain.errors import CaptureFailedError, CheckoutError, VerificationError
from apps.payments.domain.types import (
    CaptureResult,
    CheckoutRequest,
    CheckoutSession,
    OrderVerification,
    RedirectContext,
)

_TOKEN_PREFIX = "SANDBOX"


class SandboxStubGateway:
    """
    Offline stand-in for the order service, for local development.

    Tokens look like `SANDBOX-<article_id>-<hex>`. A token starting with `fail`
    is rejected at verification; a payer id starting with `fail` is rejected at
    capture.
    """

    code = "sandbox"
    name = "Sandbox Stub"

    def __init__(self, *, return_url: str = "/payments/return/") -> None:
        self._return_url = return_url

    def verify_order(self, *, context: RedirectContext) -> OrderVerification:
        token = context.transaction_token
        if token.lower().startswith("fail"):
            raise VerificationError("Sandbox rejected the token.", cause="rejected")
        parts = token.split("-")
        article_id = parts[1] if len(parts) == 3 and parts[0] == _TOKEN_PREFIX and parts[1] else "1"
        provider_prefix = "fail" if context.payer_id.lower().startswith("fail") else _TOKEN_PREFIX
        return OrderVerification(
            provider_order_id=f"{provider_prefix}-ORDER-{token[-12:]}",
            order_id=f"{_TOKEN_PREFIX}-{token[-8:]}",
            article_id=article_id,
            user_id="1",
        )

    def capture_order(self, *, verification: OrderVerification) -> CaptureResult:
        if verification.provider_order_id.lower().startswith("fail"):
            raise CaptureFailedError("Sandbox rejected the capture.", cause="rejected")
        return CaptureResult(provider_order_id=verification.provider_order_id, order_id=verification.order_id)

    def create_order(self, *, checkout: CheckoutRequest) -> CheckoutSession:
        if not checkout.article_id:
            raise CheckoutError("Article is required.", cause="invalid", field="article_id")
        token = f"{_TOKEN_PREFIX}-{checkout.article_id}-{uuid4().hex[:12]}"
        query = urlencode({"token": token, "PayerID": f"{_TOKEN_PREFIX}PAYER{checkout.user_id}"})
        return CheckoutSession(approval_url=f"{self._return_url}?{query}", provider_order_id=token)
