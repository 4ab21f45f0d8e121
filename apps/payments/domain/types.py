from __future__ import annotations

import hashlib
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RedirectContext:
    transaction_token: str
    payer_id: str

    @property
    def dedup_key(self) -> str:
        raw = f"{self.transaction_token}\x1f{self.payer_id}".encode("utf-8")
        return hashlib.sha256(raw).hexdigest()


@dataclass(frozen=True)
class OrderVerification:
    provider_order_id: str
    order_id: str
    article_id: str
    user_id: str


@dataclass(frozen=True)
class CaptureResult:
    provider_order_id: str
    order_id: str


@dataclass(frozen=True)
class CheckoutRequest:
    user_id: str
    article_id: str
    amount: Decimal
    currency: str = "USD"
    item_name: str = ""
    subscription_plan_id: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    approval_url: str
    provider_order_id: str | None = None
