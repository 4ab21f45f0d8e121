from __future__ import annotations

from django.conf import settings

from apps.payments.domain.errors import OrderServiceNotConfigured
from apps.payments.domain.ports import ConfirmationRegistryPort, OrderServicePort
from apps.payments.infrastructure.gateways.http_order_service import HttpOrderServiceGateway
from apps.payments.infrastructure.gateways.sandbox_stub import SandboxStubGateway
from apps.payments.infrastructure.registry import CacheConfirmationRegistry


class PaymentsFacade:
    # One gateway (and its pooled requests.Session) per configuration.
    _gateways: dict[tuple, OrderServicePort] = {}

    @classmethod
    def order_service(cls, backend_code: str | None = None) -> OrderServicePort:
        key = (backend_code or getattr(settings, "PAYMENTS_ORDER_SERVICE_BACKEND", "") or "").strip().lower()
        if key == HttpOrderServiceGateway.code:
            base_url = (getattr(settings, "PAYMENTS_ORDER_SERVICE_URL", "") or "").strip()
            if not base_url:
                raise OrderServiceNotConfigured("PAYMENTS_ORDER_SERVICE_URL is not set.")
            api_key = getattr(settings, "PAYMENTS_ORDER_SERVICE_API_KEY", "") or ""
            timeout = float(getattr(settings, "PAYMENTS_ORDER_SERVICE_TIMEOUT_SECONDS", 10))
            config = (key, base_url, api_key, timeout)
            gateway = cls._gateways.get(config)
            if gateway is None:
                gateway = HttpOrderServiceGateway(base_url=base_url, api_key=api_key, timeout=timeout)
                cls._gateways[config] = gateway
            return gateway
        if key == SandboxStubGateway.code:
            return cls._gateways.setdefault((key,), SandboxStubGateway())
        raise OrderServiceNotConfigured(f"Unknown order service backend: {backend_code or key!r}")

    @classmethod
    def confirmation_registry(cls) -> ConfirmationRegistryPort:
        return CacheConfirmationRegistry()
