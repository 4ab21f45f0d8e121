from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

# Per-process caches cannot hold a lock shared by several workers.
_PROCESS_LOCAL_CACHES = (
    "django.core.cache.backends.locmem.LocMemCache",
    "django.core.cache.backends.dummy.DummyCache",
)


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        env = (getattr(settings, "ENVIRONMENT", "") or "").strip().lower()
        if env not in {"prod", "production"}:
            return
        backend = (getattr(settings, "PAYMENTS_ORDER_SERVICE_BACKEND", "") or "").strip().lower()
        if backend == "sandbox":
            raise ImproperlyConfigured("The sandbox order service cannot be used in production.")
        if backend == "http" and not (getattr(settings, "PAYMENTS_ORDER_SERVICE_URL", "") or "").strip():
            raise ImproperlyConfigured("PAYMENTS_ORDER_SERVICE_URL must be set in production.")
        timeout = float(getattr(settings, "PAYMENTS_ORDER_SERVICE_TIMEOUT_SECONDS", 10))
        lock_seconds = int(getattr(settings, "PAYMENTS_CONFIRMATION_LOCK_SECONDS", 60))
        if lock_seconds <= 2 * timeout:
            raise ImproperlyConfigured("PAYMENTS_CONFIRMATION_LOCK_SECONDS must exceed twice the order service timeout.")
        alias = getattr(settings, "PAYMENTS_CONFIRMATION_CACHE", "default")
        cache_backend = (settings.CACHES.get(alias) or {}).get("BACKEND", "")
        if not cache_backend:
            raise ImproperlyConfigured(f"PAYMENTS_CONFIRMATION_CACHE names an unknown cache: {alias!r}.")
        if cache_backend in _PROCESS_LOCAL_CACHES:
            raise ImproperlyConfigured(
                f"PAYMENTS_CONFIRMATION_CACHE ({alias!r}) must be a shared cache in production, not {cache_backend}."
            )
