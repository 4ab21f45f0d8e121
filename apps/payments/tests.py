from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.apps import apps as django_apps
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.test import Client, TestCase, override_settings
from rest_framework.test import APIClient

from apps.payments.application.facade import PaymentsFacade
from apps.payments.application.use_cases.confirm_payment import ConfirmPaymentCommand, ConfirmPaymentUseCase
from apps.payments.application.use_cases.start_checkout import StartCheckoutCommand, StartCheckoutUseCase
from apps.payments.domain.confirmation_state_machine import (
    ConfirmationEvent,
    ConfirmationState,
    ConfirmationStateMachine,
    ConfirmationStatus,
)
from apps.payments.domain.errors import (
    CaptureFailedError,
    CheckoutError,
    InvalidTransitionError,
    MissingCredentialsError,
    OrderServiceNotConfigured,
    VerificationError,
)
from apps.payments.domain.policies import read_redirect_context
from apps.payments.domain.ports import NotificationLevel
from apps.payments.domain.types import (
    CaptureResult,
    CheckoutRequest,
    CheckoutSession,
    OrderVerification,
    RedirectContext,
)
from apps.payments.infrastructure.gateways.http_order_service import HttpOrderServiceGateway
from apps.payments.infrastructure.gateways.sandbox_stub import SandboxStubGateway
from apps.payments.infrastructure.navigators import DeferredNavigator
from apps.payments.infrastructure.notifiers import CollectingNotifier
from apps.payments.infrastructure.registry import CacheConfirmationRegistry

VERIFIED = OrderVerification(provider_order_id="PP-1", order_id="42", article_id="7", user_id="3")


class FakeOrderService:
    code = "fake"
    name = "Fake"

    def __init__(self, *, verify_error=None, capture_error=None, on_verify=None):
        self.verify_error = verify_error
        self.capture_error = capture_error
        self.on_verify = on_verify
        self.calls: list[str] = []

    def verify_order(self, *, context):
        self.calls.append("verify")
        if self.on_verify:
            self.on_verify()
        if self.verify_error:
            raise self.verify_error
        return VERIFIED

    def capture_order(self, *, verification):
        self.calls.append("capture")
        if self.capture_error:
            raise self.capture_error
        return CaptureResult(provider_order_id=verification.provider_order_id, order_id=verification.order_id)

    def create_order(self, *, checkout):
        self.calls.append("create_order")
        return CheckoutSession(approval_url="https://provider.example/approve?token=tok_1", provider_order_id="tok_1")


class InterleavingRegistry(CacheConfirmationRegistry):
    """Runs `interleave` once, just before the named registry call."""

    def __init__(self, *, before: str, interleave):
        super().__init__()
        self._before = before
        self._interleave = interleave

    def _run_interleaved(self, name: str) -> None:
        if name == self._before and self._interleave is not None:
            interleave, self._interleave = self._interleave, None
            interleave()

    def acquire(self, key):
        self._run_interleaved("acquire")
        return super().acquire(key)

    def discard_failure(self, key):
        self._run_interleaved("discard_failure")
        return super().discard_failure(key)


class UnreliableRecordRegistry(CacheConfirmationRegistry):
    """Fails the first `record` call with `error`."""

    def __init__(self, error: Exception):
        super().__init__()
        self._error = error

    def record(self, key, outcome):
        if self._error is not None:
            error, self._error = self._error, None
            raise error
        super().record(key, outcome)


def _response(status_code: int = 200, payload=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


VERIFY_OK = {
    "success": True,
    "paypal_order_id": "PP-1",
    "order": {"id": 42, "article_id": 7, "user_id": 3},
}


class RedirectContextReaderTests(TestCase):
    def test_reads_token_and_payer_id(self):
        context = read_redirect_context({"token": " tok_1 ", "PayerID": "payer_1"})
        self.assertEqual(context, RedirectContext(transaction_token="tok_1", payer_id="payer_1"))

    def test_blank_or_absent_values_are_missing_credentials(self):
        for params in ({"token": "", "PayerID": "payer_1"}, {"token": "tok_1"}, {"token": "tok_1", "PayerID": "  "}, {}):
            with self.assertRaises(MissingCredentialsError):
                read_redirect_context(params)

    def test_dedup_key_is_stable_per_pair(self):
        a = RedirectContext(transaction_token="tok_1", payer_id="payer_1")
        b = RedirectContext(transaction_token="tok_1", payer_id="payer_1")
        c = RedirectContext(transaction_token="tok_1", payer_id="payer_2")
        self.assertEqual(a.dedup_key, b.dedup_key)
        self.assertNotEqual(a.dedup_key, c.dedup_key)


class ConfirmationStateMachineTests(TestCase):
    def test_transitions_from_processing(self):
        start = ConfirmationStateMachine.initial()
        self.assertEqual(start.status, ConfirmationStatus.PROCESSING)
        self.assertEqual(
            ConfirmationStateMachine.apply(start, ConfirmationEvent.CAPTURED), ConfirmationState.succeeded()
        )
        self.assertEqual(
            ConfirmationStateMachine.apply(start, ConfirmationEvent.CREDENTIALS_MISSING).reason, "missing credentials"
        )
        self.assertEqual(
            ConfirmationStateMachine.apply(start, ConfirmationEvent.VERIFICATION_FAILED).reason, "verification failed"
        )
        self.assertEqual(
            ConfirmationStateMachine.apply(start, ConfirmationEvent.CAPTURE_FAILED).reason, "capture failed"
        )

    def test_terminal_states_do_not_transition(self):
        for terminal in (ConfirmationState.succeeded(), ConfirmationState.failed("capture failed")):
            with self.assertRaises(InvalidTransitionError):
                ConfirmationStateMachine.apply(terminal, ConfirmationEvent.CAPTURED)


class HttpOrderServiceGatewayTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.session = MagicMock()
        self.gateway = HttpOrderServiceGateway(
            base_url="https://orders.example/api", api_key="svc-key", timeout=5, session=self.session
        )
        self.context = RedirectContext(transaction_token="tok_1", payer_id="payer_1")

    def test_verify_parses_order_and_busts_cache(self):
        self.session.request.return_value = _response(200, VERIFY_OK)

        first = self.gateway.verify_order(context=self.context)
        self.gateway.verify_order(context=self.context)

        self.assertEqual(first, VERIFIED)
        calls = self.session.request.call_args_list
        self.assertEqual(calls[0].args, ("GET", "https://orders.example/api/paypal/return"))
        self.assertEqual(calls[0].kwargs["timeout"], 5.0)
        self.assertEqual(calls[0].kwargs["params"]["token"], "tok_1")
        self.assertEqual(calls[0].kwargs["params"]["payerId"], "payer_1")
        self.assertEqual(calls[0].kwargs["headers"]["Cache-Control"], "no-cache")
        self.assertEqual(calls[0].kwargs["headers"]["Authorization"], "Bearer svc-key")
        self.assertNotEqual(calls[0].kwargs["params"]["_"], calls[1].kwargs["params"]["_"])

    def test_verify_failures_carry_their_cause(self):
        cases = [
            (_response(200, {"success": False}), "rejected"),
            (_response(200, {"paypal_order_id": "PP-1"}), "rejected"),
            (_response(503, {"success": True}), "http_status"),
            (_response(200, ValueError("no json")), "malformed_response"),
            (_response(200, {"success": True, "paypal_order_id": "PP-1", "order": {"id": 42}}), "malformed_response"),
            (requests.exceptions.Timeout(), "timeout"),
            (requests.exceptions.ConnectionError(), "network"),
        ]
        for outcome, cause in cases:
            if isinstance(outcome, Exception):
                self.session.request.side_effect = outcome
            else:
                self.session.request.side_effect = None
                self.session.request.return_value = outcome
            with self.assertRaises(VerificationError) as ctx:
                self.gateway.verify_order(context=self.context)
            self.assertEqual(ctx.exception.cause, cause)

    def test_capture_posts_order_identifiers(self):
        self.session.request.return_value = _response(200, {"success": True})

        result = self.gateway.capture_order(verification=VERIFIED)

        self.assertEqual(result, CaptureResult(provider_order_id="PP-1", order_id="42"))
        call = self.session.request.call_args
        self.assertEqual(call.args, ("POST", "https://orders.example/api/paypal/capture-order"))
        self.assertEqual(
            call.kwargs["json"],
            {"paypal_order_id": "PP-1", "order_id": "42", "article_id": "7", "user_id": "3"},
        )

    def test_capture_rejection_and_timeout_fail(self):
        self.session.request.return_value = _response(200, {"success": False})
        with self.assertRaises(CaptureFailedError) as ctx:
            self.gateway.capture_order(verification=VERIFIED)
        self.assertEqual(ctx.exception.cause, "rejected")

        self.session.request.side_effect = requests.exceptions.ReadTimeout()
        with self.assertRaises(CaptureFailedError) as ctx:
            self.gateway.capture_order(verification=VERIFIED)
        self.assertEqual(ctx.exception.cause, "timeout")

    def test_create_order_returns_approval_url(self):
        self.session.request.return_value = _response(
            200, {"success": True, "approval_url": "https://provider.example/approve", "paypal_order_id": "PP-9"}
        )
        session = self.gateway.create_order(
            checkout=CheckoutRequest(user_id="3", article_id="7", amount=Decimal("9.9"), item_name="Essay")
        )

        self.assertEqual(session.approval_url, "https://provider.example/approve")
        self.assertEqual(session.provider_order_id, "PP-9")
        self.assertEqual(self.session.request.call_args.kwargs["json"]["amount"], "9.90")

    def test_create_order_unauthorized(self):
        self.session.request.return_value = _response(401, {"success": False})
        with self.assertRaises(CheckoutError) as ctx:
            self.gateway.create_order(checkout=CheckoutRequest(user_id="3", article_id="7", amount=Decimal("5")))
        self.assertEqual(ctx.exception.cause, "unauthorized")


@override_settings(PAYMENTS_SUCCESS_REDIRECT_DELAY_SECONDS=3, PAYMENTS_SUCCESS_REDIRECT_URL="/articles/{article_id}/")
class ConfirmPaymentUseCaseTests(TestCase):
    params = {"token": "tok_1", "PayerID": "payer_1"}

    def setUp(self) -> None:
        super().setUp()
        cache.clear()
        self.registry = CacheConfirmationRegistry()

    def _execute(self, service, *, params=None, retry=False):
        notifier = CollectingNotifier()
        navigator = DeferredNavigator()
        result = ConfirmPaymentUseCase.execute(
            ConfirmPaymentCommand(
                query_params=self.params if params is None else params,
                notifier=notifier,
                navigator=navigator,
                retry=retry,
            ),
            order_service=service,
            registry=self.registry,
        )
        return result, notifier, navigator

    def test_verify_then_capture_succeeds(self):
        service = FakeOrderService()

        result, notifier, navigator = self._execute(service)

        self.assertEqual(result.state, ConfirmationState.succeeded())
        self.assertEqual(service.calls, ["verify", "capture"])
        self.assertEqual([n.level for n in notifier.notifications], [NotificationLevel.SUCCESS])
        self.assertEqual(navigator.calls, 1)
        self.assertEqual(navigator.target, "/articles/7/")
        self.assertEqual(navigator.delay_seconds, 3)

    def test_verification_failure_skips_capture(self):
        service = FakeOrderService(verify_error=VerificationError("no", cause="rejected"))

        result, notifier, navigator = self._execute(service)

        self.assertEqual(result.state, ConfirmationState.failed("verification failed"))
        self.assertEqual(service.calls, ["verify"])
        self.assertTrue(result.retry_allowed)
        self.assertEqual(notifier.notifications[0].level, NotificationLevel.ERROR)
        self.assertIn("verification failed", notifier.notifications[0].message)
        self.assertEqual(navigator.calls, 0)

    def test_capture_timeout_fails_without_retrying(self):
        session = MagicMock()
        session.request.side_effect = [_response(200, VERIFY_OK), requests.exceptions.Timeout()]
        gateway = HttpOrderServiceGateway(base_url="https://orders.example/", session=session)

        result, _, navigator = self._execute(gateway)

        self.assertEqual(result.state, ConfirmationState.failed("capture failed"))
        self.assertEqual(session.request.call_count, 2)
        self.assertEqual(navigator.calls, 0)

    def test_missing_credentials_make_no_calls(self):
        service = FakeOrderService()
        registry = MagicMock()
        for params in ({"token": "", "PayerID": "payer_1"}, {"token": "tok_1"}):
            notifier = CollectingNotifier()
            result = ConfirmPaymentUseCase.execute(
                ConfirmPaymentCommand(query_params=params, notifier=notifier, navigator=DeferredNavigator()),
                order_service=service,
                registry=registry,
            )
            self.assertEqual(result.state, ConfirmationState.failed("missing credentials"))
            self.assertFalse(result.retry_allowed)
            self.assertEqual(notifier.notifications[0].level, NotificationLevel.ERROR)
        self.assertEqual(service.calls, [])
        self.assertEqual(registry.method_calls, [])

    def test_reentry_while_in_flight_is_suppressed(self):
        inner_results = []

        def reenter():
            inner_results.append(self._execute(service)[0])

        service = FakeOrderService(on_verify=reenter)

        result, _, _ = self._execute(service)

        self.assertEqual(result.state.status, ConfirmationStatus.SUCCEEDED)
        self.assertEqual(len(inner_results), 1)
        self.assertTrue(inner_results[0].in_flight)
        self.assertEqual(inner_results[0].state.status, ConfirmationStatus.PROCESSING)
        self.assertEqual(service.calls, ["verify", "capture"])

    def test_held_lock_reports_processing(self):
        self.assertTrue(self.registry.acquire(RedirectContext("tok_1", "payer_1").dedup_key))
        service = FakeOrderService()

        result, notifier, navigator = self._execute(service)

        self.assertEqual(result.state.status, ConfirmationStatus.PROCESSING)
        self.assertTrue(result.in_flight)
        self.assertEqual(service.calls, [])
        self.assertEqual(notifier.notifications[0].level, NotificationLevel.INFO)
        self.assertEqual(navigator.calls, 0)

    def test_terminal_outcome_is_replayed_without_calls(self):
        service = FakeOrderService()
        self._execute(service)

        result, notifier, navigator = self._execute(service)

        self.assertTrue(result.replayed)
        self.assertEqual(result.state, ConfirmationState.succeeded())
        self.assertEqual(service.calls, ["verify", "capture"])
        self.assertEqual(navigator.target, "/articles/7/")

        failing = FakeOrderService(capture_error=CaptureFailedError("no", cause="rejected"))
        self._execute(failing, params={"token": "tok_2", "PayerID": "payer_2"})
        replay, _, _ = self._execute(failing, params={"token": "tok_2", "PayerID": "payer_2"})
        self.assertEqual(replay.state, ConfirmationState.failed("capture failed"))
        self.assertEqual(failing.calls, ["verify", "capture"])

    def test_retry_after_failure_starts_fresh_attempt(self):
        service = FakeOrderService(verify_error=VerificationError("down", cause="network"))
        self._execute(service)
        service.verify_error = None

        result, _, navigator = self._execute(service, retry=True)

        self.assertFalse(result.replayed)
        self.assertEqual(result.state, ConfirmationState.succeeded())
        self.assertEqual(service.calls, ["verify", "verify", "capture"])
        self.assertEqual(navigator.calls, 1)

    def test_retry_after_success_never_captures_again(self):
        service = FakeOrderService()
        self._execute(service)

        result, _, _ = self._execute(service, retry=True)

        self.assertTrue(result.replayed)
        self.assertEqual(result.state, ConfirmationState.succeeded())
        self.assertEqual(service.calls, ["verify", "capture"])

    def test_overlapping_retries_capture_once(self):
        service = FakeOrderService(verify_error=VerificationError("down", cause="network"))
        self._execute(service)
        service.verify_error = None
        overlapping = []
        self.registry = InterleavingRegistry(
            before="acquire",
            interleave=lambda: overlapping.append(self._execute(service, retry=True)[0]),
        )

        result, _, navigator = self._execute(service, retry=True)

        self.assertEqual(overlapping[0].state, ConfirmationState.succeeded())
        self.assertTrue(result.replayed)
        self.assertEqual(result.state, ConfirmationState.succeeded())
        self.assertEqual(navigator.calls, 1)
        self.assertEqual(service.calls, ["verify", "verify", "capture"])

    def test_retry_arriving_while_failure_is_discarded_is_suppressed(self):
        service = FakeOrderService(verify_error=VerificationError("down", cause="network"))
        self._execute(service)
        service.verify_error = None
        overlapping = []
        self.registry = InterleavingRegistry(
            before="discard_failure",
            interleave=lambda: overlapping.append(self._execute(service, retry=True)[0]),
        )

        result, _, _ = self._execute(service, retry=True)

        self.assertTrue(overlapping[0].in_flight)
        self.assertEqual(overlapping[0].state.status, ConfirmationStatus.PROCESSING)
        self.assertEqual(result.state, ConfirmationState.succeeded())
        self.assertEqual(service.calls.count("capture"), 1)

    def test_unrecorded_outcome_keeps_lock_until_it_expires(self):
        self.registry = UnreliableRecordRegistry(ConnectionError("cache unavailable"))
        service = FakeOrderService()

        with self.assertLogs("folio.payments", level="ERROR") as logs:
            result, _, navigator = self._execute(service)

        self.assertEqual(result.state, ConfirmationState.succeeded())
        self.assertEqual(navigator.calls, 1)
        self.assertIn("payment_outcome_record_failed", logs.output[0])

        reload, notifier, _ = self._execute(service)

        self.assertTrue(reload.in_flight)
        self.assertEqual(reload.state.status, ConfirmationStatus.PROCESSING)
        self.assertEqual(notifier.notifications[0].level, NotificationLevel.INFO)
        self.assertEqual(service.calls, ["verify", "capture"])

    @override_settings(PAYMENTS_ORDER_SERVICE_BACKEND="http", PAYMENTS_ORDER_SERVICE_URL="")
    def test_unconfigured_order_service_fails_verification(self):
        notifier = CollectingNotifier()
        result = ConfirmPaymentUseCase.execute(
            ConfirmPaymentCommand(query_params=self.params, notifier=notifier, navigator=DeferredNavigator()),
            registry=self.registry,
        )
        self.assertEqual(result.state, ConfirmationState.failed("verification failed"))


class PaymentsFacadeTests(TestCase):
    @override_settings(PAYMENTS_ORDER_SERVICE_BACKEND="http", PAYMENTS_ORDER_SERVICE_URL="https://orders.example/")
    def test_http_backend(self):
        self.assertIsInstance(PaymentsFacade.order_service(), HttpOrderServiceGateway)

    @override_settings(PAYMENTS_ORDER_SERVICE_BACKEND="http", PAYMENTS_ORDER_SERVICE_URL="https://orders.example/")
    def test_http_gateway_is_reused_per_configuration(self):
        gateway = PaymentsFacade.order_service()

        self.assertIs(PaymentsFacade.order_service(), gateway)
        with override_settings(PAYMENTS_ORDER_SERVICE_URL="https://orders-eu.example/"):
            self.assertIsNot(PaymentsFacade.order_service(), gateway)

    def test_sandbox_and_unknown_backends(self):
        self.assertIsInstance(PaymentsFacade.order_service("sandbox"), SandboxStubGateway)
        with self.assertRaises(OrderServiceNotConfigured):
            PaymentsFacade.order_service("stripe")


_PRODUCTION = {
    "ENVIRONMENT": "production",
    "PAYMENTS_ORDER_SERVICE_BACKEND": "http",
    "PAYMENTS_ORDER_SERVICE_URL": "https://orders.example/",
    "PAYMENTS_ORDER_SERVICE_TIMEOUT_SECONDS": 10,
    "PAYMENTS_CONFIRMATION_LOCK_SECONDS": 60,
    "PAYMENTS_CONFIRMATION_CACHE": "default",
}


class PaymentsConfigTests(TestCase):
    def _ready(self):
        django_apps.get_app_config("payments").ready()

    def test_production_rejects_process_local_confirmation_cache(self):
        for backend in (
            "django.core.cache.backends.locmem.LocMemCache",
            "django.core.cache.backends.dummy.DummyCache",
        ):
            with self.subTest(backend=backend):
                with override_settings(CACHES={"default": {"BACKEND": backend}}, **_PRODUCTION):
                    with self.assertRaises(ImproperlyConfigured):
                        self._ready()

    def test_production_rejects_unknown_confirmation_cache(self):
        overrides = {**_PRODUCTION, "PAYMENTS_CONFIRMATION_CACHE": "confirmations"}
        with override_settings(CACHES={"default": {"BACKEND": "django.core.cache.backends.redis.RedisCache"}}, **overrides):
            with self.assertRaises(ImproperlyConfigured):
                self._ready()

    def test_production_accepts_shared_cache(self):
        caches_setting = {
            "default": {
                "BACKEND": "django.core.cache.backends.redis.RedisCache",
                "LOCATION": "redis://localhost:6379/0",
            }
        }
        with override_settings(CACHES=caches_setting, **_PRODUCTION):
            self._ready()

    def test_production_rejects_short_lock(self):
        overrides = {**_PRODUCTION, "PAYMENTS_CONFIRMATION_LOCK_SECONDS": 15}
        with override_settings(CACHES={"default": {"BACKEND": "django.core.cache.backends.redis.RedisCache"}}, **overrides):
            with self.assertRaises(ImproperlyConfigured):
                self._ready()

    @override_settings(ENVIRONMENT="development")
    def test_development_allows_local_memory_cache(self):
        self._ready()


class StartCheckoutUseCaseTests(TestCase):
    def test_returns_approval_url(self):
        service = FakeOrderService()
        result = StartCheckoutUseCase.execute(
            StartCheckoutCommand(user_id=3, article_id=7, amount="9.99", item_name="Essay", subscription_plan_id=2),
            order_service=service,
        )
        self.assertEqual(result.approval_url, "https://provider.example/approve?token=tok_1")
        self.assertEqual(service.calls, ["create_order"])

    def test_validation(self):
        service = FakeOrderService()
        cases = [
            (StartCheckoutCommand(user_id=None, article_id=7, amount="9.99"), "unauthorized"),
            (StartCheckoutCommand(user_id=3, article_id=7, amount="abc"), "invalid"),
            (StartCheckoutCommand(user_id=3, article_id=7, amount="0"), "invalid"),
            (StartCheckoutCommand(user_id=3, article_id=7, amount="5", currency="dollars"), "invalid"),
        ]
        for cmd, cause in cases:
            with self.assertRaises(CheckoutError) as ctx:
                StartCheckoutUseCase.execute(cmd, order_service=service)
            self.assertEqual(ctx.exception.cause, cause)
        self.assertEqual(service.calls, [])


@override_settings(PAYMENTS_ORDER_SERVICE_BACKEND="sandbox", PAYMENTS_SUCCESS_REDIRECT_DELAY_SECONDS=3)
class PaymentWebViewTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        cache.clear()
        self.client = Client()

    def test_return_page_success_schedules_redirect(self):
        response = self.client.get("/payments/return/", {"token": "SANDBOX-7-abc123", "PayerID": "PAYER1"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["status"], "succeeded")
        self.assertEqual(response.context["redirect_to"], "/articles/7/")
        self.assertContains(response, 'content="3;url=/articles/7/"')
        self.assertContains(response, "Payment successful!")
        self.assertIn("no-cache", response["Cache-Control"])

    def test_return_page_missing_credentials(self):
        with patch.object(PaymentsFacade, "order_service") as order_service:
            response = self.client.get("/payments/return/", {"token": "SANDBOX-7-abc123"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["status"], "failed")
        self.assertEqual(response.context["reason"], "missing credentials")
        self.assertFalse(response.context["retry_allowed"])
        order_service.assert_not_called()

    def test_failed_page_offers_retry_which_runs_fresh_attempt(self):
        failing = FakeOrderService(verify_error=VerificationError("no", cause="rejected"))
        with patch.object(PaymentsFacade, "order_service", return_value=failing):
            response = self.client.get("/payments/return/", {"token": "tok_1", "PayerID": "payer_1"})
        self.assertEqual(response.context["reason"], "verification failed")
        self.assertContains(response, "/payments/return/retry/")

        working = FakeOrderService()
        with patch.object(PaymentsFacade, "order_service", return_value=working):
            reloaded = self.client.get("/payments/return/", {"token": "tok_1", "PayerID": "payer_1"})
            retried = self.client.post("/payments/return/retry/", {"token": "tok_1", "PayerID": "payer_1"})

        self.assertEqual(reloaded.context["status"], "failed")
        self.assertEqual(retried.context["status"], "succeeded")
        self.assertEqual(working.calls, ["verify", "capture"])

    def test_cancel_page(self):
        response = self.client.get("/payments/cancel/")
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Payment Cancelled")
        self.assertContains(response, "No charges were made")

    def test_checkout_requires_login(self):
        response = self.client.post("/payments/checkout/", {"article_id": "5", "amount": "4.99"})
        self.assertEqual(response.status_code, 302)
        self.assertIn("/admin/login/", response["Location"])

    def test_checkout_redirects_to_approval_url(self):
        user = get_user_model().objects.create_user(username="reader", password="StrongPass12345!")
        self.client.force_login(user)

        response = self.client.post("/payments/checkout/", {"article_id": "5", "amount": "4.99"})

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response["Location"].startswith("/payments/return/?token=SANDBOX-5-"))


@override_settings(PAYMENTS_ORDER_SERVICE_BACKEND="sandbox")
class PaymentApiTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        cache.clear()
        self.client = APIClient()

    def test_confirm_success(self):
        response = self.client.post(
            "/api/payments/confirm/", data={"token": "SANDBOX-9-abcdef", "PayerID": "P1"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["data"]["status"], "succeeded")
        self.assertEqual(payload["data"]["redirect_to"], "/articles/9/")
        self.assertEqual([n["level"] for n in payload["data"]["notifications"]], ["success"])

    def test_confirm_missing_credentials(self):
        response = self.client.post("/api/payments/confirm/", data={"token": "SANDBOX-9-abcdef"}, format="json")
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["data"]["reason"], "missing credentials")

    def test_confirm_capture_failure(self):
        response = self.client.post(
            "/api/payments/confirm/", data={"token": "SANDBOX-9-abcdef", "PayerID": "fail-payer"}, format="json"
        )
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["data"]["reason"], "capture failed")
        self.assertTrue(payload["data"]["retry_allowed"])

    def test_confirm_in_flight(self):
        CacheConfirmationRegistry().acquire(RedirectContext("SANDBOX-9-abcdef", "P1").dedup_key)
        response = self.client.post(
            "/api/payments/confirm/", data={"token": "SANDBOX-9-abcdef", "PayerID": "P1"}, format="json"
        )
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()["data"]["status"], "processing")

    def test_checkout_requires_authentication(self):
        response = self.client.post("/api/payments/checkout/", data={"article_id": "5", "amount": "4.99"}, format="json")
        self.assertIn(response.status_code, (401, 403))

    def test_checkout_authenticated(self):
        user = get_user_model().objects.create_user(username="reader", password="StrongPass12345!")
        self.client.force_authenticate(user=user)

        response = self.client.post(
            "/api/payments/checkout/", data={"article_id": "5", "amount": "4.99"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()["data"]["approval_url"].startswith("/payments/return/?token=SANDBOX-5-"))

        invalid = self.client.post("/api/payments/checkout/", data={"article_id": "5", "amount": "-1"}, format="json")
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.json()["error"]["field"], "amount")


class ErrorPagesTests(TestCase):
    def test_unknown_path_renders_404_page(self):
        response = Client().get("/no-such-page/")
        self.assertEqual(response.status_code, 404)
        self.assertContains(response, "Page not found", status_code=404)
