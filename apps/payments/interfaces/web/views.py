from __future__ import annotations

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, HttpResponse
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_GET, require_POST

from apps.payments.application.use_cases.confirm_payment import (
    ConfirmPaymentCommand,
    ConfirmPaymentResult,
    ConfirmPaymentUseCase,
)
from apps.payments.application.use_cases.start_checkout import StartCheckoutCommand, StartCheckoutUseCase
from apps.payments.domain.errors import CheckoutError
from apps.payments.domain.ports import NotificationLevel
from apps.payments.infrastructure.navigators import DeferredNavigator
from apps.payments.infrastructure.notifiers import MessagesNotifier
from apps.payments.interfaces.web.forms import RetryConfirmationForm, StartCheckoutForm

PROCESSING_REFRESH_SECONDS = 3


def _render_confirmation(request: HttpRequest, result: ConfirmPaymentResult, navigator: DeferredNavigator) -> HttpResponse:
    context = {
        "state": result.state,
        "status": str(result.state.status),
        "reason": result.state.reason,
        "retry_allowed": result.retry_allowed,
        "redirect_to": navigator.target,
        "redirect_delay_seconds": navigator.delay_seconds,
        "refresh_seconds": PROCESSING_REFRESH_SECONDS if result.in_flight else None,
        "token": result.context.transaction_token if result.context else "",
        "payer_id": result.context.payer_id if result.context else "",
    }
    return render(request, "payments/return.html", context)


@never_cache
@require_GET
def payment_return(request: HttpRequest) -> HttpResponse:
    navigator = DeferredNavigator()
    result = ConfirmPaymentUseCase.execute(
        ConfirmPaymentCommand(
            query_params=request.GET,
            notifier=MessagesNotifier(request),
            navigator=navigator,
        )
    )
    return _render_confirmation(request, result, navigator)


@never_cache
@require_POST
def payment_return_retry(request: HttpRequest) -> HttpResponse:
    form = RetryConfirmationForm(request.POST)
    params = form.cleaned_data if form.is_valid() else {}
    navigator = DeferredNavigator()
    result = ConfirmPaymentUseCase.execute(
        ConfirmPaymentCommand(
            query_params=params,
            notifier=MessagesNotifier(request),
            navigator=navigator,
            retry=True,
        )
    )
    return _render_confirmation(request, result, navigator)


@never_cache
@require_GET
def payment_cancel(request: HttpRequest) -> HttpResponse:
    MessagesNotifier(request).notify(
        level=NotificationLevel.INFO,
        message="Your payment has been cancelled. No charges were made to your account.",
    )
    return render(request, "payments/cancel.html", {})


def _back_url(request: HttpRequest) -> str:
    referer = request.META.get("HTTP_REFERER") or ""
    if referer and url_has_allowed_host_and_scheme(referer, allowed_hosts={request.get_host()}):
        return referer
    return "/"


@login_required
@require_POST
def start_checkout(request: HttpRequest) -> HttpResponse:
    form = StartCheckoutForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Please check the subscription details and try again.")
        return redirect(_back_url(request))

    data = form.cleaned_data
    try:
        result = StartCheckoutUseCase.execute(
            StartCheckoutCommand(
                user_id=request.user.pk,
                article_id=data["article_id"],
                amount=data["amount"],
                currency=data.get("currency") or "USD",
                item_name=data.get("item_name") or "",
                subscription_plan_id=data.get("subscription_plan_id") or None,
            )
        )
    except CheckoutError as exc:
        if exc.cause == "unauthorized":
            messages.error(request, "Session expired. Please login again.")
        else:
            messages.error(request, "Something went wrong with checkout. Please try again.")
        return redirect(_back_url(request))

    return redirect(result.approval_url)
