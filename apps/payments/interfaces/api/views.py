from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.payments.application.use_cases.confirm_payment import (
    ConfirmPaymentCommand,
    ConfirmPaymentResult,
    ConfirmPaymentUseCase,
)
from apps.payments.application.use_cases.start_checkout import StartCheckoutCommand, StartCheckoutUseCase
from apps.payments.domain.confirmation_state_machine import REASON_MISSING_CREDENTIALS, ConfirmationStatus
from apps.payments.domain.errors import CheckoutError
from apps.payments.infrastructure.navigators import DeferredNavigator
from apps.payments.infrastructure.notifiers import CollectingNotifier
from apps.payments.interfaces.api.serializers import ConfirmPaymentSerializer, StartCheckoutSerializer


def _success(*, data: dict, http_status: int = status.HTTP_200_OK) -> Response:
    return Response({"success": True, "data": data}, status=http_status)


def _error(*, message: str, data: dict | None = None, field: str | None = None, http_status: int = 400) -> Response:
    payload: dict = {"success": False, "data": data or {}, "error": {"message": message}}
    if field:
        payload["error"]["field"] = field
    return Response(payload, status=http_status)


def _confirmation_data(
    result: ConfirmPaymentResult, *, navigator: DeferredNavigator, notifier: CollectingNotifier
) -> dict:
    return {
        "status": str(result.state.status),
        "reason": result.state.reason,
        "retry_allowed": result.retry_allowed,
        "redirect_to": navigator.target,
        "redirect_delay_seconds": navigator.delay_seconds if navigator.pending else None,
        "notifications": notifier.as_list(),
    }


class ConfirmPaymentAPI(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payments"

    def post(self, request):
        serializer = ConfirmPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return _error(message="Invalid input.", http_status=status.HTTP_400_BAD_REQUEST)

        notifier = CollectingNotifier()
        navigator = DeferredNavigator()
        result = ConfirmPaymentUseCase.execute(
            ConfirmPaymentCommand(
                query_params={
                    "token": serializer.validated_data["token"],
                    "PayerID": serializer.validated_data["PayerID"],
                },
                notifier=notifier,
                navigator=navigator,
                retry=serializer.validated_data["retry"],
            )
        )
        data = _confirmation_data(result, navigator=navigator, notifier=notifier)

        if result.state.status == ConfirmationStatus.SUCCEEDED:
            return _success(data=data)
        if result.state.status == ConfirmationStatus.PROCESSING:
            return Response({"success": False, "data": data}, status=status.HTTP_202_ACCEPTED)
        if result.state.reason == REASON_MISSING_CREDENTIALS:
            return _error(message="Payment credentials are missing.", data=data, http_status=status.HTTP_400_BAD_REQUEST)
        return _error(message=f"Payment failed: {result.state.reason}.", data=data, http_status=status.HTTP_200_OK)


class StartCheckoutAPI(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payments"

    def post(self, request):
        serializer = StartCheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return _error(message="Invalid input.", http_status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
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
                return _error(message="Session expired. Please login again.", http_status=status.HTTP_401_UNAUTHORIZED)
            if exc.cause == "invalid":
                return _error(message=str(exc), field=exc.field, http_status=status.HTTP_400_BAD_REQUEST)
            return _error(message="Failed to create the payment order.", http_status=status.HTTP_502_BAD_GATEWAY)

        return _success(
            data={"approval_url": result.approval_url, "provider_order_id": result.provider_order_id},
            http_status=status.HTTP_201_CREATED,
        )
