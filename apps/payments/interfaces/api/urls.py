from django.urls import path

from .views import ConfirmPaymentAPI, StartCheckoutAPI

urlpatterns = [
    path("payments/confirm/", ConfirmPaymentAPI.as_view(), name="api_payments_confirm"),
    path("payments/checkout/", StartCheckoutAPI.as_view(), name="api_payments_checkout"),
]
