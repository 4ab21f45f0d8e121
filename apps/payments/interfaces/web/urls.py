from django.urls import path

from . import views

app_name = "payments"

urlpatterns = [
    path("return/", views.payment_return, name="return"),
    path("return/retry/", views.payment_return_retry, name="return_retry"),
    path("cancel/", views.payment_cancel, name="cancel"),
    path("checkout/", views.start_checkout, name="checkout"),
]
