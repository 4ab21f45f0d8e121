"""
Web UI routes (Django templates).
"""

from django.urls import include, path

urlpatterns = [
    path(
        "payments/",
        include(("apps.payments.interfaces.web.urls", "payments"), namespace="payments"),
    ),
]
