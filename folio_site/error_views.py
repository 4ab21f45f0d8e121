from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.shortcuts import render

logger = logging.getLogger("folio.request")


def handle_403(request: HttpRequest, exception=None) -> HttpResponse:
    return render(request, "errors/403.html", {"base_template": "layouts/public_base.html"}, status=403)


def handle_404(request: HttpRequest, exception=None) -> HttpResponse:
    return render(request, "errors/404.html", {"base_template": "layouts/public_base.html"}, status=404)


def handle_500(request: HttpRequest) -> HttpResponse:
    logger.error(
        "server_error",
        extra={"status_code": 500, "error_code": "server_error", "path": request.path},
    )
    return render(request, "errors/500.html", {"base_template": "layouts/public_base.html"}, status=500)
