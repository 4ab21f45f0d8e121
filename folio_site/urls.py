"""
URL configuration for folio_site project.
"""

from django.contrib import admin
from django.urls import include, path

handler403 = "folio_site.error_views.handle_403"
handler404 = "folio_site.error_views.handle_404"
handler500 = "folio_site.error_views.handle_500"

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("folio_site.api_urls")),
    path("", include("folio_site.web_urls")),
]
