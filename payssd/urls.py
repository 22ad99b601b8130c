"""
URL configuration for the payssd project.

API routes live under `/api/`; see `payssd.api_urls`.
"""

from django.contrib import admin
from django.urls import include, path

handler404 = "payssd.error_views.handle_404"
handler500 = "payssd.error_views.handle_500"

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("payssd.api_urls")),
]
