from django.urls import path

from .views import PaymentLinkDetailAPI, PaymentLinkListCreateAPI, PaymentLinkStatsAPI

urlpatterns = [
    path("payment-links/", PaymentLinkListCreateAPI.as_view(), name="api_payment_links"),
    path("payment-links/stats/", PaymentLinkStatsAPI.as_view(), name="api_payment_links_stats"),
    path("payment-links/<str:link_id>/", PaymentLinkDetailAPI.as_view(), name="api_payment_link_detail"),
]
