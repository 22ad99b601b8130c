from django.urls import path

from .views import ProcessCheckoutAPI, PublicPaymentLinkAPI

urlpatterns = [
    path("pay/<str:link_id>/", PublicPaymentLinkAPI.as_view(), name="api_public_payment_link"),
    path("pay/<str:link_id>/process/", ProcessCheckoutAPI.as_view(), name="api_checkout_process"),
]
