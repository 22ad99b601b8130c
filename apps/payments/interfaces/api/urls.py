from django.urls import path

from .views import TransactionStatusAPI

urlpatterns = [
    path("payments/transactions/<str:transaction_id>/", TransactionStatusAPI.as_view(), name="api_transaction_status"),
]
