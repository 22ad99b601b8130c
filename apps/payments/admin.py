from django.contrib import admin

from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "transaction_id", "payment_link", "method", "status", "amount", "currency", "created_at")
    search_fields = ("transaction_id", "provider_reference", "payment_link__link_id")
    list_filter = ("status", "method", "currency")
    list_select_related = ("payment_link",)
    readonly_fields = ("transaction_id", "created_at", "updated_at")
