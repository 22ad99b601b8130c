from django.contrib import admin

from .models import PaymentLink


@admin.register(PaymentLink)
class PaymentLinkAdmin(admin.ModelAdmin):
    list_display = ("id", "link_id", "title", "merchant", "amount_kind", "amount", "currency", "enabled", "expires_at", "created_at")
    search_fields = ("link_id", "reference", "title", "merchant__username", "merchant__email")
    list_filter = ("enabled", "amount_kind", "currency")
    list_select_related = ("merchant",)
    readonly_fields = ("link_id", "reference", "click_count", "created_at", "updated_at")
