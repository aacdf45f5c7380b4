"""Admin configuration for the sales app."""
from django.contrib import admin

from sales.models import Sale


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    """Admin for the Sale model.

    Edits made here go through ``Model.save`` / ``delete`` and therefore
    move goal progress exactly like API edits do.
    """

    list_display = (
        "policy_number",
        "product_name",
        "agent",
        "client",
        "premium_amount",
        "commission_amount",
        "sale_date",
        "status",
    )
    list_filter = ("status", "sale_date", "agent")
    search_fields = (
        "policy_number",
        "product_name",
        "client__first_name",
        "client__last_name",
        "agent__email",
    )
    list_select_related = ("agent", "client")
    readonly_fields = ("created_at", "updated_at")
    date_hierarchy = "sale_date"
