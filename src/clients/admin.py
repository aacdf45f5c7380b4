"""Admin configuration for the clients app."""
from django.contrib import admin

from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = (
        "full_name",
        "agent",
        "email",
        "phone",
        "status",
        "created_at",
    )
    list_filter = ("status", "agent")
    search_fields = ("first_name", "last_name", "phone", "email", "employer")
    readonly_fields = ("id", "created_at", "updated_at")
    list_select_related = ("agent",)
    date_hierarchy = "created_at"
    fieldsets = (
        (None, {
            "fields": ("agent", "first_name", "last_name", "email", "phone"),
        }),
        ("Details", {
            "fields": ("date_of_birth", "employer", "status", "notes"),
        }),
        ("Metadata", {
            "classes": ("collapse",),
            "fields": ("id", "created_at", "updated_at"),
        }),
    )
