"""Bar admin configuration."""

from django.contrib import admin

from bars.models import Bar


@admin.register(Bar)
class BarAdmin(admin.ModelAdmin):
    """Admin configuration for Bar, with connect account visibility."""

    list_display = [
        "name",
        "owner_id",
        "connect_account_id",
        "connect_account_status",
        "payment_setup_complete",
        "created_at",
    ]
    list_filter = ["connect_account_status", "payment_setup_complete"]
    search_fields = ["id", "name", "owner_id", "connect_account_id"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]
