"""Django admin for the goals module."""
from django.contrib import admin, messages

from goals.ledger import ledger
from goals.models import Goal
from goals.progress import GoalStatus


@admin.register(Goal)
class GoalAdmin(admin.ModelAdmin):
    list_display = (
        "title", "agent", "metric_type", "goal_type",
        "current_value", "target_value", "progress_display", "status_display",
        "start_date", "end_date", "is_active",
    )
    list_filter = ("is_active", "metric_type", "goal_type")
    search_fields = ("title", "agent__email", "agent__first_name", "agent__last_name")
    readonly_fields = ("current_value", "created_at", "updated_at")
    date_hierarchy = "start_date"
    actions = ["recalculate_selected"]

    def progress_display(self, obj):
        return f"{obj.progress}%"
    progress_display.short_description = "Progress"

    def status_display(self, obj):
        return GoalStatus(obj.status).label
    status_display.short_description = "Status"

    @admin.action(description="Recalculate progress for the selected goals' agents")
    def recalculate_selected(self, request, queryset):
        agent_ids = set(queryset.values_list("agent_id", flat=True))
        total = 0
        for agent_id in agent_ids:
            total += len(ledger.recalculate_all(agent_id=agent_id))
        self.message_user(request, f"{total} goal(s) recalculated.", messages.SUCCESS)
