"""API views for the goals module."""
from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import APIException, PermissionDenied, ValidationError
from rest_framework.response import Response

from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import IsManagerOrAdmin
from goals.goal_serializers import (
    GoalProgressQuerySerializer,
    GoalProgressSummarySerializer,
    GoalProgressUpdateSerializer,
    GoalSerializer,
    RecalculationResultSerializer,
)
from goals.ledger import ledger
from goals.models import Goal
from goals.progress import GoalStatus, status_q

logger = logging.getLogger(__name__)


class GoalRecalculationFailed(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Goal progress could not be recalculated. Please retry later."
    default_code = "recalculation_failed"


def _recalculate(agent_id=None):
    try:
        return ledger.recalculate_all(agent_id=agent_id)
    except DatabaseError as exc:
        logger.error("Goal recalculation failed (agent=%s): %s", agent_id, exc, exc_info=True)
        raise GoalRecalculationFailed()


def _summarize(goals) -> dict:
    total = len(goals)
    completed = sum(1 for goal in goals if goal.status == GoalStatus.COMPLETED)
    not_started = sum(
        1 for goal in goals
        if goal.current_value == 0 and goal.status != GoalStatus.COMPLETED
    )
    rate = Decimal("0.00")
    if total:
        rate = (Decimal(completed) / Decimal(total) * 100).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP,
        )
    return {
        "total": total,
        "completed": completed,
        "in_progress": total - completed - not_started,
        "not_started": not_started,
        "completion_rate": rate,
    }


class GoalViewSet(viewsets.ModelViewSet):
    """
    CRUD for agent goals plus progress endpoints.

    Agents see and own only their goals; managers see all and may assign
    a goal to any agent. ``current_value`` is maintained by the ledger and
    is read-only here except through ``PUT goals/{id}/progress/``.
    """

    serializer_class = GoalSerializer
    queryset = Goal.objects.select_related("agent")
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["is_active", "metric_type", "goal_type", "agent"]
    search_fields = ["title", "agent__email", "agent__first_name", "agent__last_name"]
    ordering_fields = ["end_date", "start_date", "created_at", "target_value", "current_value"]
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action == "sync_all":
            return [IsManagerOrAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if not user.is_manager_role:
            qs = qs.filter(agent=user)

        goal_status = self.request.query_params.get("status")
        if goal_status:
            if goal_status not in GoalStatus.values:
                raise ValidationError({"status": f"Unknown status '{goal_status}'."})
            qs = qs.filter(status_q(goal_status))
        return qs

    def _owner_for(self, serializer, default):
        agent = serializer.validated_data.get("agent") or default
        if agent != self.request.user and not self.request.user.is_manager_role:
            raise PermissionDenied("Only managers can assign goals to another agent.")
        return agent

    def perform_create(self, serializer):
        owner = self._owner_for(serializer, self.request.user)
        data = serializer.validated_data
        seed = ledger.compute_metric_value(
            owner.pk, data["metric_type"], data.get("start_date"), data.get("end_date"),
        )
        goal = serializer.save(agent=owner, current_value=seed or Decimal("0"))
        logger.info(
            "Goal %s created for agent %s (metric=%s, seeded=%s)",
            goal.pk, owner.pk, goal.metric_type, goal.current_value,
        )

    def perform_update(self, serializer):
        goal = serializer.instance
        owner = self._owner_for(serializer, goal.agent)
        data = serializer.validated_data
        rescoped = (
            owner != goal.agent
            or data.get("metric_type", goal.metric_type) != goal.metric_type
            or data.get("start_date", goal.start_date) != goal.start_date
            or data.get("end_date", goal.end_date) != goal.end_date
        )
        if not rescoped:
            serializer.save(agent=owner)
            return

        # The running total belongs to the old scope; rebuild it for the new one.
        seed = ledger.compute_metric_value(
            owner.pk,
            data.get("metric_type", goal.metric_type),
            data.get("start_date", goal.start_date),
            data.get("end_date", goal.end_date),
        )
        goal = serializer.save(agent=owner, current_value=seed or Decimal("0"))
        logger.info(
            "Goal %s re-seeded to %s after its scope changed", goal.pk, goal.current_value,
        )

    # ── Progress endpoints ─────────────────────────────────────────

    @action(detail=False, methods=["get"], url_path="progress")
    def progress_summary(self, request):
        """Summary of the caller's active goals (all goals for managers)."""
        params = GoalProgressQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        window = params.validated_data

        if getattr(settings, "GOALS_RECALC_ON_DASHBOARD", False):
            try:
                ledger.recalculate_all(agent_id=request.user.pk)
            except DatabaseError as exc:
                # Serve the stored values rather than failing the dashboard.
                logger.warning("Dashboard recalculation failed: %s", exc, exc_info=True)

        qs = self.get_queryset().filter(is_active=True)
        if "start_date" in window and "end_date" in window:
            qs = qs.filter(start_date__gte=window["start_date"], end_date__lte=window["end_date"])
        goals = list(qs.order_by("-end_date"))

        goal_data = GoalSerializer(goals, many=True).data
        by_type = defaultdict(list)
        by_metric = defaultdict(list)
        for item in goal_data:
            by_type[item["goal_type"]].append(item)
            by_metric[item["metric_type"]].append(item)

        return Response({
            "summary": GoalProgressSummarySerializer(_summarize(goals)).data,
            "goals": goal_data,
            "by_type": dict(by_type),
            "by_metric": dict(by_metric),
        })

    @action(detail=True, methods=["put"], url_path="progress")
    def update_progress(self, request, pk=None):
        """Overwrite ``current_value`` by hand."""
        goal = self.get_object()
        serializer = GoalProgressUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        value = serializer.validated_data["current_value"]

        with transaction.atomic():
            Goal.objects.filter(pk=goal.pk).update(current_value=value, updated_at=timezone.now())
        goal.refresh_from_db()
        logger.info("Goal %s progress set to %s by %s", goal.pk, value, request.user.pk)
        return Response(GoalSerializer(goal).data)

    @action(detail=False, methods=["post"], url_path="recalculate-progress")
    def recalculate_progress(self, request):
        """Rebuild the caller's own active goals from history."""
        results = _recalculate(agent_id=request.user.pk)
        return Response({
            "updated": len(results),
            "results": RecalculationResultSerializer(results, many=True).data,
        })

    @action(detail=False, methods=["post"], url_path="sync-all")
    def sync_all(self, request):
        """Rebuild every agent's active goals (managers only)."""
        results = _recalculate()
        logger.info("Goal sync-all by %s: %d goal(s)", request.user.pk, len(results))
        return Response({
            "updated": len(results),
            "results": RecalculationResultSerializer(results, many=True).data,
        })
