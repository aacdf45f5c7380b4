"""Goal progress ledger.

Keeps each active goal's ``current_value`` in step with the sales and
clients attributed to its agent.

Core design principles:
- Incremental: each sale/client event adjusts the matching goals by a delta,
  no history scan per event.
- Atomic: every adjustment is a single ``UPDATE ... SET current_value =
  current_value + delta`` so concurrent events for one agent cannot lose
  increments.
- Floor at zero: decrements (and negative update deltas) are clamped with
  ``GREATEST(..., 0)`` inside the same statement.
- Best-effort: per-event paths run after the triggering write committed and
  never raise persistence errors; ``recalculate_all`` does.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from django.db import DatabaseError, models, transaction
from django.db.models import Count, F, Sum, Value
from django.db.models.functions import Coalesce, Greatest
from django.utils import timezone

from goals.models import Goal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")

SALE_EVENT = "sale"
CLIENT_EVENT = "client"
EVENT_KINDS = (SALE_EVENT, CLIENT_EVENT)

Metric = Goal.MetricType
SALE_COUNT_METRICS = frozenset({Metric.POLICIES_SOLD.value, Metric.SALES_COUNT.value})
CLIENT_COUNT_METRICS = frozenset({Metric.CLIENT_COUNT.value, Metric.NEW_CLIENTS.value})
SALE_METRICS = frozenset({Metric.SALES_AMOUNT.value, Metric.COMMISSION.value}) | SALE_COUNT_METRICS

_VALUE_FIELD = models.DecimalField(max_digits=14, decimal_places=2)


def _to_decimal(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


@dataclass(frozen=True)
class SaleAmounts:
    """The part of a sale the ledger cares about."""

    premium_amount: Decimal = ZERO
    commission_amount: Decimal = ZERO

    @classmethod
    def from_source(cls, source) -> "SaleAmounts":
        """Build from a Sale instance, a mapping, or ``None`` (client events)."""
        if source is None:
            return cls()
        if isinstance(source, cls):
            return source
        if isinstance(source, Mapping):
            premium = source.get("premium_amount")
            commission = source.get("commission_amount")
        else:
            premium = getattr(source, "premium_amount", None)
            commission = getattr(source, "commission_amount", None)
        return cls(
            premium_amount=_to_decimal(premium),
            commission_amount=_to_decimal(commission),
        )


@dataclass(frozen=True)
class GoalAdjustment:
    goal_id: int
    metric_type: str
    delta: Decimal


@dataclass(frozen=True)
class RecalculationResult:
    goal_id: int
    title: str
    old_value: Decimal
    new_value: Decimal


def creation_delta(kind: str, metric_type: str, amounts: SaleAmounts) -> Decimal | None:
    """What creating one sale/client adds to a goal of ``metric_type``.

    ``None`` means the event does not concern this goal.
    """
    if kind == SALE_EVENT:
        if metric_type == Metric.SALES_AMOUNT:
            return amounts.premium_amount
        if metric_type == Metric.COMMISSION:
            return amounts.commission_amount
        if metric_type in SALE_COUNT_METRICS:
            return ONE
    elif kind == CLIENT_EVENT and metric_type in CLIENT_COUNT_METRICS:
        return ONE
    return None


def update_delta(metric_type: str, old: SaleAmounts, new: SaleAmounts) -> Decimal:
    # Count metrics never move on edit: an edited sale is still one sale.
    if metric_type == Metric.SALES_AMOUNT:
        return new.premium_amount - old.premium_amount
    if metric_type == Metric.COMMISSION:
        return new.commission_amount - old.commission_amount
    return ZERO


class GoalProgressLedger:
    """Applies sale/client lifecycle events to agents' active goals."""

    # ------------------------------------------------------------------
    # Incremental, best-effort paths
    # ------------------------------------------------------------------

    def apply_event_on_create(self, kind: str, agent_id, payload=None) -> list[GoalAdjustment]:
        """Add a newly created sale or client to the agent's active goals."""
        if kind not in EVENT_KINDS:
            raise ValueError(f"Unknown goal event kind: {kind!r}")
        amounts = SaleAmounts.from_source(payload)

        def _apply():
            adjustments = []
            for goal in self._active_goals(agent_id):
                delta = creation_delta(kind, goal.metric_type, amounts)
                if delta is None:
                    continue
                self._write_delta(goal.pk, delta, clamp=False)
                adjustments.append(GoalAdjustment(goal.pk, goal.metric_type, delta))
            return adjustments

        return self._best_effort(f"{kind} create", agent_id, _apply)

    def apply_event_on_update(self, agent_id, old_payload, new_payload) -> list[GoalAdjustment]:
        """Move amount-based goals by the difference between two versions of a sale."""
        old = SaleAmounts.from_source(old_payload)
        new = SaleAmounts.from_source(new_payload)

        def _apply():
            adjustments = []
            for goal in self._active_goals(agent_id):
                delta = update_delta(goal.metric_type, old, new)
                if delta == ZERO:
                    continue
                self._write_delta(goal.pk, delta, clamp=True)
                adjustments.append(GoalAdjustment(goal.pk, goal.metric_type, delta))
            return adjustments

        return self._best_effort("sale update", agent_id, _apply)

    def apply_event_on_delete(self, agent_id, payload) -> list[GoalAdjustment]:
        """Reverse a deleted sale's creation contribution, never below zero."""
        amounts = SaleAmounts.from_source(payload)

        def _apply():
            adjustments = []
            for goal in self._active_goals(agent_id):
                contribution = creation_delta(SALE_EVENT, goal.metric_type, amounts)
                if contribution is None:
                    continue
                self._write_delta(goal.pk, -contribution, clamp=True)
                adjustments.append(GoalAdjustment(goal.pk, goal.metric_type, -contribution))
            return adjustments

        return self._best_effort("sale delete", agent_id, _apply)

    # ------------------------------------------------------------------
    # Full recalculation
    # ------------------------------------------------------------------

    def recalculate_all(self, agent_id=None) -> list[RecalculationResult]:
        """Overwrite active goals with values re-aggregated from history.

        Scoped to one agent when ``agent_id`` is given, otherwise every
        agent. Errors propagate to the caller.
        """
        goals = Goal.objects.filter(is_active=True).order_by("pk")
        if agent_id is not None:
            goals = goals.filter(agent_id=agent_id)

        results = []
        for goal in goals:
            new_value = self.compute_metric_value(
                goal.agent_id, goal.metric_type, goal.start_date, goal.end_date,
            )
            if new_value is None:
                logger.debug("Skipping goal %s with unknown metric %r", goal.pk, goal.metric_type)
                continue
            with transaction.atomic():
                Goal.objects.filter(pk=goal.pk).update(
                    current_value=new_value,
                    updated_at=timezone.now(),
                )
            results.append(
                RecalculationResult(goal.pk, goal.title, goal.current_value, new_value)
            )

        logger.info(
            "Recalculated %d goal(s) (agent=%s)",
            len(results),
            agent_id if agent_id is not None else "all",
        )
        return results

    def compute_metric_value(
        self,
        agent_id,
        metric_type: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Decimal | None:
        """Aggregate an agent's history for one metric over a goal window.

        Sales are windowed on ``sale_date``, clients on the date they were
        created. Either bound may be open. Returns ``None`` for metrics the
        ledger does not know.
        """
        from clients.models import Client
        from sales.models import Sale

        if metric_type in CLIENT_COUNT_METRICS:
            clients = Client.objects.filter(agent_id=agent_id)
            if start_date:
                clients = clients.filter(created_at__date__gte=start_date)
            if end_date:
                clients = clients.filter(created_at__date__lte=end_date)
            return Decimal(clients.count())

        if metric_type not in SALE_METRICS:
            return None

        sales = Sale.objects.filter(agent_id=agent_id)
        if start_date:
            sales = sales.filter(sale_date__gte=start_date)
        if end_date:
            sales = sales.filter(sale_date__lte=end_date)
        totals = sales.aggregate(
            premium=Coalesce(Sum("premium_amount"), Value(ZERO), output_field=_VALUE_FIELD),
            commission=Coalesce(Sum("commission_amount"), Value(ZERO), output_field=_VALUE_FIELD),
            count=Count("id"),
        )
        if metric_type == Metric.SALES_AMOUNT:
            return _to_decimal(totals["premium"]).quantize(CENT)
        if metric_type == Metric.COMMISSION:
            return _to_decimal(totals["commission"]).quantize(CENT)
        return Decimal(totals["count"])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _active_goals(self, agent_id):
        # Date windows are a display concern; every active goal is fed.
        return Goal.objects.filter(agent_id=agent_id, is_active=True).only("id", "metric_type")

    def _write_delta(self, goal_id, delta: Decimal, *, clamp: bool) -> None:
        expression = F("current_value") + Value(delta, output_field=_VALUE_FIELD)
        if clamp:
            expression = Greatest(
                expression,
                Value(ZERO, output_field=_VALUE_FIELD),
                output_field=_VALUE_FIELD,
            )
        Goal.objects.filter(pk=goal_id).update(
            current_value=expression,
            updated_at=timezone.now(),
        )
        logger.debug("Goal %s adjusted by %s", goal_id, delta)

    def _best_effort(self, operation: str, agent_id, apply):
        try:
            with transaction.atomic():
                adjustments = apply()
        except DatabaseError:
            # The triggering sale/client is already committed; never undo it.
            logger.error(
                "Goal ledger %s failed for agent=%s", operation, agent_id, exc_info=True,
            )
            return []
        if adjustments:
            logger.info(
                "Goal ledger %s: %d goal(s) adjusted for agent=%s",
                operation, len(adjustments), agent_id,
            )
        return adjustments


ledger = GoalProgressLedger()
