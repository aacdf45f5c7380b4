"""Derived goal state: progress percentage and status.

Both are pure functions of the stored values so the API, the admin and the
ledger's reporting paths cannot disagree about when a goal is done.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


class GoalStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    OVERDUE = "overdue", "Overdue"


def _as_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _as_date(now) -> date:
    if now is None:
        return timezone.localdate()
    if isinstance(now, datetime):
        if timezone.is_aware(now):
            return timezone.localtime(now).date()
        return now.date()
    return now


def progress_percent(current_value, target_value) -> Decimal:
    """Percentage of target reached, 2 decimals. Not capped at 100."""
    target = _as_decimal(target_value)
    if target <= 0:
        return Decimal("0.00")
    ratio = _as_decimal(current_value) / target * HUNDRED
    return ratio.quantize(CENT, rounding=ROUND_HALF_UP)


def derive_status(current_value, target_value, end_date=None, now=None) -> str:
    """Return the ``GoalStatus`` of a goal.

    Completion wins over lateness: a goal past its end date that reached its
    target is ``completed``. A goal whose ``end_date`` is today is not yet
    overdue. ``now`` may be a date or a datetime and defaults to today in the
    configured time zone.
    """
    target = _as_decimal(target_value)
    if target > 0 and _as_decimal(current_value) >= target:
        return GoalStatus.COMPLETED
    if end_date is not None and end_date < _as_date(now):
        return GoalStatus.OVERDUE
    return GoalStatus.ACTIVE


def status_q(status: str, now=None) -> Q:
    """``Q`` selecting goals whose derived status is ``status``.

    Mirrors ``derive_status`` in SQL so list endpoints can filter without
    loading every goal.
    """
    today = _as_date(now)
    completed = Q(target_value__gt=0, current_value__gte=F("target_value"))
    if status == GoalStatus.COMPLETED:
        return completed
    if status == GoalStatus.OVERDUE:
        return ~completed & Q(end_date__lt=today)
    if status == GoalStatus.ACTIVE:
        return ~completed & (Q(end_date__isnull=True) | Q(end_date__gte=today))
    raise ValueError(f"Unknown goal status: {status!r}")
