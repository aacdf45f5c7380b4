"""Models for the agent goals module."""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from core.models import TimeStampedModel
from goals.progress import derive_status, progress_percent


class Goal(TimeStampedModel):
    """A performance target one agent tracks over a period.

    ``current_value`` is a running total owned by ``goals.ledger``; nothing
    else should write it except the manual progress override endpoint.
    """

    class MetricType(models.TextChoices):
        SALES_AMOUNT = "sales_amount", "Sales amount"
        COMMISSION = "commission", "Commission"
        POLICIES_SOLD = "policies_sold", "Policies sold"
        SALES_COUNT = "sales_count", "Sales count"
        CLIENT_COUNT = "client_count", "Client count"
        NEW_CLIENTS = "new_clients", "New clients"

    class GoalType(models.TextChoices):
        WEEKLY = "weekly", "Weekly"
        MONTHLY = "monthly", "Monthly"
        QUARTERLY = "quarterly", "Quarterly"
        HALF_YEARLY = "half_yearly", "Half-yearly"
        ANNUAL = "annual", "Annual"

    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="goals",
        verbose_name="agent",
    )
    title = models.CharField("title", max_length=100)
    metric_type = models.CharField(
        "metric",
        max_length=30,
        choices=MetricType.choices,
        db_index=True,
    )
    goal_type = models.CharField(
        "period",
        max_length=20,
        choices=GoalType.choices,
        default=GoalType.MONTHLY,
        db_index=True,
    )
    target_value = models.DecimalField(
        "target",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    current_value = models.DecimalField(
        "current value",
        max_digits=12,
        decimal_places=2,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    start_date = models.DateField("start date")
    end_date = models.DateField("end date", null=True, blank=True)
    is_active = models.BooleanField("active", default=True, db_index=True)
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        verbose_name = "goal"
        verbose_name_plural = "goals"
        ordering = ["-end_date", "-created_at"]
        indexes = [
            models.Index(fields=["agent", "is_active"], name="goal_agent_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(current_value__gte=0),
                name="goal_current_value_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(target_value__gt=0),
                name="goal_target_value_positive",
            ),
            models.CheckConstraint(
                condition=Q(end_date__isnull=True) | Q(end_date__gt=F("start_date")),
                name="goal_end_after_start",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.agent})"

    def clean(self) -> None:
        if self.end_date and self.start_date and self.end_date <= self.start_date:
            raise ValidationError("The end date must be after the start date.")

    @property
    def progress(self) -> Decimal:
        return progress_percent(self.current_value, self.target_value)

    def status_at(self, now=None) -> str:
        return derive_status(self.current_value, self.target_value, self.end_date, now)

    @property
    def status(self) -> str:
        return self.status_at()
