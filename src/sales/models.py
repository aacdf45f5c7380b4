"""Models for the sales app."""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from core.models import TimeStampedModel


class Sale(TimeStampedModel):
    """An insurance policy sold by an agent to one of their clients."""

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        CANCELLED = "cancelled", "Cancelled"
        EXPIRED = "expired", "Expired"

    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sales",
        verbose_name="agent",
    )
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.PROTECT,
        related_name="sales",
        verbose_name="client",
    )
    product_name = models.CharField("product", max_length=255, blank=True, default="")
    premium_amount = models.DecimalField(
        "premium",
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    commission_amount = models.DecimalField(
        "commission",
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    commission_rate = models.DecimalField(
        "commission rate (%)",
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
    )
    sale_date = models.DateField("sale date", db_index=True)
    policy_number = models.CharField("policy number", max_length=100, blank=True, default="")
    status = models.CharField(
        "status",
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        verbose_name = "sale"
        verbose_name_plural = "sales"
        ordering = ["-sale_date", "-created_at"]
        indexes = [
            models.Index(fields=["agent", "sale_date"], name="sale_agent_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(premium_amount__gt=0) & Q(commission_amount__gt=0),
                name="sale_amounts_positive",
            ),
        ]

    def __str__(self):
        label = self.policy_number or self.product_name or f"#{self.pk}"
        return f"{label} ({self.agent})"
