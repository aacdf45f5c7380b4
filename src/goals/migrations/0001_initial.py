from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Goal",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("title", models.CharField(max_length=100, verbose_name="title")),
                (
                    "metric_type",
                    models.CharField(
                        choices=[
                            ("sales_amount", "Sales amount"),
                            ("commission", "Commission"),
                            ("policies_sold", "Policies sold"),
                            ("sales_count", "Sales count"),
                            ("client_count", "Client count"),
                            ("new_clients", "New clients"),
                        ],
                        db_index=True,
                        max_length=30,
                        verbose_name="metric",
                    ),
                ),
                (
                    "goal_type",
                    models.CharField(
                        choices=[
                            ("weekly", "Weekly"),
                            ("monthly", "Monthly"),
                            ("quarterly", "Quarterly"),
                            ("half_yearly", "Half-yearly"),
                            ("annual", "Annual"),
                        ],
                        db_index=True,
                        default="monthly",
                        max_length=20,
                        verbose_name="period",
                    ),
                ),
                (
                    "target_value",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                        verbose_name="target",
                    ),
                ),
                (
                    "current_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="current value",
                    ),
                ),
                ("start_date", models.DateField(verbose_name="start date")),
                ("end_date", models.DateField(blank=True, null=True, verbose_name="end date")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                (
                    "agent",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="goals",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="agent",
                    ),
                ),
            ],
            options={
                "verbose_name": "goal",
                "verbose_name_plural": "goals",
                "ordering": ["-end_date", "-created_at"],
                "indexes": [models.Index(fields=["agent", "is_active"], name="goal_agent_active_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("current_value__gte", 0)),
                        name="goal_current_value_non_negative",
                    )
                ],
            },
        ),
    ]
