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
            name="Client",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("first_name", models.CharField(max_length=100, verbose_name="first name")),
                ("last_name", models.CharField(max_length=100, verbose_name="last name")),
                ("email", models.EmailField(blank=True, db_index=True, default="", max_length=254, verbose_name="email")),
                ("phone", models.CharField(blank=True, default="", max_length=20, verbose_name="phone")),
                ("date_of_birth", models.DateField(blank=True, null=True, verbose_name="date of birth")),
                ("employer", models.CharField(blank=True, default="", max_length=255, verbose_name="employer")),
                (
                    "status",
                    models.CharField(
                        choices=[("client", "Client"), ("prospect", "Prospect")],
                        db_index=True,
                        default="prospect",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                (
                    "agent",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="clients",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="agent",
                    ),
                ),
            ],
            options={
                "verbose_name": "client",
                "verbose_name_plural": "clients",
                "ordering": ["last_name", "first_name"],
                "indexes": [models.Index(fields=["agent", "created_at"], name="client_agent_created_idx")],
            },
        ),
    ]
