"""Models for the clients app."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class Client(TimeStampedModel):
    """A client or prospect owned by exactly one agent."""

    class Status(models.TextChoices):
        CLIENT = "client", "Client"
        PROSPECT = "prospect", "Prospect"

    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="clients",
        verbose_name="agent",
    )
    first_name = models.CharField("first name", max_length=100)
    last_name = models.CharField("last name", max_length=100)
    email = models.EmailField("email", blank=True, default="", db_index=True)
    phone = models.CharField("phone", max_length=20, blank=True, default="")
    date_of_birth = models.DateField("date of birth", null=True, blank=True)
    employer = models.CharField("employer", max_length=255, blank=True, default="")
    status = models.CharField(
        "status",
        max_length=20,
        choices=Status.choices,
        default=Status.PROSPECT,
        db_index=True,
    )
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        verbose_name = "client"
        verbose_name_plural = "clients"
        ordering = ["last_name", "first_name"]
        indexes = [
            models.Index(fields=["agent", "created_at"], name="client_agent_created_idx"),
        ]

    @property
    def full_name(self):
        """Return the client's full name."""
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name or self.email
