"""Domain services for clients.

Goal accounting is not done here: ``goals.signals`` reacts to the committed
``Client`` row.
"""

from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied
from django.db import transaction

from clients.models import Client

logger = logging.getLogger("bulwark")

EDITABLE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "date_of_birth",
    "employer",
    "status",
    "notes",
)


def _resolve_agent(actor, agent=None):
    """Agents always own what they create; managers may pick the owner."""
    if agent is None or agent == actor:
        return actor
    if not actor.is_manager_role:
        raise PermissionDenied("Only managers can act on another agent's clients.")
    return agent


def ensure_can_manage(client: Client, actor) -> None:
    if client.agent_id != actor.pk and not actor.is_manager_role:
        raise PermissionDenied("You do not have access to this client.")


@transaction.atomic
def create_client(*, actor, agent=None, **fields) -> Client:
    """Create a client owned by ``agent`` (defaults to ``actor``)."""
    owner = _resolve_agent(actor, agent)
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown client fields: {', '.join(sorted(unknown))}")
    if not fields.get("first_name") or not fields.get("last_name"):
        raise ValueError("First and last name are required.")

    client = Client.objects.create(agent=owner, **fields)
    logger.info("Client %s created for agent %s by %s", client.pk, owner.pk, actor.pk)
    return client


@transaction.atomic
def update_client(client: Client, *, actor, **changes) -> Client:
    ensure_can_manage(client, actor)
    update_fields = []
    for name, value in changes.items():
        if name not in EDITABLE_FIELDS:
            raise ValueError(f"Field '{name}' cannot be updated.")
        setattr(client, name, value)
        update_fields.append(name)
    if update_fields:
        client.save(update_fields=update_fields + ["updated_at"])
    return client


@transaction.atomic
def delete_client(client: Client, *, actor) -> None:
    """Delete a client. Clients with recorded sales are protected."""
    ensure_can_manage(client, actor)
    if client.sales.exists():
        raise ValueError("Cannot delete a client that still has sales.")
    client_id = client.pk
    client.delete()
    logger.info("Client %s deleted by %s", client_id, actor.pk)
