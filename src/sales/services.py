"""Business-logic / service functions for the sales app.

Goal progress follows sales through ``goals.signals``; these functions only
validate and persist the sale itself.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.core.exceptions import PermissionDenied
from django.db import transaction

from sales.models import Sale

logger = logging.getLogger("bulwark")

UPDATABLE_FIELDS = (
    "client",
    "product_name",
    "premium_amount",
    "commission_amount",
    "commission_rate",
    "sale_date",
    "policy_number",
    "status",
    "notes",
)


def _positive_amount(value, label: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"{label} must be a number.")
    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"{label} must be greater than zero.")
    return amount


def ensure_can_manage(sale: Sale, actor) -> None:
    if sale.agent_id != actor.pk and not actor.is_manager_role:
        raise PermissionDenied("You do not have access to this sale.")


def _check_client_access(client, actor) -> None:
    if client.agent_id != actor.pk and not actor.is_manager_role:
        raise PermissionDenied("You do not have access to this client.")


# ---------------------------------------------------------------------------
# create_sale
# ---------------------------------------------------------------------------

@transaction.atomic
def create_sale(
    *,
    actor,
    client,
    premium_amount,
    commission_amount,
    sale_date: date,
    agent=None,
    **extra,
) -> Sale:
    """Record a new sale.

    Parameters
    ----------
    actor : accounts.models.User
        The authenticated caller.
    client : clients.models.Client
    premium_amount, commission_amount : Decimal-compatible, > 0
    sale_date : date
    agent : accounts.models.User, optional
        Owner of the sale; only managers may set someone other than
        themselves. Defaults to ``actor``.

    Raises
    ------
    ValueError
        If amounts are missing or not positive.
    PermissionDenied
        If the actor may not sell on behalf of ``agent`` or to ``client``.
    """
    owner = agent or actor
    if owner != actor and not actor.is_manager_role:
        raise PermissionDenied("Only managers can record sales for another agent.")
    _check_client_access(client, actor)
    if sale_date is None:
        raise ValueError("A sale date is required.")

    unknown = set(extra) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown sale fields: {', '.join(sorted(unknown))}")

    sale = Sale.objects.create(
        agent=owner,
        client=client,
        premium_amount=_positive_amount(premium_amount, "Premium amount"),
        commission_amount=_positive_amount(commission_amount, "Commission amount"),
        sale_date=sale_date,
        **extra,
    )
    logger.info(
        "Sale %s recorded for agent %s (premium=%s, commission=%s)",
        sale.pk, owner.pk, sale.premium_amount, sale.commission_amount,
    )
    return sale


# ---------------------------------------------------------------------------
# update_sale
# ---------------------------------------------------------------------------

@transaction.atomic
def update_sale(sale: Sale, *, actor, agent=None, **changes) -> Sale:
    """Apply ``changes`` to an existing sale.

    Re-assigning the sale to another ``agent`` is reserved to managers.
    """
    ensure_can_manage(sale, actor)
    sale = Sale.objects.select_for_update().get(pk=sale.pk)

    update_fields = []
    if agent is not None and agent.pk != sale.agent_id:
        if not actor.is_manager_role:
            raise PermissionDenied("Only managers can re-assign a sale.")
        sale.agent = agent
        update_fields.append("agent")

    for name, value in changes.items():
        if name not in UPDATABLE_FIELDS:
            raise ValueError(f"Field '{name}' cannot be updated.")
        if name == "premium_amount":
            value = _positive_amount(value, "Premium amount")
        elif name == "commission_amount":
            value = _positive_amount(value, "Commission amount")
        elif name == "client":
            _check_client_access(value, actor)
        setattr(sale, name, value)
        update_fields.append(name)

    if update_fields:
        sale.save(update_fields=update_fields + ["updated_at"])
        logger.info("Sale %s updated by %s (%s)", sale.pk, actor.pk, ", ".join(update_fields))
    return sale


# ---------------------------------------------------------------------------
# delete_sale
# ---------------------------------------------------------------------------

@transaction.atomic
def delete_sale(sale: Sale, *, actor) -> None:
    ensure_can_manage(sale, actor)
    sale_id = sale.pk
    sale.delete()
    logger.info("Sale %s deleted by %s", sale_id, actor.pk)
