"""Signals: feed sale and client lifecycle events into the goal ledger."""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

logger = logging.getLogger(__name__)


def _defer(label: str, apply) -> None:
    def _dispatch() -> None:
        try:
            apply()
        except Exception as exc:
            # Never let a signal crash a business transaction.
            logger.error("goal ledger %s failed: %s", label, exc, exc_info=True)

    # Run after DB commit so a rolled-back sale never reaches the goals.
    try:
        transaction.on_commit(_dispatch)
    except Exception:
        _dispatch()


@receiver(pre_save, sender="sales.Sale")
def on_sale_pre_save(sender, instance, **kwargs):
    """Capture the stored owner and amounts to diff against in post_save."""
    from goals.ledger import SaleAmounts

    instance._previous_agent_id = None
    instance._previous_amounts = None
    if not getattr(instance, "pk", None):
        return
    previous = (
        sender.objects.filter(pk=instance.pk)
        .only("agent", "premium_amount", "commission_amount")
        .first()
    )
    if previous is None:
        return
    instance._previous_agent_id = previous.agent_id
    instance._previous_amounts = SaleAmounts.from_source(previous)


@receiver(post_save, sender="sales.Sale")
def on_sale_saved(sender, instance, created, **kwargs):
    from goals.ledger import SALE_EVENT, SaleAmounts, ledger

    agent_id = instance.agent_id
    new_amounts = SaleAmounts.from_source(instance)

    if created:
        _defer("sale create", lambda: ledger.apply_event_on_create(SALE_EVENT, agent_id, new_amounts))
        return

    old_amounts = getattr(instance, "_previous_amounts", None)
    if old_amounts is None:
        return
    old_agent_id = getattr(instance, "_previous_agent_id", None)

    if old_agent_id is not None and old_agent_id != agent_id:
        # Re-assignment moves the whole contribution between agents.
        def _move() -> None:
            ledger.apply_event_on_delete(old_agent_id, old_amounts)
            ledger.apply_event_on_create(SALE_EVENT, agent_id, new_amounts)

        _defer("sale re-assignment", _move)
        return

    if old_amounts == new_amounts:
        return
    _defer("sale update", lambda: ledger.apply_event_on_update(agent_id, old_amounts, new_amounts))


@receiver(post_delete, sender="sales.Sale")
def on_sale_deleted(sender, instance, **kwargs):
    from goals.ledger import SaleAmounts, ledger

    agent_id = instance.agent_id
    amounts = SaleAmounts.from_source(instance)
    _defer("sale delete", lambda: ledger.apply_event_on_delete(agent_id, amounts))


@receiver(post_save, sender="clients.Client")
def on_client_saved(sender, instance, created, **kwargs):
    # Client edits and deletions leave goals untouched.
    if not created:
        return
    from goals.ledger import CLIENT_EVENT, ledger

    agent_id = instance.agent_id
    _defer("client create", lambda: ledger.apply_event_on_create(CLIENT_EVENT, agent_id))
