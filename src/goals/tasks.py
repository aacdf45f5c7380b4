"""Celery tasks for the goals module."""
from __future__ import annotations

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=30)
def recalculate_goal_progress(self, agent_id=None):
    """Rebuild goal progress from sales/client history.

    Runs nightly for every agent (Celery Beat) to repair drift left by
    best-effort ledger updates that failed.
    """
    try:
        from goals.ledger import ledger

        results = ledger.recalculate_all(agent_id=agent_id)
    except Exception as exc:
        logger.exception("recalculate_goal_progress failed: %s", exc)
        raise self.retry(exc=exc)

    changed = sum(1 for result in results if result.old_value != result.new_value)
    logger.info(
        "Recalculated %d goals (%d changed) agent=%s",
        len(results), changed, agent_id or "all",
    )
    return {"recalculated": len(results), "changed": changed}
