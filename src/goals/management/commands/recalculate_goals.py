"""Rebuild goal progress from recorded sales and clients."""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from accounts.models import User
from goals.ledger import ledger


class Command(BaseCommand):
    help = (
        "Recalculate current_value of active goals from sales and client "
        "history. Overwrites values drifted by failed incremental updates."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--agent",
            default="",
            help="Restrict to one agent (user id or email).",
        )

    def handle(self, *args, **options):
        agent_ref = (options.get("agent") or "").strip()
        agent_id = None
        if agent_ref:
            agent_id = self._resolve_agent(agent_ref)

        results = ledger.recalculate_all(agent_id=agent_id)
        if not results:
            self.stdout.write("No active goals found.")
            return

        changed = 0
        for result in results:
            if result.old_value != result.new_value:
                changed += 1
                self.stdout.write(
                    f"[FIX] {result.title}: {result.old_value} -> {result.new_value}"
                )
        self.stdout.write(
            self.style.SUCCESS(
                f"Recalculated {len(results)} goal(s), {changed} changed."
            )
        )

    @staticmethod
    def _resolve_agent(ref: str):
        users = User.objects.all()
        user = users.filter(email__iexact=ref).first()
        if user is None:
            try:
                user = users.filter(pk=ref).first()
            except (ValidationError, ValueError):
                user = None
        if user is None:
            raise CommandError(f"Unknown agent: {ref}")
        return user.pk
