from datetime import date
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.db import DatabaseError

from goals.ledger import GoalProgressLedger
from goals.models import Goal
from goals.tasks import recalculate_goal_progress

M = Goal.MetricType


@pytest.mark.django_db
class TestRecalculateTask:
    def test_rebuilds_goals(self, make_goal, make_sale):
        goal = make_goal(metric_type=M.SALES_AMOUNT, current="1")
        make_sale(premium="250.00", sale_date=date(2024, 2, 1))

        result = recalculate_goal_progress.apply().get()

        goal.refresh_from_db()
        assert goal.current_value == Decimal("250.00")
        assert result == {"recalculated": 1, "changed": 1}

    def test_scoped_by_agent(self, agent_user, other_agent, make_goal):
        make_goal(metric_type=M.SALES_AMOUNT)
        theirs = make_goal(agent=other_agent, metric_type=M.SALES_AMOUNT, current="9")

        result = recalculate_goal_progress.apply(kwargs={"agent_id": agent_user.pk}).get()

        theirs.refresh_from_db()
        assert theirs.current_value == Decimal("9")
        assert result["recalculated"] == 1

    def test_failure_is_retried(self, make_goal, monkeypatch):
        make_goal(metric_type=M.SALES_AMOUNT)
        retries = []

        def _boom(self, agent_id=None):
            raise DatabaseError("db gone")

        def _retry(*args, **kwargs):
            retries.append(kwargs.get("exc"))
            raise RuntimeError("retry scheduled")

        monkeypatch.setattr(GoalProgressLedger, "recalculate_all", _boom)
        monkeypatch.setattr(recalculate_goal_progress, "retry", _retry)

        with pytest.raises(RuntimeError):
            recalculate_goal_progress.apply(throw=True).get()
        assert len(retries) == 1
        assert isinstance(retries[0], DatabaseError)

    def test_nightly_schedule_registered(self, settings):
        entry = settings.CELERY_BEAT_SCHEDULE["goals-nightly-recalculation"]
        assert entry["task"] == "goals.tasks.recalculate_goal_progress"


@pytest.mark.django_db
class TestRecalculateCommand:
    def test_reports_changed_goals(self, make_goal, make_sale):
        goal = make_goal(metric_type=M.SALES_COUNT, target="5", title="Q1 policies")
        make_sale(sale_date=date(2024, 2, 1))
        out = StringIO()

        call_command("recalculate_goals", stdout=out)

        goal.refresh_from_db()
        assert goal.current_value == Decimal("1")
        assert "Q1 policies" in out.getvalue()
        assert "1 goal(s), 1 changed" in out.getvalue()

    def test_agent_by_email(self, agent_user, other_agent, make_goal):
        make_goal(metric_type=M.SALES_AMOUNT)
        theirs = make_goal(agent=other_agent, metric_type=M.SALES_AMOUNT, current="9")

        call_command("recalculate_goals", agent=agent_user.email, stdout=StringIO())

        theirs.refresh_from_db()
        assert theirs.current_value == Decimal("9")

    def test_unknown_agent(self, db):
        with pytest.raises(CommandError):
            call_command("recalculate_goals", agent="nobody@test.com", stdout=StringIO())

    def test_no_goals(self, db):
        out = StringIO()
        call_command("recalculate_goals", stdout=out)
        assert "No active goals found." in out.getvalue()
