from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.db import DatabaseError

from clients.models import Client
from goals.ledger import GoalProgressLedger, ledger
from goals.models import Goal

M = Goal.MetricType


def _value(goal):
    goal.refresh_from_db()
    return goal.current_value


@pytest.fixture
def history(agent_user, policy_holder, make_sale):
    """Two sales inside 2024 and one just before it."""
    make_sale(premium="600.00", commission="60.00", sale_date=date(2024, 3, 15))
    make_sale(premium="400.00", commission="40.00", sale_date=date(2024, 5, 1))
    make_sale(premium="999.00", commission="99.00", sale_date=date(2023, 12, 31))
    Client.objects.filter(pk=policy_holder.pk).update(
        created_at=datetime(2024, 2, 10, 12, 0, tzinfo=dt_timezone.utc),
    )
    late = Client.objects.create(agent=agent_user, first_name="Late", last_name="Lead")
    Client.objects.filter(pk=late.pk).update(
        created_at=datetime(2025, 1, 5, 9, 0, tzinfo=dt_timezone.utc),
    )


@pytest.mark.django_db
class TestRecalculateAll:
    def test_overwrites_with_windowed_history(self, history, make_goal):
        amount = make_goal(metric_type=M.SALES_AMOUNT, current="5")
        commission = make_goal(metric_type=M.COMMISSION, current="5")
        count = make_goal(metric_type=M.SALES_COUNT, target="10", current="5")
        policies = make_goal(metric_type=M.POLICIES_SOLD, target="10")
        clients = make_goal(metric_type=M.CLIENT_COUNT, target="10", current="7")
        new_clients = make_goal(metric_type=M.NEW_CLIENTS, target="10")

        results = ledger.recalculate_all()

        assert _value(amount) == Decimal("1000.00")
        assert _value(commission) == Decimal("100.00")
        assert _value(count) == Decimal("2")
        assert _value(policies) == Decimal("2")
        assert _value(clients) == Decimal("1")
        assert _value(new_clients) == Decimal("1")
        by_goal = {result.goal_id: result for result in results}
        assert by_goal[amount.pk].old_value == Decimal("5")
        assert by_goal[amount.pk].new_value == Decimal("1000.00")

    def test_open_ended_window(self, history, make_goal):
        goal = make_goal(metric_type=M.SALES_AMOUNT, start_date=date(2024, 4, 1), end_date=None)

        ledger.recalculate_all()

        assert _value(goal) == Decimal("400.00")

    def test_is_idempotent(self, history, make_goal):
        goal = make_goal(metric_type=M.SALES_AMOUNT, current="42")

        ledger.recalculate_all()
        first = _value(goal)
        results = ledger.recalculate_all()

        assert _value(goal) == first
        assert all(result.old_value == result.new_value for result in results)

    def test_scoped_to_one_agent(self, history, agent_user, other_agent, make_goal):
        mine = make_goal(metric_type=M.SALES_AMOUNT, current="1")
        theirs = make_goal(agent=other_agent, metric_type=M.SALES_AMOUNT, current="77")

        results = ledger.recalculate_all(agent_id=agent_user.pk)

        assert [result.goal_id for result in results] == [mine.pk]
        assert _value(mine) == Decimal("1000.00")
        assert _value(theirs) == Decimal("77")

    def test_other_agents_history_not_counted(self, history, other_agent, make_goal):
        theirs = make_goal(agent=other_agent, metric_type=M.SALES_AMOUNT, current="77")

        ledger.recalculate_all()

        assert _value(theirs) == Decimal("0")

    def test_inactive_goals_skipped(self, history, make_goal):
        inactive = make_goal(metric_type=M.SALES_AMOUNT, current="3", is_active=False)

        ledger.recalculate_all()

        assert _value(inactive) == Decimal("3")

    def test_unknown_metric_skipped(self, history, make_goal):
        odd = make_goal(metric_type="renewals", current="3")

        results = ledger.recalculate_all()

        assert odd.pk not in {result.goal_id for result in results}
        assert _value(odd) == Decimal("3")

    def test_errors_propagate(self, history, make_goal, monkeypatch):
        make_goal(metric_type=M.SALES_AMOUNT)

        def _boom(self, *args, **kwargs):
            raise DatabaseError("read failed")

        monkeypatch.setattr(GoalProgressLedger, "compute_metric_value", _boom)
        with pytest.raises(DatabaseError):
            ledger.recalculate_all()


@pytest.mark.django_db
def test_compute_metric_value_for_empty_history(agent_user):
    assert ledger.compute_metric_value(agent_user.pk, M.SALES_AMOUNT) == Decimal("0.00")
    assert ledger.compute_metric_value(agent_user.pk, M.SALES_COUNT) == Decimal("0")
    assert ledger.compute_metric_value(agent_user.pk, "renewals") is None
