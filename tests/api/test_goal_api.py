from datetime import date
from decimal import Decimal

import pytest
from django.db import DatabaseError

from goals.ledger import GoalProgressLedger
from goals.models import Goal

M = Goal.MetricType
GOALS_URL = "/api/v1/goals/"


def _goal_payload(**overrides):
    payload = {
        "title": "Spring premiums",
        "metric_type": M.SALES_AMOUNT,
        "goal_type": Goal.GoalType.QUARTERLY,
        "target_value": "1000.00",
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestGoalCrud:
    def test_agent_sees_only_own_goals(self, agent_client, make_goal, other_agent):
        mine = make_goal()
        make_goal(agent=other_agent)

        response = agent_client.get(GOALS_URL)

        assert response.status_code == 200
        assert [row["id"] for row in response.data["results"]] == [mine.pk]

    def test_manager_sees_all_goals(self, manager_client, make_goal, other_agent):
        make_goal()
        make_goal(agent=other_agent)

        response = manager_client.get(GOALS_URL)

        assert response.data["count"] == 2

    def test_output_includes_progress_and_status(self, agent_client, make_goal):
        goal = make_goal(current="250", end_date=None)

        response = agent_client.get(f"{GOALS_URL}{goal.pk}/")

        assert response.data["progress"] == "25.00"
        assert response.data["status"] == "active"

    def test_create_seeds_from_history(self, agent_client, agent_user, make_sale):
        make_sale(premium="300.00", sale_date=date(2024, 2, 1))
        make_sale(premium="999.00", sale_date=date(2023, 2, 1))

        response = agent_client.post(GOALS_URL, _goal_payload(), format="json")

        assert response.status_code == 201, response.data
        goal = Goal.objects.get(pk=response.data["id"])
        assert goal.agent == agent_user
        assert goal.current_value == Decimal("300.00")

    def test_agent_cannot_assign_goal_to_someone_else(self, agent_client, other_agent):
        response = agent_client.post(GOALS_URL, _goal_payload(agent=str(other_agent.pk)), format="json")

        assert response.status_code == 403
        assert not Goal.objects.exists()

    def test_manager_assigns_goal(self, manager_client, agent_user):
        response = manager_client.post(GOALS_URL, _goal_payload(agent=str(agent_user.pk)), format="json")

        assert response.status_code == 201
        assert Goal.objects.get().agent == agent_user

    def test_end_date_must_follow_start(self, agent_client):
        response = agent_client.post(
            GOALS_URL, _goal_payload(start_date="2024-06-01", end_date="2024-06-01"), format="json",
        )

        assert response.status_code == 400
        assert "end_date" in response.data

    def test_target_must_be_positive(self, agent_client):
        response = agent_client.post(GOALS_URL, _goal_payload(target_value="0"), format="json")

        assert response.status_code == 400

    def test_current_value_is_read_only(self, agent_client, make_goal):
        goal = make_goal(current="10")

        response = agent_client.patch(f"{GOALS_URL}{goal.pk}/", {"current_value": "999"}, format="json")

        assert response.status_code == 200
        goal.refresh_from_db()
        assert goal.current_value == Decimal("10")

    def test_filter_by_status(self, agent_client, make_goal):
        done = make_goal(current="1000")
        make_goal(current="1")

        response = agent_client.get(GOALS_URL, {"status": "completed"})

        assert [row["id"] for row in response.data["results"]] == [done.pk]

    def test_unknown_status_filter(self, agent_client):
        response = agent_client.get(GOALS_URL, {"status": "paused"})

        assert response.status_code == 400


@pytest.mark.django_db
class TestGoalProgressEndpoints:
    def test_summary(self, agent_client, make_goal):
        make_goal(metric_type=M.SALES_AMOUNT, current="1000")
        make_goal(metric_type=M.COMMISSION, current="50", goal_type=Goal.GoalType.ANNUAL)
        make_goal(metric_type=M.SALES_COUNT, target="5")
        make_goal(metric_type=M.SALES_COUNT, target="5", current="5", is_active=False)

        response = agent_client.get(f"{GOALS_URL}progress/")

        assert response.status_code == 200
        summary = response.data["summary"]
        assert summary["total"] == 3
        assert summary["completed"] == 1
        assert summary["in_progress"] == 1
        assert summary["not_started"] == 1
        assert summary["completion_rate"] == "33.33"
        assert set(response.data["by_metric"]) == {M.SALES_AMOUNT, M.COMMISSION, M.SALES_COUNT}
        assert len(response.data["by_type"][Goal.GoalType.ANNUAL]) == 1

    def test_summary_recalculates_when_enabled(self, agent_client, make_goal, make_sale, settings):
        settings.GOALS_RECALC_ON_DASHBOARD = True
        goal = make_goal(current="0")
        make_sale(premium="200.00", sale_date=date(2024, 5, 5))

        response = agent_client.get(f"{GOALS_URL}progress/")

        assert response.data["goals"][0]["current_value"] == "200.00"
        goal.refresh_from_db()
        assert goal.current_value == Decimal("200.00")

    def test_manual_progress_override(self, agent_client, make_goal):
        goal = make_goal(current="10")

        response = agent_client.put(f"{GOALS_URL}{goal.pk}/progress/", {"current_value": "1000"}, format="json")

        assert response.status_code == 200
        assert response.data["status"] == "completed"
        goal.refresh_from_db()
        assert goal.current_value == Decimal("1000")

    def test_manual_progress_rejects_negative(self, agent_client, make_goal):
        goal = make_goal(current="10")

        response = agent_client.put(f"{GOALS_URL}{goal.pk}/progress/", {"current_value": "-1"}, format="json")

        assert response.status_code == 400

    def test_manual_progress_on_foreign_goal(self, agent_client, make_goal, other_agent):
        goal = make_goal(agent=other_agent)

        response = agent_client.put(f"{GOALS_URL}{goal.pk}/progress/", {"current_value": "1"}, format="json")

        assert response.status_code == 404

    def test_recalculate_own_goals(self, agent_client, make_goal, make_sale, other_agent):
        mine = make_goal(current="5")
        theirs = make_goal(agent=other_agent, current="5")
        make_sale(premium="120.00", sale_date=date(2024, 3, 3))

        response = agent_client.post(f"{GOALS_URL}recalculate-progress/")

        assert response.status_code == 200
        assert response.data["updated"] == 1
        assert response.data["results"][0]["new_value"] == "120.00"
        mine.refresh_from_db()
        theirs.refresh_from_db()
        assert mine.current_value == Decimal("120.00")
        assert theirs.current_value == Decimal("5")

    def test_recalculate_failure_is_retryable(self, agent_client, make_goal, monkeypatch):
        make_goal()

        def _boom(self, agent_id=None):
            raise DatabaseError("timeout")

        monkeypatch.setattr(GoalProgressLedger, "recalculate_all", _boom)
        response = agent_client.post(f"{GOALS_URL}recalculate-progress/")

        assert response.status_code == 503
        assert response.data["detail"].code == "recalculation_failed"

    def test_sync_all_requires_manager(self, agent_client):
        response = agent_client.post(f"{GOALS_URL}sync-all/")

        assert response.status_code == 403

    def test_sync_all(self, manager_client, make_goal, other_agent):
        make_goal(current="5")
        make_goal(agent=other_agent, current="5")

        response = manager_client.post(f"{GOALS_URL}sync-all/")

        assert response.status_code == 200
        assert response.data["updated"] == 2
        assert set(Goal.objects.values_list("current_value", flat=True)) == {Decimal("0")}

    def test_summary_counts_completed_by_status(self, agent_client, make_goal):
        make_goal(target="100000.00", current="99999.99", end_date=None)

        response = agent_client.get(f"{GOALS_URL}progress/")
        listed = agent_client.get(GOALS_URL, {"status": "completed"})

        assert response.data["goals"][0]["progress"] == "100.00"
        assert response.data["goals"][0]["status"] == "active"
        summary = response.data["summary"]
        assert summary["completed"] == 0
        assert summary["in_progress"] == 1
        assert summary["not_started"] == 0
        assert listed.data["count"] == summary["completed"]

    def test_summary_date_window(self, agent_client, make_goal):
        inside = make_goal(start_date=date(2024, 4, 1), end_date=date(2024, 6, 30))
        make_goal()

        response = agent_client.get(
            f"{GOALS_URL}progress/", {"start_date": "2024-04-01", "end_date": "2024-06-30"},
        )

        assert response.status_code == 200
        assert [row["id"] for row in response.data["goals"]] == [inside.pk]

    @pytest.mark.parametrize("params", [
        {"start_date": "nope", "end_date": "2025-01-01"},
        {"start_date": "2024-01-01", "end_date": "2024-13-45"},
        {"start_date": "2024-06-01", "end_date": "2024-01-01"},
    ])
    def test_summary_rejects_bad_dates(self, agent_client, params):
        response = agent_client.get(f"{GOALS_URL}progress/", params)

        assert response.status_code == 400


@pytest.mark.django_db
class TestGoalRescoping:
    def test_changing_metric_reseeds_current_value(self, agent_client, make_goal, make_sale):
        make_sale(premium="600.00", sale_date=date(2024, 3, 1))
        goal = make_goal(metric_type=M.SALES_AMOUNT, current="600.00")

        response = agent_client.patch(
            f"{GOALS_URL}{goal.pk}/", {"metric_type": M.POLICIES_SOLD}, format="json",
        )

        assert response.status_code == 200, response.data
        goal.refresh_from_db()
        assert goal.current_value == Decimal("1")

    def test_changing_window_reseeds_current_value(self, agent_client, make_goal, make_sale):
        make_sale(premium="200.00", sale_date=date(2024, 2, 1))
        make_sale(premium="300.00", sale_date=date(2024, 8, 1))
        goal = make_goal(current="500.00")

        response = agent_client.patch(
            f"{GOALS_URL}{goal.pk}/", {"start_date": "2024-07-01"}, format="json",
        )

        assert response.status_code == 200, response.data
        goal.refresh_from_db()
        assert goal.current_value == Decimal("300.00")

    def test_manager_reassigning_goal_reseeds(self, manager_client, make_goal, make_sale, other_agent):
        make_sale(premium="400.00")
        goal = make_goal(current="400.00")

        response = manager_client.patch(
            f"{GOALS_URL}{goal.pk}/", {"agent": str(other_agent.pk)}, format="json",
        )

        assert response.status_code == 200, response.data
        goal.refresh_from_db()
        assert goal.agent == other_agent
        assert goal.current_value == Decimal("0")

    def test_cosmetic_edit_keeps_current_value(self, agent_client, make_goal):
        goal = make_goal(current="42.00")

        response = agent_client.patch(
            f"{GOALS_URL}{goal.pk}/", {"title": "Renamed", "target_value": "2000.00"}, format="json",
        )

        assert response.status_code == 200
        goal.refresh_from_db()
        assert goal.title == "Renamed"
        assert goal.current_value == Decimal("42.00")
