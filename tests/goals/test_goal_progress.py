from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from goals.models import Goal
from goals.progress import GoalStatus, derive_status, progress_percent, status_q

TODAY = date(2024, 6, 15)


class TestDeriveStatus:
    def test_reached_target_is_completed(self):
        assert derive_status(Decimal("1000"), Decimal("1000"), date(2024, 12, 31), TODAY) == GoalStatus.COMPLETED

    def test_completion_wins_over_past_end_date(self):
        assert derive_status(Decimal("1500"), Decimal("1000"), date(2024, 1, 31), TODAY) == GoalStatus.COMPLETED

    def test_past_end_date_below_target_is_overdue(self):
        assert derive_status(Decimal("10"), Decimal("1000"), date(2024, 6, 14), TODAY) == GoalStatus.OVERDUE

    def test_ending_today_is_still_active(self):
        assert derive_status(Decimal("10"), Decimal("1000"), TODAY, TODAY) == GoalStatus.ACTIVE

    def test_open_ended_goal_never_overdue(self):
        assert derive_status(Decimal("0"), Decimal("1000"), None, TODAY) == GoalStatus.ACTIVE

    def test_accepts_aware_datetime(self):
        now = datetime(2024, 6, 15, 12, 0, tzinfo=dt_timezone.utc)
        assert derive_status(Decimal("0"), Decimal("5"), date(2024, 6, 1), now) == GoalStatus.OVERDUE

    def test_non_positive_target_never_completed(self):
        assert derive_status(Decimal("0"), Decimal("0"), None, TODAY) == GoalStatus.ACTIVE


class TestProgressPercent:
    def test_rounds_to_two_decimals(self):
        assert progress_percent(Decimal("1"), Decimal("3")) == Decimal("33.33")

    def test_not_capped_at_hundred(self):
        assert progress_percent(Decimal("1500"), Decimal("1000")) == Decimal("150.00")

    def test_zero_target_gives_zero(self):
        assert progress_percent(Decimal("10"), Decimal("0")) == Decimal("0.00")


@pytest.mark.django_db
class TestStatusQuery:
    def test_status_filter_matches_derived_status(self, make_goal):
        completed = make_goal(current="1000", end_date=date(2024, 5, 1))
        overdue = make_goal(current="10", end_date=date(2024, 6, 1))
        active = make_goal(current="10", end_date=date(2024, 7, 1))
        open_ended = make_goal(current="10", end_date=None)

        for status, expected in (
            (GoalStatus.COMPLETED, {completed.pk}),
            (GoalStatus.OVERDUE, {overdue.pk}),
            (GoalStatus.ACTIVE, {active.pk, open_ended.pk}),
        ):
            found = set(Goal.objects.filter(status_q(status, TODAY)).values_list("pk", flat=True))
            assert found == expected
            for goal in Goal.objects.filter(pk__in=found):
                assert goal.status_at(TODAY) == status

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            status_q("paused")


@pytest.mark.django_db
class TestGoalConstraints:
    def test_target_must_be_positive(self, make_goal):
        with pytest.raises(IntegrityError), transaction.atomic():
            make_goal(target="0")

    def test_end_date_must_follow_start(self, make_goal):
        with pytest.raises(IntegrityError), transaction.atomic():
            make_goal(start_date=date(2024, 6, 1), end_date=date(2024, 6, 1))

    def test_open_ended_goal_allowed(self, make_goal):
        goal = make_goal(end_date=None)

        assert goal.pk is not None
