from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from accounts.models import User
from clients.models import Client
from goals.models import Goal
from sales.models import Sale


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def manager_user(db):
    return User.objects.create_user(
        email="manager@test.com",
        password="testpass123",
        first_name="Manager",
        last_name="User",
        role=User.Role.MANAGER,
    )


@pytest.fixture
def agent_user(db):
    return User.objects.create_user(
        email="agent@test.com",
        password="testpass123",
        first_name="Alice",
        last_name="Agent",
        role=User.Role.AGENT,
    )


@pytest.fixture
def other_agent(db):
    return User.objects.create_user(
        email="other.agent@test.com",
        password="testpass123",
        first_name="Bob",
        last_name="Broker",
        role=User.Role.AGENT,
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def agent_client(api_client, agent_user):
    api_client.force_authenticate(user=agent_user)
    return api_client


@pytest.fixture
def manager_client(manager_user):
    client = APIClient()
    client.force_authenticate(user=manager_user)
    return client


@pytest.fixture
def policy_holder(agent_user):
    return Client.objects.create(
        agent=agent_user,
        first_name="Jean",
        last_name="Dupont",
        email="jean.dupont@test.com",
        status=Client.Status.CLIENT,
    )


@pytest.fixture
def make_sale(policy_holder):
    """Create a sale directly through the ORM (signals fire on commit only)."""

    def _make(agent=None, client=None, premium="600.00", commission="60.00", sale_date=None, **extra):
        owner = agent or policy_holder.agent
        return Sale.objects.create(
            agent=owner,
            client=client or policy_holder,
            product_name=extra.pop("product_name", "Term Life"),
            premium_amount=Decimal(premium),
            commission_amount=Decimal(commission),
            sale_date=sale_date or date(2024, 3, 15),
            **extra,
        )

    return _make


@pytest.fixture
def make_goal(agent_user):
    def _make(agent=None, metric_type=Goal.MetricType.SALES_AMOUNT, target="1000.00", current="0", **extra):
        extra.setdefault("title", f"{metric_type} goal")
        extra.setdefault("start_date", date(2024, 1, 1))
        extra.setdefault("end_date", date(2024, 12, 31))
        return Goal.objects.create(
            agent=agent or agent_user,
            metric_type=metric_type,
            target_value=Decimal(target),
            current_value=Decimal(current),
            **extra,
        )

    return _make
