from datetime import datetime

import pytest

from app.core.errors import ValidationError
from app.services.dashboard import DashboardService, budget_status


@pytest.fixture
def dashboard(repos):
    return DashboardService(repos.transactions, repos.budgets, repos.categories)


@pytest.fixture
def spend(repos, alice, category_id):
    async def add(category: str, amount: float, when: datetime, vendor: str = "SOME SHOP"):
        return await repos.transactions.create(
            user_id=alice.id,
            category_id=await category_id(category),
            amount=amount,
            vendor=vendor,
            transaction_date=when,
            confidence="high",
            source="manual",
        )

    return add


@pytest.fixture
def budget(repos, alice, category_id):
    async def add(category: str, amount: float, year: int = 2026, month: int = 2):
        return await repos.budgets.create(
            user_id=alice.id, category_id=await category_id(category), amount=amount, year=year, month=month
        )

    return add


@pytest.mark.parametrize(
    "spent, budgeted, expected",
    [
        (79.9, 100, ("on_track", 79.9)),
        (80, 100, ("warning", 80.0)),
        # Float division lands just under 0.8 for these
        (11.2, 14, ("warning", 80.0)),
        (2.4, 3, ("warning", 80.0)),
        (19.2, 24, ("warning", 80.0)),
        (99.99, 100, ("warning", 99.99)),
        (100, 100, ("over_budget", 100.0)),
        (130, 100, ("over_budget", 130.0)),
        (5, 0, ("over_budget", None)),
        (0, 0, ("on_track", None)),
    ],
)
def test_budget_status_thresholds(spent, budgeted, expected):
    assert budget_status(spent, budgeted) == expected


async def test_alerts_for_current_month(dashboard, alice, spend, budget):
    await budget("Food & Beverage", 100)
    await budget("Transportation", 100)
    await budget("Shopping", 100)
    await budget("Entertainment", 0)
    await spend("Food & Beverage", 80, datetime(2026, 2, 3))
    await spend("Transportation", 100, datetime(2026, 2, 4))
    await spend("Shopping", 79.9, datetime(2026, 2, 5))
    await spend("Entertainment", 12.5, datetime(2026, 2, 6))
    # Last month does not count
    await spend("Shopping", 500, datetime(2026, 1, 30))

    result = await dashboard.alerts(alice.id)

    assert (result.year, result.month) == (2026, 2)
    by_name = {a.category_name: a for a in result.alerts}
    assert set(by_name) == {"Food & Beverage", "Transportation", "Entertainment"}
    assert by_name["Food & Beverage"].type == "warning"
    assert by_name["Food & Beverage"].percent_used == 80.0
    assert by_name["Transportation"].type == "over_budget"
    assert by_name["Entertainment"].type == "over_budget"
    assert by_name["Entertainment"].percent_used is None
    assert "S$80.00" in by_name["Food & Beverage"].message
    assert result.alerts[-1].type == "warning"


async def test_alert_at_exactly_eighty_percent(dashboard, alice, spend, budget):
    await budget("Food & Beverage", 14)
    await spend("Food & Beverage", 11.2, datetime(2026, 2, 3))

    alerts = (await dashboard.alerts(alice.id)).alerts

    assert [(a.category_name, a.type, a.percent_used) for a in alerts] == [("Food & Beverage", "warning", 80.0)]


async def test_no_budgets_no_alerts(dashboard, alice, spend):
    await spend("Food & Beverage", 50, datetime(2026, 2, 3))

    assert (await dashboard.alerts(alice.id)).alerts == []


async def test_month_summary(dashboard, alice, spend, budget):
    await budget("Food & Beverage", 400)
    await budget("Transportation", 100)
    await spend("Food & Beverage", 120.5, datetime(2026, 2, 3))
    await spend("Food & Beverage", 79.5, datetime(2026, 2, 14))
    await spend("Shopping", 60, datetime(2026, 2, 10))
    await spend("Shopping", 999, datetime(2026, 3, 1))

    summary = await dashboard.summary(alice.id, "month")

    assert summary.start_date == datetime(2026, 2, 1)
    assert summary.end_date == datetime(2026, 3, 1)
    assert summary.total_spent == 260.0
    assert summary.total_budget == 500.0
    assert summary.percent_used == 52.0
    rows = [(b.category_name, b.spent, b.budgeted) for b in summary.category_breakdown]
    assert rows == [
        ("Food & Beverage", 200.0, 400.0),
        ("Shopping", 60.0, 0.0),
        ("Transportation", 0.0, 100.0),
    ]


async def test_week_summary_prorates_month_budget(dashboard, alice, spend, budget):
    # February 2026 has 28 days; ISO week 7 runs Mon 9 Feb to Sun 15 Feb
    await budget("Food & Beverage", 280)
    await spend("Food & Beverage", 35, datetime(2026, 2, 10))
    await spend("Food & Beverage", 100, datetime(2026, 2, 8))

    summary = await dashboard.summary(alice.id, "week", year=2026, week=7)

    assert summary.start_date == datetime(2026, 2, 9)
    assert summary.end_date == datetime(2026, 2, 16)
    assert summary.total_budget == 70.0
    assert summary.total_spent == 35.0
    assert summary.percent_used == 50.0


async def test_week_defaults_to_current_week(dashboard, alice):
    summary = await dashboard.summary(alice.id, "week")

    assert summary.start_date == datetime(2026, 2, 9)


async def test_year_summary_sums_monthly_budgets(dashboard, alice, spend, budget):
    await budget("Food & Beverage", 100, month=1)
    await budget("Food & Beverage", 150, month=2)
    await budget("Food & Beverage", 999, year=2025, month=12)
    await spend("Food & Beverage", 50, datetime(2026, 1, 5))

    summary = await dashboard.summary(alice.id, "year", year=2026)

    assert summary.total_budget == 250.0
    assert summary.total_spent == 50.0
    assert summary.percent_used == 20.0


async def test_empty_period(dashboard, alice):
    summary = await dashboard.summary(alice.id, "month", year=2025, month=6)

    assert summary.total_spent == 0.0
    assert summary.total_budget == 0.0
    assert summary.percent_used == 0.0
    assert summary.category_breakdown == []


async def test_invalid_iso_week(dashboard, alice):
    with pytest.raises(ValidationError):
        await dashboard.summary(alice.id, "week", year=2025, week=53)


async def test_dashboard_endpoints(alice_client, spend, budget):
    await budget("Food & Beverage", 100)
    await spend("Food & Beverage", 85, datetime(2026, 2, 3))

    summary = await alice_client.get("/api/v1/dashboard/summary", params={"period": "month"})
    assert summary.status_code == 200
    assert summary.json()["percentUsed"] == 85.0
    assert summary.json()["categoryBreakdown"][0]["categoryName"] == "Food & Beverage"

    alerts = await alice_client.get("/api/v1/dashboard/alerts")
    assert alerts.status_code == 200
    assert alerts.json()["alerts"][0]["type"] == "warning"

    bad = await alice_client.get("/api/v1/dashboard/summary", params={"period": "decade"})
    assert bad.status_code == 400
