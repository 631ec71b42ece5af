import logging
from datetime import datetime
from typing import Optional

import pandas as pd

from app.config import settings
from app.core.enums import AlertType
from app.core.errors import ValidationError
from app.models.transaction import Budget, Transaction
from app.repositories.interfaces import BudgetRepository, CategoryRepository, TransactionRepository
from app.schemas.dashboard import BudgetAlert, BudgetAlertsResponse, CategoryBreakdown, DashboardSummary
from app.utils.currency import format_currency
from app.utils.dates import days_in_month, iso_week_range, month_range, now_local, year_range

logger = logging.getLogger(__name__)

PERIODS = ("week", "month", "year")


def spending_by_category(transactions: list[Transaction]) -> pd.Series:
    df = pd.DataFrame(
        [{"category_id": t.category_id, "amount": t.amount} for t in transactions],
        columns=["category_id", "amount"],
    )
    return df.groupby("category_id")["amount"].sum().astype(float)


def budget_status(spent: float, budgeted: float) -> tuple[str, Optional[float]]:
    """
    Returns (status, percent_used); percent is None for a zero ceiling.

    Thresholds are compared on the rounded percent, so a category shown as
    80.0% used is always at least a warning.
    """
    if budgeted <= 0:
        return ("over_budget" if spent > 0 else "on_track"), None
    percent = round(spent / budgeted * 100, 2)
    if percent >= round(settings.BUDGET_OVER_RATIO * 100, 2):
        return AlertType.OVER_BUDGET.value, percent
    if percent >= round(settings.BUDGET_WARNING_RATIO * 100, 2):
        return AlertType.WARNING.value, percent
    return "on_track", percent


class DashboardService:
    def __init__(
        self,
        transactions: TransactionRepository,
        budgets: BudgetRepository,
        categories: CategoryRepository,
    ):
        self.transactions = transactions
        self.budgets = budgets
        self.categories = categories

    @staticmethod
    def resolve_period(
        period: str,
        year: Optional[int] = None,
        month: Optional[int] = None,
        week: Optional[int] = None,
    ) -> tuple[datetime, datetime, dict[tuple[int, int], float]]:
        """
        Date window for a dashboard period plus the weight of each monthly
        budget that falls into it.

        A week borrows the budget of the month its Monday is in, scaled by
        7 / days_in_month.
        """
        now = now_local()
        if period == "month":
            y, m = year or now.year, month or now.month
            if not 1 <= m <= 12:
                raise ValidationError(f"Invalid month {m}")
            start, end = month_range(y, m)
            return start, end, {(y, m): 1.0}

        if period == "year":
            y = year or now.year
            start, end = year_range(y)
            return start, end, {(y, m): 1.0 for m in range(1, 13)}

        if period == "week":
            iso = now.isocalendar()
            y, w = year or iso[0], week or iso[1]
            try:
                start, end = iso_week_range(y, w)
            except ValueError as e:
                raise ValidationError(f"Invalid ISO week {y}-W{w:02d}") from e
            return start, end, {(start.year, start.month): 7 / days_in_month(start.year, start.month)}

        raise ValidationError(f"Unknown period {period!r}; expected one of {', '.join(PERIODS)}")

    @staticmethod
    def _budgeted_by_category(budgets: list[Budget], weights: dict[tuple[int, int], float]) -> pd.Series:
        df = pd.DataFrame(
            [{"category_id": b.category_id, "amount": b.amount * weights.get((b.year, b.month), 0.0)} for b in budgets],
            columns=["category_id", "amount"],
        )
        return df.groupby("category_id")["amount"].sum().astype(float)

    async def summary(
        self,
        user_id: str,
        period: str = "month",
        year: Optional[int] = None,
        month: Optional[int] = None,
        week: Optional[int] = None,
    ) -> DashboardSummary:
        start, end, weights = self.resolve_period(period, year, month, week)

        transactions = await self.transactions.list_in_range(user_id, start, end)
        budgets = await self.budgets.list_for_months(user_id, list(weights))
        names = {c.id: c.name for c in await self.categories.list_for_user(user_id)}

        combined = pd.concat(
            [
                spending_by_category(transactions).rename("spent"),
                self._budgeted_by_category(budgets, weights).rename("budgeted"),
            ],
            axis=1,
        ).fillna(0.0)
        combined.index.name = "category_id"

        breakdown = [
            CategoryBreakdown(
                category_id=row.category_id,
                category_name=names.get(row.category_id, "Unknown"),
                spent=round(float(row.spent), 2),
                budgeted=round(float(row.budgeted), 2),
            )
            for row in combined.reset_index().itertuples(index=False)
        ]
        breakdown.sort(key=lambda b: (-b.spent, b.category_name))

        total_spent = round(float(combined["spent"].sum()), 2) if not combined.empty else 0.0
        total_budget = round(float(combined["budgeted"].sum()), 2) if not combined.empty else 0.0
        percent_used = round(total_spent / total_budget * 100, 2) if total_budget > 0 else 0.0

        return DashboardSummary(
            period=period,
            start_date=start,
            end_date=end,
            total_spent=total_spent,
            total_budget=total_budget,
            percent_used=percent_used,
            category_breakdown=breakdown,
        )

    async def alerts(self, user_id: str) -> BudgetAlertsResponse:
        now = now_local()
        start, end = month_range(now.year, now.month)

        budgets = await self.budgets.list_for_months(user_id, [(now.year, now.month)])
        spent = spending_by_category(await self.transactions.list_in_range(user_id, start, end))
        names = {c.id: c.name for c in await self.categories.list_for_user(user_id)}

        alerts = []
        for budget in budgets:
            spent_amount = round(float(spent.get(budget.category_id, 0.0)), 2)
            status, percent = budget_status(spent_amount, budget.amount)
            if status == "on_track":
                continue

            name = names.get(budget.category_id, "Unknown")
            if percent is None:
                message = f"{name}: {format_currency(spent_amount)} spent with no budget set"
            elif status == AlertType.OVER_BUDGET.value:
                message = (
                    f"{name} is over budget: {format_currency(spent_amount)} of "
                    f"{format_currency(budget.amount)} ({percent:.0f}%)"
                )
            else:
                message = (
                    f"{name} has used {percent:.0f}% of its budget "
                    f"({format_currency(spent_amount)} of {format_currency(budget.amount)})"
                )

            alerts.append(
                BudgetAlert(
                    category_id=budget.category_id,
                    category_name=name,
                    type=status,
                    spent=spent_amount,
                    budgeted=round(budget.amount, 2),
                    percent_used=percent,
                    message=message,
                )
            )

        # Over-budget first, then by how much of the budget is gone
        alerts.sort(key=lambda a: (a.type != AlertType.OVER_BUDGET.value, -(a.percent_used or float("inf"))))
        if alerts:
            logger.info("User %s has %d budget alert(s)", user_id, len(alerts))
        return BudgetAlertsResponse(year=now.year, month=now.month, alerts=alerts)
