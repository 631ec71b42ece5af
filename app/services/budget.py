import logging
from typing import Optional

from app.core.errors import NotFoundError
from app.models.transaction import Budget
from app.repositories.interfaces import BudgetRepository, CategoryRepository, TransactionRepository
from app.schemas.budget import BudgetResponse, BudgetsWithSpending, EnrichedBudget
from app.services.dashboard import budget_status, spending_by_category
from app.utils.dates import month_range, now_local

logger = logging.getLogger(__name__)


class BudgetService:
    def __init__(
        self,
        budgets: BudgetRepository,
        categories: CategoryRepository,
        transactions: TransactionRepository,
    ):
        self.budgets = budgets
        self.categories = categories
        self.transactions = transactions

    async def _owned(self, user_id: str, budget_id: str) -> Budget:
        budget = await self.budgets.get(budget_id)
        if budget is None or budget.user_id != user_id:
            raise NotFoundError(f"Budget {budget_id} not found")
        return budget

    async def get_budgets_with_spending(
        self, user_id: str, year: Optional[int] = None, month: Optional[int] = None
    ) -> BudgetsWithSpending:
        now = now_local()
        year, month = year or now.year, month or now.month
        start, end = month_range(year, month)

        budgets = await self.budgets.list_for_months(user_id, [(year, month)])
        spent = spending_by_category(await self.transactions.list_in_range(user_id, start, end))

        enriched = []
        for b in budgets:
            spent_amount = round(float(spent.get(b.category_id, 0.0)), 2)
            status, percent = budget_status(spent_amount, b.amount)
            enriched.append(
                EnrichedBudget(
                    id=b.id,
                    category_id=b.category_id,
                    budget_amount=round(b.amount, 2),
                    spent_amount=spent_amount,
                    remaining_amount=round(b.amount - spent_amount, 2),
                    percent_used=percent,
                    status=status,
                    year=b.year,
                    month=b.month,
                )
            )

        total_budget = round(sum(b.budget_amount for b in enriched), 2)
        total_spent = round(sum(b.spent_amount for b in enriched), 2)
        return BudgetsWithSpending(
            year=year,
            month=month,
            budgets=enriched,
            total_budget=total_budget,
            total_spent=total_spent,
            total_remaining=round(total_budget - total_spent, 2),
        )

    async def set_budget(self, user_id: str, category_id: str, amount: float, year: int, month: int) -> BudgetResponse:
        """Create the month's budget for a category, or overwrite its amount."""
        category = await self.categories.get(category_id)
        if category is None or category.user_id != user_id:
            raise NotFoundError(f"Category {category_id} not found")

        budget = await self.budgets.find(user_id, category_id, year, month)
        if budget:
            budget = await self.budgets.update(budget, amount=amount)
        else:
            budget = await self.budgets.create(
                user_id=user_id, category_id=category_id, amount=amount, year=year, month=month
            )
        logger.info("Budget for %s %d-%02d set to %.2f", category.name, year, month, amount)
        return BudgetResponse.model_validate(budget)

    async def update_budget(self, user_id: str, budget_id: str, amount: float) -> BudgetResponse:
        budget = await self._owned(user_id, budget_id)
        return BudgetResponse.model_validate(await self.budgets.update(budget, amount=amount))

    async def delete_budget(self, user_id: str, budget_id: str) -> None:
        budget = await self._owned(user_id, budget_id)
        await self.budgets.delete(budget)
