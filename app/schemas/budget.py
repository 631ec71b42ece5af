from pydantic import Field
from typing import List, Literal, Optional
from datetime import datetime

from app.schemas.base import CamelModel

BudgetStatus = Literal["on_track", "warning", "over_budget"]


class BudgetSet(CamelModel):
    category_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


class BudgetUpdate(CamelModel):
    amount: float = Field(..., ge=0)


class BudgetResponse(CamelModel):
    id: str
    user_id: str
    category_id: str
    amount: float
    year: int
    month: int
    created_at: datetime
    updated_at: datetime


class EnrichedBudget(CamelModel):
    id: str
    category_id: str
    budget_amount: float
    spent_amount: float
    remaining_amount: float
    # None when the ceiling is zero
    percent_used: Optional[float] = None
    status: BudgetStatus
    year: int
    month: int


class BudgetsWithSpending(CamelModel):
    year: int
    month: int
    budgets: List[EnrichedBudget]
    total_budget: float
    total_spent: float
    total_remaining: float
