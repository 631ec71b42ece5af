from pydantic import ConfigDict
from typing import List, Literal, Optional
from datetime import datetime

from app.schemas.base import CamelModel


class CategoryBreakdown(CamelModel):
    category_id: str
    category_name: str
    spent: float
    budgeted: float


class DashboardSummary(CamelModel):
    period: Literal["week", "month", "year"]
    start_date: datetime
    end_date: datetime
    total_spent: float
    total_budget: float
    percent_used: float
    category_breakdown: List[CategoryBreakdown]

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "period": "month",
            "startDate": "2026-02-01T00:00:00",
            "endDate": "2026-03-01T00:00:00",
            "totalSpent": 845.2,
            "totalBudget": 1200.0,
            "percentUsed": 70.43,
            "categoryBreakdown": [
                {"categoryId": "c1", "categoryName": "Food & Beverage", "spent": 412.5, "budgeted": 500.0}
            ]
        }
    })


class BudgetAlert(CamelModel):
    category_id: str
    category_name: str
    type: Literal["warning", "over_budget"]
    spent: float
    budgeted: float
    percent_used: Optional[float] = None
    message: str


class BudgetAlertsResponse(CamelModel):
    year: int
    month: int
    alerts: List[BudgetAlert]
