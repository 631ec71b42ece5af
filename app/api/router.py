from fastapi import APIRouter, Depends, Query, Request, Response, status
from typing import List, Literal, Optional
from datetime import datetime

from app.api.deps import (
    get_auth_service,
    get_budget_service,
    get_category_service,
    get_container,
    get_current_user,
    get_dashboard_service,
    get_feedback_service,
    get_transaction_service,
    get_vendor_cache_repository,
    get_webhook_service,
)
from app.agent.interfaces import ConversationMessage
from app.config import settings
from app.core.container import Container
from app.core.errors import ForbiddenError
from app.models.user import User
from app.repositories.interfaces import TransactionQuery, VendorCacheRepository
from app.schemas.budget import BudgetResponse, BudgetSet, BudgetsWithSpending, BudgetUpdate
from app.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from app.schemas.dashboard import BudgetAlertsResponse, DashboardSummary
from app.schemas.feedback import FeedbackApproveRequest, FeedbackApproveResponse, FeedbackProposal, FeedbackRequest
from app.schemas.transaction import TransactionCreate, TransactionListResponse, TransactionResponse, TransactionUpdate
from app.schemas.user import UserProfileUpdate, UserResponse
from app.schemas.vendor_cache import VendorCacheResponse
from app.schemas.webhook import WebhookProcessResult
from app.services.auth import AuthService
from app.services.budget import BudgetService
from app.services.category import CategoryService
from app.services.dashboard import DashboardService
from app.services.feedback import FeedbackService
from app.services.transaction import TransactionService
from app.services.webhook import WebhookService
from app.utils.dates import to_local_naive

api_router = APIRouter()


@api_router.post("/webhooks/resend", response_model=WebhookProcessResult, tags=["Webhooks"])
async def resend_webhook(
        request: Request,
        container: Container = Depends(get_container),
        service: WebhookService = Depends(get_webhook_service),
):
    # Signature covers the exact bytes, so read the body before any parsing
    payload = await request.body()
    event = container.verifier.verify(payload, request.headers)
    return await service.handle_event(event)


@api_router.get("/vendor-cache", response_model=List[VendorCacheResponse], tags=["Vendor Cache"])
async def get_vendor_cache(
        user: User = Depends(get_current_user),
        repo: VendorCacheRepository = Depends(get_vendor_cache_repository),
):
    return await repo.list_for_user(user.id)


@api_router.post("/feedback", response_model=FeedbackProposal, tags=["Feedback"])
async def propose_feedback(
        req: FeedbackRequest,
        user: User = Depends(get_current_user),
        service: FeedbackService = Depends(get_feedback_service),
):
    history = [ConversationMessage(role=m.role, content=m.content) for m in req.conversation_history]
    return await service.propose(user.id, req.transaction_id, req.feedback_text, history)


@api_router.post("/feedback/approve", response_model=FeedbackApproveResponse, tags=["Feedback"])
async def approve_feedback(
        req: FeedbackApproveRequest,
        user: User = Depends(get_current_user),
        service: FeedbackService = Depends(get_feedback_service),
):
    return await service.approve(user.id, req.transaction_id, req.new_category_id, req.vendor, req.reasoning)


@api_router.get("/dashboard/summary", response_model=DashboardSummary, tags=["Dashboard"])
async def get_dashboard_summary(
        period: Literal["week", "month", "year"] = Query("month"),
        year: Optional[int] = Query(None, ge=2000, le=2100),
        month: Optional[int] = Query(None, ge=1, le=12),
        week: Optional[int] = Query(None, ge=1, le=53),
        user: User = Depends(get_current_user),
        service: DashboardService = Depends(get_dashboard_service),
):
    return await service.summary(user.id, period, year, month, week)


@api_router.get("/dashboard/alerts", response_model=BudgetAlertsResponse, tags=["Dashboard"])
async def get_dashboard_alerts(
        user: User = Depends(get_current_user),
        service: DashboardService = Depends(get_dashboard_service),
):
    return await service.alerts(user.id)


@api_router.post("/auth/dev-login", response_model=UserResponse, tags=["Auth"])
async def dev_login(response: Response, auth: AuthService = Depends(get_auth_service)):
    if not settings.is_dev:
        raise ForbiddenError("Dev login is only available in development")
    user = await auth.get_or_create_dev_user()
    token = await auth.start_session(user)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_TTL_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
    )
    return user


@api_router.get("/user/profile", response_model=UserResponse, tags=["User"])
async def get_profile(user: User = Depends(get_current_user)):
    return user


@api_router.patch("/user/profile", response_model=UserResponse, tags=["User"])
async def update_profile(
        req: UserProfileUpdate,
        user: User = Depends(get_current_user),
        auth: AuthService = Depends(get_auth_service),
):
    return await auth.update_profile(user, **req.model_dump(exclude_unset=True))


@api_router.get("/categories", response_model=List[CategoryResponse], tags=["Categories"])
async def list_categories(
        user: User = Depends(get_current_user),
        service: CategoryService = Depends(get_category_service),
):
    return await service.list_categories(user.id)


@api_router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED, tags=["Categories"])
async def create_category(
        req: CategoryCreate,
        user: User = Depends(get_current_user),
        service: CategoryService = Depends(get_category_service),
):
    return await service.create_category(user.id, req.name, req.description, req.icon, req.color)


@api_router.patch("/categories/{category_id}", response_model=CategoryResponse, tags=["Categories"])
async def update_category(
        category_id: str,
        req: CategoryUpdate,
        user: User = Depends(get_current_user),
        service: CategoryService = Depends(get_category_service),
):
    return await service.update_category(user.id, category_id, **req.model_dump(exclude_unset=True))


@api_router.delete("/categories/{category_id}", tags=["Categories"])
async def delete_category(
        category_id: str,
        user: User = Depends(get_current_user),
        service: CategoryService = Depends(get_category_service),
):
    moved = await service.delete_category(user.id, category_id)
    return {"deleted": True, "reassignedTransactions": moved}


@api_router.get("/transactions", response_model=TransactionListResponse, tags=["Transactions"])
async def list_transactions(
        page: int = Query(1, ge=1),
        limit: int = Query(25, ge=1, le=100),
        start_date: Optional[datetime] = Query(None, alias="startDate"),
        end_date: Optional[datetime] = Query(None, alias="endDate"),
        category_id: Optional[str] = Query(None, alias="categoryId"),
        source: Optional[Literal["email", "manual"]] = Query(None),
        sort_by: Literal["transaction_date", "amount", "vendor", "created_at"] = Query("transaction_date", alias="sortBy"),
        sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
        user: User = Depends(get_current_user),
        service: TransactionService = Depends(get_transaction_service),
):
    options = TransactionQuery(
        page=page,
        limit=limit,
        start_date=to_local_naive(start_date) if start_date else None,
        end_date=to_local_naive(end_date) if end_date else None,
        category_id=category_id,
        source=source,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await service.list_transactions(user.id, options)


@api_router.post("/transactions", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED, tags=["Transactions"])
async def create_transaction(
        req: TransactionCreate,
        user: User = Depends(get_current_user),
        service: TransactionService = Depends(get_transaction_service),
):
    return await service.create_manual(user.id, req)


@api_router.get("/transactions/{transaction_id}", response_model=TransactionResponse, tags=["Transactions"])
async def get_transaction(
        transaction_id: str,
        user: User = Depends(get_current_user),
        service: TransactionService = Depends(get_transaction_service),
):
    return await service.get_transaction(user.id, transaction_id)


@api_router.patch("/transactions/{transaction_id}", response_model=TransactionResponse, tags=["Transactions"])
async def update_transaction(
        transaction_id: str,
        req: TransactionUpdate,
        user: User = Depends(get_current_user),
        service: TransactionService = Depends(get_transaction_service),
):
    return await service.update_transaction(user.id, transaction_id, req)


@api_router.get("/budgets", response_model=BudgetsWithSpending, tags=["Budgets"])
async def get_budgets(
        year: Optional[int] = Query(None, ge=2000, le=2100),
        month: Optional[int] = Query(None, ge=1, le=12),
        user: User = Depends(get_current_user),
        service: BudgetService = Depends(get_budget_service),
):
    return await service.get_budgets_with_spending(user.id, year, month)


@api_router.post("/budgets", response_model=BudgetResponse, tags=["Budgets"])
async def set_budget(
        budget: BudgetSet,
        user: User = Depends(get_current_user),
        service: BudgetService = Depends(get_budget_service),
):
    return await service.set_budget(user.id, budget.category_id, budget.amount, budget.year, budget.month)


@api_router.patch("/budgets/{budget_id}", response_model=BudgetResponse, tags=["Budgets"])
async def update_budget(
        budget_id: str,
        req: BudgetUpdate,
        user: User = Depends(get_current_user),
        service: BudgetService = Depends(get_budget_service),
):
    return await service.update_budget(user.id, budget_id, req.amount)


@api_router.delete("/budgets/{budget_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Budgets"])
async def delete_budget(
        budget_id: str,
        user: User = Depends(get_current_user),
        service: BudgetService = Depends(get_budget_service),
):
    await service.delete_budget(user.id, budget_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
