from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.container import Container
from app.core.database import get_db
from app.core.errors import AuthenticationError
from app.models.user import User
from app.repositories.sql import (
    SqlBudgetRepository,
    SqlCategoryRepository,
    SqlTransactionRepository,
    SqlUserRepository,
    SqlVendorCacheRepository,
)
from app.services.auth import AuthService
from app.services.budget import BudgetService
from app.services.category import CategoryService
from app.services.dashboard import DashboardService
from app.services.feedback import FeedbackService
from app.services.transaction import TransactionService
from app.services.webhook import WebhookService


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(SqlUserRepository(db), SqlCategoryRepository(db))


async def get_current_user(request: Request, auth: AuthService = Depends(get_auth_service)) -> User:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        user = await auth.user_for_session(token)
        if user is None:
            raise AuthenticationError("Session is invalid or expired")
        return user
    if settings.is_dev:
        return await auth.get_or_create_dev_user()
    raise AuthenticationError("Not signed in")


def get_webhook_service(
    db: AsyncSession = Depends(get_db), container: Container = Depends(get_container)
) -> WebhookService:
    return WebhookService(
        transactions=SqlTransactionRepository(db),
        vendor_cache=SqlVendorCacheRepository(db),
        users=SqlUserRepository(db),
        categories=SqlCategoryRepository(db),
        agent=container.agent,
        email_provider=container.email_provider,
    )


def get_feedback_service(
    db: AsyncSession = Depends(get_db), container: Container = Depends(get_container)
) -> FeedbackService:
    return FeedbackService(
        transactions=SqlTransactionRepository(db),
        categories=SqlCategoryRepository(db),
        vendor_cache=SqlVendorCacheRepository(db),
        agent=container.agent,
        memory=container.memory,
    )


def get_dashboard_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(SqlTransactionRepository(db), SqlBudgetRepository(db), SqlCategoryRepository(db))


def get_budget_service(db: AsyncSession = Depends(get_db)) -> BudgetService:
    return BudgetService(SqlBudgetRepository(db), SqlCategoryRepository(db), SqlTransactionRepository(db))


def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(SqlCategoryRepository(db))


def get_transaction_service(db: AsyncSession = Depends(get_db)) -> TransactionService:
    return TransactionService(SqlTransactionRepository(db), SqlCategoryRepository(db), SqlVendorCacheRepository(db))


def get_vendor_cache_repository(db: AsyncSession = Depends(get_db)) -> SqlVendorCacheRepository:
    return SqlVendorCacheRepository(db)
