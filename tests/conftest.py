import os

# Keep the module-level engine off disk; tests use their own engine below
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime
from types import SimpleNamespace
from typing import Callable, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.agent.interfaces import AgentEmailInput, AgentResult, CategoryProposal, ExpenseAgent
from app.clients.email import EmailProvider, ReceivedEmail
from app.clients.memory import MemoryHit, MemoryStore
from app.config import settings
from app.core.container import Container
from app.core.database import Base, get_db
from app.core.enums import Confidence
from app.core.errors import UpstreamError
from app.models import category, transaction, user, vendor_cache  # noqa: F401
from app.repositories.sql import (
    SqlBudgetRepository,
    SqlCategoryRepository,
    SqlTransactionRepository,
    SqlUserRepository,
    SqlVendorCacheRepository,
)
from app.services.auth import AuthService
from app.services.webhook import WebhookService, WebhookVerifier

FROZEN_NOW = datetime(2026, 2, 15, 12, 0, 0)
WEBHOOK_SECRET = "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw"

UOB_ALERT = (
    "A transaction of SGD 45.20 was made with your UOB Card ending 1234 "
    "on 08/02/26 at NTUC FAIRPRICE. If unauthorised, please call 24/7 Fraud Hotline now."
)


class FakeAgent(ExpenseAgent):
    """Answers with a fixed category by name; records every call."""

    def __init__(self):
        self.categorize_calls: list[AgentEmailInput] = []
        self.propose_calls: list[dict] = []
        self.category_name = "Other"
        self.confidence = Confidence.MEDIUM
        self.vendor: Optional[str] = None
        self.amount: Optional[float] = None
        self.is_transaction = True
        self.error: Optional[Exception] = None
        self.reasoning = "Supermarket purchases are groceries."

    async def categorize(self, email, categories):
        self.categorize_calls.append(email)
        if self.error:
            raise self.error
        if not self.is_transaction:
            return AgentResult(is_transaction=False)
        match = next(c for c in categories if c.name == self.category_name)
        return AgentResult(
            is_transaction=True,
            vendor=self.vendor or "NTUC FAIRPRICE",
            amount=self.amount or 45.20,
            category_id=match.id,
            category_name=match.name,
            confidence=self.confidence,
            transaction_date=email.received_at,
        )

    async def propose_correction(self, transaction, current_category, categories, feedback_text, conversation_history=None):
        self.propose_calls.append({"transaction_id": transaction.id, "feedback": feedback_text})
        match = next(c for c in categories if c.name == self.category_name)
        return CategoryProposal(category_id=match.id, category_name=match.name, reasoning=self.reasoning)


class FakeEmailProvider(EmailProvider):
    def __init__(self):
        self.emails: dict[str, ReceivedEmail] = {}
        self.fetches: list[str] = []

    def add(self, email_id: str, to: str, text: str = UOB_ALERT, subject: str = "UOB Card Transaction Alert"):
        self.emails[email_id] = ReceivedEmail(
            id=email_id, to=[to], sender="alerts@uob.com.sg", subject=subject, text=text,
            created_at="2026-02-08T04:30:00Z",
        )

    async def get_received_email(self, email_id):
        self.fetches.append(email_id)
        return self.emails.get(email_id)


class FakeMemoryStore(MemoryStore):
    def __init__(self):
        self.added: list[dict] = []
        self.fail = False

    async def search(self, user_id, query, top_k=5):
        return [MemoryHit(memory=m["messages"][0]["content"]) for m in self.added if m["user_id"] == user_id]

    async def add(self, user_id, messages, metadata=None):
        if self.fail:
            raise UpstreamError("memory store down")
        self.added.append({"user_id": user_id, "messages": messages, "metadata": metadata})


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    monkeypatch.setattr(settings, "FROZEN_NOW", FROZEN_NOW)
    monkeypatch.setattr(settings, "PROJECT_ENV", "prod")


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repos(db):
    return SimpleNamespace(
        users=SqlUserRepository(db),
        categories=SqlCategoryRepository(db),
        transactions=SqlTransactionRepository(db),
        budgets=SqlBudgetRepository(db),
        vendor_cache=SqlVendorCacheRepository(db),
    )


@pytest.fixture
async def alice(repos):
    user = await AuthService(repos.users, repos.categories).get_or_create_user(
        "user-alice-0001", "alice@example.com", "Alice"
    )
    await repos.categories.create(user_id=user.id, name="Groceries", description="Supermarkets", sort_order=9)
    return user


@pytest.fixture
def category_id(repos, alice) -> Callable:
    async def lookup(name: str) -> str:
        return (await repos.categories.find_by_name(alice.id, name)).id

    return lookup


@pytest.fixture
def agent():
    return FakeAgent()


@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def memory():
    return FakeMemoryStore()


@pytest.fixture
def webhook_service(repos, agent, email_provider):
    return WebhookService(
        transactions=repos.transactions,
        vendor_cache=repos.vendor_cache,
        users=repos.users,
        categories=repos.categories,
        agent=agent,
        email_provider=email_provider,
    )


@pytest.fixture
async def client(session_factory, agent, email_provider, memory):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.container = Container(
        settings=settings,
        agent=agent,
        email_provider=email_provider,
        verifier=WebhookVerifier(WEBHOOK_SECRET),
        memory=memory,
    )
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def alice_client(client, repos, alice):
    token = await AuthService(repos.users, repos.categories).start_session(alice)
    client.cookies.set(settings.SESSION_COOKIE_NAME, token)
    return client

