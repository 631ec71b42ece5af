"""
Storage capabilities the services depend on.

Services only see these abstract classes; ``app.repositories.sql`` holds the
SQLAlchemy adapters wired in by the container.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from app.core.errors import ConflictError
from app.models.category import Category
from app.models.transaction import Budget, Transaction
from app.models.user import Session, User
from app.models.vendor_cache import VendorCacheEntry


class DuplicateEmailError(ConflictError):
    """Another delivery of the same email already created its transaction."""


@dataclass
class TransactionQuery:
    page: int = 1
    limit: int = 25
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category_id: Optional[str] = None
    source: Optional[str] = None
    sort_by: str = "transaction_date"
    sort_order: str = "desc"


@dataclass
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 25

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


class UserRepository(ABC):
    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def find_by_inbound_email(self, address: str) -> Optional[User]: ...

    @abstractmethod
    async def create(self, **fields) -> User: ...

    @abstractmethod
    async def update(self, user: User, **fields) -> User: ...

    @abstractmethod
    async def create_session(self, user_id: str, token: str, expires_at: datetime) -> Session: ...

    @abstractmethod
    async def find_session(self, token: str) -> Optional[Session]: ...


class CategoryRepository(ABC):
    @abstractmethod
    async def get(self, category_id: str) -> Optional[Category]: ...

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[Category]: ...

    @abstractmethod
    async def find_by_name(self, user_id: str, name: str) -> Optional[Category]: ...

    @abstractmethod
    async def create(self, **fields) -> Category: ...

    @abstractmethod
    async def update(self, category: Category, **fields) -> Category: ...

    @abstractmethod
    async def delete_reassigning(self, category: Category, to_category_id: str) -> int:
        """
        Move the category's transactions to ``to_category_id`` and delete it
        together with its cache entries and budgets, in one commit.
        """

    @abstractmethod
    async def seed_defaults(self, user_id: str) -> list[Category]: ...


class TransactionRepository(ABC):
    @abstractmethod
    async def get(self, transaction_id: str) -> Optional[Transaction]: ...

    @abstractmethod
    async def find_by_resend_email_id(self, resend_email_id: str) -> Optional[Transaction]: ...

    @abstractmethod
    async def query(self, user_id: str, options: TransactionQuery) -> Page: ...

    @abstractmethod
    async def list_in_range(self, user_id: str, start: datetime, end: datetime) -> list[Transaction]: ...

    @abstractmethod
    async def create(self, **fields) -> Transaction: ...

    @abstractmethod
    async def update(self, transaction: Transaction, **fields) -> Transaction: ...


class BudgetRepository(ABC):
    @abstractmethod
    async def get(self, budget_id: str) -> Optional[Budget]: ...

    @abstractmethod
    async def list_for_months(self, user_id: str, periods: Sequence[tuple[int, int]]) -> list[Budget]: ...

    @abstractmethod
    async def find(self, user_id: str, category_id: str, year: int, month: int) -> Optional[Budget]: ...

    @abstractmethod
    async def create(self, **fields) -> Budget: ...

    @abstractmethod
    async def update(self, budget: Budget, **fields) -> Budget: ...

    @abstractmethod
    async def delete(self, budget: Budget) -> None: ...


class VendorCacheRepository(ABC):
    @abstractmethod
    async def lookup(self, user_id: str, normalized_vendor: str) -> Optional[VendorCacheEntry]:
        """Read-only; callers that act on a hit must call ``record_hit``."""

    @abstractmethod
    async def upsert(self, user_id: str, normalized_vendor: str, category_id: str) -> VendorCacheEntry:
        """Create with hit_count 1, or overwrite the category and reset hit_count to 1."""

    @abstractmethod
    async def record_hit(self, entry_id: str) -> None: ...

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[VendorCacheEntry]: ...
