import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, update, delete, func, and_, or_, asc, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, ValidationError
from app.core.seed import DEFAULT_CATEGORIES
from app.models.category import Category
from app.models.transaction import Budget, Transaction
from app.models.user import Session, User
from app.models.vendor_cache import VendorCacheEntry
from app.repositories.interfaces import (
    BudgetRepository,
    CategoryRepository,
    DuplicateEmailError,
    Page,
    TransactionQuery,
    TransactionRepository,
    UserRepository,
    VendorCacheRepository,
)
from app.utils.dates import now_local

logger = logging.getLogger(__name__)

_SORTABLE = {
    "transaction_date": Transaction.transaction_date,
    "amount": Transaction.amount,
    "vendor": Transaction.vendor,
    "created_at": Transaction.created_at,
}


class SqlUserRepository(UserRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def find_by_inbound_email(self, address: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.inbound_email) == address.strip().lower())
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def create(self, **fields) -> User:
        user = User(**fields)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def update(self, user: User, **fields) -> User:
        for key, value in fields.items():
            setattr(user, key, value)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def create_session(self, user_id: str, token: str, expires_at: datetime) -> Session:
        session = Session(token=token, user_id=user_id, expires_at=expires_at)
        self.db.add(session)
        await self.db.commit()
        return session

    async def find_session(self, token: str) -> Optional[Session]:
        return await self.db.get(Session, token)


class SqlCategoryRepository(CategoryRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, category_id: str) -> Optional[Category]:
        return await self.db.get(Category, category_id)

    async def list_for_user(self, user_id: str) -> list[Category]:
        stmt = select(Category).where(Category.user_id == user_id).order_by(Category.sort_order, Category.name)
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def find_by_name(self, user_id: str, name: str) -> Optional[Category]:
        stmt = select(Category).where(
            and_(Category.user_id == user_id, func.lower(Category.name) == name.strip().lower())
        )
        res = await self.db.execute(stmt)
        return res.scalars().first()

    async def create(self, **fields) -> Category:
        category = Category(**fields)
        self.db.add(category)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f'Category "{fields.get("name")}" already exists')
        await self.db.refresh(category)
        return category

    async def update(self, category: Category, **fields) -> Category:
        for key, value in fields.items():
            setattr(category, key, value)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f'Category "{fields.get("name")}" already exists')
        await self.db.refresh(category)
        return category

    async def delete_reassigning(self, category: Category, to_category_id: str) -> int:
        """
        Move the category's transactions to ``to_category_id``, drop its vendor
        cache entries and budgets, then the category itself. One commit; any
        failure rolls all of it back.
        """
        category_id = category.id
        try:
            res = await self.db.execute(
                update(Transaction)
                .where(and_(Transaction.user_id == category.user_id, Transaction.category_id == category_id))
                .values(category_id=to_category_id, updated_at=now_local())
                .execution_options(synchronize_session="fetch")
            )
            await self.db.execute(delete(VendorCacheEntry).where(VendorCacheEntry.category_id == category_id))
            await self.db.execute(delete(Budget).where(Budget.category_id == category_id))
            await self.db.delete(category)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Deleting category %s failed; rolled back", category_id)
            raise
        return res.rowcount or 0

    async def seed_defaults(self, user_id: str) -> list[Category]:
        categories = [
            Category(user_id=user_id, is_default=True, sort_order=i + 1, **definition)
            for i, definition in enumerate(DEFAULT_CATEGORIES)
        ]
        self.db.add_all(categories)
        await self.db.commit()
        return categories


class SqlTransactionRepository(TransactionRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, transaction_id: str) -> Optional[Transaction]:
        return await self.db.get(Transaction, transaction_id)

    async def find_by_resend_email_id(self, resend_email_id: str) -> Optional[Transaction]:
        stmt = select(Transaction).where(Transaction.resend_email_id == resend_email_id)
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def query(self, user_id: str, options: TransactionQuery) -> Page:
        conditions = [Transaction.user_id == user_id]
        if options.start_date:
            conditions.append(Transaction.transaction_date >= options.start_date)
        if options.end_date:
            conditions.append(Transaction.transaction_date < options.end_date)
        if options.category_id:
            conditions.append(Transaction.category_id == options.category_id)
        if options.source:
            conditions.append(Transaction.source == options.source)

        count_res = await self.db.execute(select(func.count(Transaction.id)).where(and_(*conditions)))
        total = count_res.scalar() or 0

        column = _SORTABLE.get(options.sort_by, Transaction.transaction_date)
        ordering = asc(column) if options.sort_order == "asc" else desc(column)
        stmt = (
            select(Transaction)
            .where(and_(*conditions))
            .order_by(ordering, desc(Transaction.created_at))
            .offset((options.page - 1) * options.limit)
            .limit(options.limit)
        )
        res = await self.db.execute(stmt)
        return Page(items=list(res.scalars().all()), total=total, page=options.page, limit=options.limit)

    async def list_in_range(self, user_id: str, start: datetime, end: datetime) -> list[Transaction]:
        stmt = select(Transaction).where(
            and_(
                Transaction.user_id == user_id,
                Transaction.transaction_date >= start,
                Transaction.transaction_date < end,
            )
        )
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def create(self, **fields) -> Transaction:
        transaction = Transaction(**fields)
        self.db.add(transaction)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if fields.get("resend_email_id"):
                raise DuplicateEmailError(f"Email {fields['resend_email_id']} was already processed")
            raise
        await self.db.refresh(transaction)
        return transaction

    async def update(self, transaction: Transaction, **fields) -> Transaction:
        for key, value in fields.items():
            setattr(transaction, key, value)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self.db.refresh(transaction)
        return transaction


class SqlBudgetRepository(BudgetRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, budget_id: str) -> Optional[Budget]:
        return await self.db.get(Budget, budget_id)

    async def list_for_months(self, user_id: str, periods: Sequence[tuple[int, int]]) -> list[Budget]:
        if not periods:
            return []
        period_filter = or_(*[and_(Budget.year == y, Budget.month == m) for y, m in periods])
        stmt = select(Budget).where(and_(Budget.user_id == user_id, period_filter))
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def find(self, user_id: str, category_id: str, year: int, month: int) -> Optional[Budget]:
        stmt = select(Budget).where(
            and_(
                Budget.user_id == user_id,
                Budget.category_id == category_id,
                Budget.year == year,
                Budget.month == month,
            )
        )
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def create(self, **fields) -> Budget:
        budget = Budget(**fields)
        self.db.add(budget)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                f"Budget already exists for category {fields.get('category_id')} "
                f"in {fields.get('year')}-{fields.get('month', 0):02d}"
            )
        await self.db.refresh(budget)
        return budget

    async def update(self, budget: Budget, **fields) -> Budget:
        for key, value in fields.items():
            setattr(budget, key, value)
        await self.db.commit()
        await self.db.refresh(budget)
        return budget

    async def delete(self, budget: Budget) -> None:
        await self.db.delete(budget)
        await self.db.commit()


class SqlVendorCacheRepository(VendorCacheRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def lookup(self, user_id: str, normalized_vendor: str) -> Optional[VendorCacheEntry]:
        stmt = select(VendorCacheEntry).where(
            and_(VendorCacheEntry.user_id == user_id, VendorCacheEntry.vendor_name == normalized_vendor)
        )
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def upsert(self, user_id: str, normalized_vendor: str, category_id: str) -> VendorCacheEntry:
        if not normalized_vendor:
            raise ValidationError("Vendor cache key must not be empty")
        entry = await self.lookup(user_id, normalized_vendor)
        if entry is None:
            entry = VendorCacheEntry(
                user_id=user_id, vendor_name=normalized_vendor, category_id=category_id, hit_count=1
            )
            self.db.add(entry)
            try:
                await self.db.commit()
            except IntegrityError:
                # Lost a create race; last writer wins
                await self.db.rollback()
                logger.info("Vendor cache entry for %s created concurrently; overwriting", normalized_vendor)
                entry = await self.lookup(user_id, normalized_vendor)
                if entry is None:
                    raise
                entry.category_id = category_id
                entry.hit_count = 1
                await self.db.commit()
            except SQLAlchemyError:
                await self.db.rollback()
                raise
        else:
            entry.category_id = category_id
            entry.hit_count = 1
            try:
                await self.db.commit()
            except SQLAlchemyError:
                await self.db.rollback()
                raise

        await self.db.refresh(entry)
        return entry

    async def record_hit(self, entry_id: str) -> None:
        stmt = (
            update(VendorCacheEntry)
            .where(VendorCacheEntry.id == entry_id)
            .values(hit_count=VendorCacheEntry.hit_count + 1, updated_at=now_local())
            .execution_options(synchronize_session="fetch")
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def list_for_user(self, user_id: str) -> list[VendorCacheEntry]:
        stmt = (
            select(VendorCacheEntry)
            .where(VendorCacheEntry.user_id == user_id)
            .order_by(desc(VendorCacheEntry.hit_count), VendorCacheEntry.vendor_name)
        )
        res = await self.db.execute(stmt)
        return list(res.scalars().all())
