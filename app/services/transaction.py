import logging

from app.core.enums import Confidence, TransactionSource
from app.core.errors import NotFoundError, ValidationError
from app.models.transaction import Transaction
from app.repositories.interfaces import (
    CategoryRepository,
    TransactionQuery,
    TransactionRepository,
    VendorCacheRepository,
)
from app.schemas.transaction import (
    TransactionCreate,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdate,
)
from app.utils.vendor import normalize_vendor_name

logger = logging.getLogger(__name__)


class TransactionService:
    def __init__(
        self,
        transactions: TransactionRepository,
        categories: CategoryRepository,
        vendor_cache: VendorCacheRepository,
    ):
        self.transactions = transactions
        self.categories = categories
        self.vendor_cache = vendor_cache

    async def _owned(self, user_id: str, transaction_id: str) -> Transaction:
        transaction = await self.transactions.get(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    async def _check_category(self, user_id: str, category_id: str) -> None:
        category = await self.categories.get(category_id)
        if category is None or category.user_id != user_id:
            raise NotFoundError(f"Category {category_id} not found")

    async def list_transactions(self, user_id: str, options: TransactionQuery) -> TransactionListResponse:
        page = await self.transactions.query(user_id, options)
        return TransactionListResponse(
            data=[TransactionResponse.model_validate(t) for t in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            has_more=page.has_more,
        )

    async def get_transaction(self, user_id: str, transaction_id: str) -> TransactionResponse:
        return TransactionResponse.model_validate(await self._owned(user_id, transaction_id))

    async def create_manual(self, user_id: str, data: TransactionCreate) -> TransactionResponse:
        """User-entered transaction. Teaches the vendor cache only when the vendor is new."""
        await self._check_category(user_id, data.category_id)
        vendor = normalize_vendor_name(data.vendor)
        if not vendor:
            raise ValidationError("Vendor must not be blank")

        transaction = await self.transactions.create(
            user_id=user_id,
            category_id=data.category_id,
            amount=round(data.amount, 2),
            vendor=vendor,
            description=data.description or "",
            transaction_date=data.transaction_date,
            confidence=Confidence.HIGH.value,
            source=TransactionSource.MANUAL.value,
        )

        if await self.vendor_cache.lookup(user_id, vendor) is None:
            await self.vendor_cache.upsert(user_id, vendor, data.category_id)
        return TransactionResponse.model_validate(transaction)

    async def update_transaction(self, user_id: str, transaction_id: str, data: TransactionUpdate) -> TransactionResponse:
        transaction = await self._owned(user_id, transaction_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "category_id" in changes:
            await self._check_category(user_id, changes["category_id"])
        if "vendor" in changes:
            changes["vendor"] = normalize_vendor_name(changes["vendor"])
            if not changes["vendor"]:
                raise ValidationError("Vendor must not be blank")
        if "amount" in changes:
            changes["amount"] = round(changes["amount"], 2)

        recategorized = "category_id" in changes and changes["category_id"] != transaction.category_id
        transaction = await self.transactions.update(transaction, **changes)

        # A user edit only corrects a vendor the cache already knows
        if recategorized:
            entry = await self.vendor_cache.lookup(user_id, transaction.vendor)
            if entry is not None:
                await self.vendor_cache.upsert(user_id, transaction.vendor, transaction.category_id)
                logger.info("Vendor cache for %s corrected by transaction edit", transaction.vendor)

        return TransactionResponse.model_validate(transaction)
