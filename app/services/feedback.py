import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.agent.interfaces import ConversationMessage, ExpenseAgent
from app.clients.memory import MemoryStore
from app.core.errors import NotFoundError, UpstreamError, ValidationError
from app.models.category import Category
from app.models.transaction import Transaction
from app.repositories.interfaces import CategoryRepository, TransactionRepository, VendorCacheRepository
from app.schemas.feedback import CategoryRef, FeedbackApproveResponse, FeedbackProposal
from app.utils.vendor import normalize_vendor_name

logger = logging.getLogger(__name__)


class FeedbackService:
    def __init__(
        self,
        transactions: TransactionRepository,
        categories: CategoryRepository,
        vendor_cache: VendorCacheRepository,
        agent: ExpenseAgent,
        memory: Optional[MemoryStore] = None,
    ):
        self.transactions = transactions
        self.categories = categories
        self.vendor_cache = vendor_cache
        self.agent = agent
        self.memory = memory

    async def _owned_transaction(self, user_id: str, transaction_id: str) -> Transaction:
        transaction = await self.transactions.get(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    async def _owned_category(self, user_id: str, category_id: str) -> Category:
        category = await self.categories.get(category_id)
        if category is None or category.user_id != user_id:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    async def propose(
        self,
        user_id: str,
        transaction_id: str,
        feedback_text: str,
        conversation_history: Optional[list[ConversationMessage]] = None,
    ) -> FeedbackProposal:
        """Ask the agent for a replacement category. Nothing is written."""
        transaction = await self._owned_transaction(user_id, transaction_id)
        categories = await self.categories.list_for_user(user_id)
        current = next((c for c in categories if c.id == transaction.category_id), None)

        proposal = await self.agent.propose_correction(
            transaction, current, categories, feedback_text, conversation_history or []
        )
        return FeedbackProposal(
            transaction_id=transaction.id,
            vendor=transaction.vendor,
            current_category=CategoryRef(
                id=transaction.category_id, name=current.name if current else "Unknown"
            ),
            proposed_category=CategoryRef(id=proposal.category_id, name=proposal.category_name),
            reasoning=proposal.reasoning,
        )

    async def approve(
        self,
        user_id: str,
        transaction_id: str,
        new_category_id: str,
        vendor: str,
        reasoning: str,
    ) -> FeedbackApproveResponse:
        """
        Apply an approved correction to the transaction, the vendor cache and
        the memory store. Each write can fail on its own; the response says
        which ones landed.
        """
        transaction = await self._owned_transaction(user_id, transaction_id)
        new_category = await self._owned_category(user_id, new_category_id)
        old_category = await self.categories.get(transaction.category_id)
        normalized = normalize_vendor_name(vendor) or transaction.vendor
        if not normalized:
            raise ValidationError("Vendor must not be blank")

        # A failed write rolls the session back and expires loaded rows; read everything up front
        new_category_name = new_category.name
        old_name = old_category.name if old_category else "Unknown"

        transaction_updated = False
        try:
            await self.transactions.update(transaction, category_id=new_category_id)
            transaction_updated = True
        except SQLAlchemyError:
            logger.exception("Failed to recategorize transaction %s", transaction_id)

        vendor_cache_updated = False
        try:
            await self.vendor_cache.upsert(user_id, normalized, new_category_id)
            vendor_cache_updated = True
        except SQLAlchemyError:
            logger.exception("Failed to update vendor cache for %s", normalized)

        memory_stored = False
        if self.memory is None:
            logger.info("Memory store not configured; correction for %s not remembered", normalized)
        else:
            try:
                await self.memory.add(
                    user_id,
                    [{
                        "role": "user",
                        "content": f'Categorize "{normalized}" as {new_category_name}, not {old_name}. {reasoning}',
                    }],
                    metadata={
                        "type": "category_correction",
                        "vendor": normalized,
                        "category_id": new_category_id,
                    },
                )
                memory_stored = True
            except UpstreamError as e:
                logger.warning("Failed to store correction memory for %s: %s", normalized, e.message)

        if not (transaction_updated and vendor_cache_updated and memory_stored):
            logger.warning(
                "Partial feedback approval for %s: transaction=%s cache=%s memory=%s",
                transaction_id, transaction_updated, vendor_cache_updated, memory_stored,
            )

        return FeedbackApproveResponse(
            transaction_id=transaction_id,
            new_category_id=new_category_id,
            transaction_updated=transaction_updated,
            vendor_cache_updated=vendor_cache_updated,
            memory_stored=memory_stored,
        )
