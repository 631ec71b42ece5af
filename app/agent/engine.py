import logging
from typing import Literal, Optional, Type, TypeVar

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from app.agent.extraction import extract_expense_from_text
from app.agent.interfaces import (
    AgentEmailInput,
    AgentResult,
    CategoryProposal,
    ConversationMessage,
    ExpenseAgent,
)
from app.agent.prompts import (
    FEEDBACK_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    build_feedback_prompt,
    build_user_prompt,
)
from app.clients.memory import MemoryStore, format_memories
from app.clients.search import VendorSearch, format_search_results
from app.core.enums import OTHER_CATEGORY_NAME, UNKNOWN_VENDOR, Confidence
from app.core.errors import AgentError, UpstreamError
from app.models.category import Category
from app.models.transaction import Transaction
from app.utils.dates import parse_alert_date, parse_iso_datetime

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class LLMCategorization(BaseModel):
    is_transaction: bool = True
    vendor: Optional[str] = None
    amount: Optional[float] = None
    transaction_date: Optional[str] = None
    category: str = OTHER_CATEGORY_NAME
    confidence: Literal["high", "medium", "low"] = "low"


class LLMProposal(BaseModel):
    category: str
    reasoning: str


def match_category(name: str, categories: list[Category]) -> Optional[Category]:
    wanted = (name or "").strip().lower()
    for category in categories:
        if category.name.lower() == wanted:
            return category
    return None


def fallback_category(categories: list[Category]) -> Category:
    other = match_category(OTHER_CATEGORY_NAME, categories)
    return other if other is not None else categories[-1]


class LLMExpenseAgent(ExpenseAgent):
    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 0.0,
        timeout: float = 25.0,
        memory: Optional[MemoryStore] = None,
        memory_top_k: int = 5,
        search: Optional[VendorSearch] = None,
        search_count: int = 3,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.memory = memory
        self.memory_top_k = memory_top_k
        self.search = search
        self.search_count = search_count

    async def _complete(self, messages: list[dict], schema: Type[T]) -> T:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=messages,
                timeout=self.timeout,
            )
        except openai.OpenAIError as e:
            logger.exception("Chat completion failed")
            raise AgentError(f"Categorization agent unavailable: {e}") from e

        content = response.choices[0].message.content or ""
        try:
            return schema.model_validate_json(content)
        except ValidationError as e:
            logger.error("Agent returned malformed output: %s", content[:500])
            raise AgentError("Categorization agent returned malformed output") from e

    async def _recall(self, user_id: str, vendor: Optional[str]) -> str:
        if self.memory is None or not vendor:
            return "Memory store not configured."
        try:
            hits = await self.memory.search(user_id, f"How should I categorize {vendor}?", self.memory_top_k)
        except UpstreamError as e:
            # Recall only adds context; categorize without it
            logger.warning("Memory recall for %s failed: %s", vendor, e.message)
            return "Memory store unavailable."
        return format_memories(vendor, hits)

    async def _look_up_vendor(self, vendor: str) -> Optional[str]:
        try:
            results = await self.search.search(f"What is {vendor}?", self.search_count)
        except UpstreamError as e:
            logger.warning("Web search for %s failed: %s", vendor, e.message)
            return None
        if not results:
            logger.info("Web search found nothing for %s", vendor)
            return None
        return format_search_results(results)

    async def categorize(self, email: AgentEmailInput, categories: list[Category]) -> AgentResult:
        if not categories:
            raise AgentError(f"User {email.user_id} has no categories to choose from")

        extracted = extract_expense_from_text(email.body)
        vendor_hint = extracted.vendor if extracted and extracted.has_vendor else None
        if extracted:
            hints = f"amount={extracted.amount:.2f}, vendor={extracted.vendor}, date={extracted.date_raw or 'unknown'}"
        else:
            hints = "none"

        memories = await self._recall(email.user_id, vendor_hint)
        prompt = build_user_prompt(email.subject, email.body, categories, memories, hints)
        answer = await self._complete(
            [{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": prompt}],
            LLMCategorization,
        )

        amount = extracted.amount if extracted else answer.amount
        if not answer.is_transaction or amount is None or amount <= 0:
            return AgentResult(is_transaction=False)

        vendor = vendor_hint or (answer.vendor or "").strip() or UNKNOWN_VENDOR

        unsure = answer.confidence == Confidence.LOW.value or match_category(answer.category, categories) is None
        if unsure and self.search is not None and vendor != UNKNOWN_VENDOR:
            findings = await self._look_up_vendor(vendor)
            if findings:
                prompt = build_user_prompt(email.subject, email.body, categories, memories, hints, findings)
                second = await self._complete(
                    [{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": prompt}],
                    LLMCategorization,
                )
                # Amount and date stay from the first read; only the category is reconsidered
                answer = answer.model_copy(update={"category": second.category, "confidence": second.confidence})

        category = match_category(answer.category, categories)
        confidence = Confidence(answer.confidence)
        if category is None:
            logger.info("Agent proposed unknown category %r for %s; using fallback", answer.category, vendor)
            category = fallback_category(categories)
            confidence = Confidence.LOW

        transaction_date = (
            parse_alert_date(extracted.date_raw if extracted else None)
            or parse_iso_datetime(answer.transaction_date)
            or email.received_at
        )

        return AgentResult(
            is_transaction=True,
            vendor=vendor,
            amount=round(amount, 2),
            category_id=category.id,
            category_name=category.name,
            confidence=confidence,
            transaction_date=transaction_date,
        )

    async def propose_correction(
        self,
        transaction: Transaction,
        current_category: Optional[Category],
        categories: list[Category],
        feedback_text: str,
        conversation_history: Optional[list[ConversationMessage]] = None,
    ) -> CategoryProposal:
        if not categories:
            raise AgentError("No categories to choose from")

        current_name = current_category.name if current_category else "Unknown"
        messages = [{"role": "system", "content": FEEDBACK_SYSTEM_PROMPT}]
        messages.extend({"role": m.role, "content": m.content} for m in conversation_history or [])
        messages.append(
            {
                "role": "user",
                "content": build_feedback_prompt(transaction, current_name, categories, feedback_text),
            }
        )

        answer = await self._complete(messages, LLMProposal)
        category = match_category(answer.category, categories) or fallback_category(categories)
        return CategoryProposal(category_id=category.id, category_name=category.name, reasoning=answer.reasoning)
