from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.enums import Confidence
from app.models.category import Category
from app.models.transaction import Transaction


@dataclass
class AgentEmailInput:
    user_id: str
    resend_email_id: str
    subject: str = ""
    text: str = ""
    html: str = ""
    received_at: Optional[datetime] = None

    @property
    def body(self) -> str:
        return self.text or self.html or ""


@dataclass
class AgentResult:
    is_transaction: bool
    vendor: Optional[str] = None
    amount: Optional[float] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    confidence: Optional[Confidence] = None
    transaction_date: Optional[datetime] = None


@dataclass
class CategoryProposal:
    category_id: str
    category_name: str
    reasoning: str


@dataclass
class ConversationMessage:
    role: str
    content: str


class ExpenseAgent(ABC):
    """Categorizes spend emails and proposes corrections; called only on cache misses."""

    @abstractmethod
    async def categorize(self, email: AgentEmailInput, categories: list[Category]) -> AgentResult: ...

    @abstractmethod
    async def propose_correction(
        self,
        transaction: Transaction,
        current_category: Optional[Category],
        categories: list[Category],
        feedback_text: str,
        conversation_history: Optional[list[ConversationMessage]] = None,
    ) -> CategoryProposal: ...
