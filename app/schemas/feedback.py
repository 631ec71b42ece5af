from pydantic import Field
from typing import List, Literal

from app.schemas.base import CamelModel


class ConversationMessageIn(CamelModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class FeedbackRequest(CamelModel):
    transaction_id: str = Field(..., min_length=1)
    feedback_text: str = Field(..., min_length=1, max_length=4000)
    conversation_history: List[ConversationMessageIn] = []


class CategoryRef(CamelModel):
    id: str
    name: str


class FeedbackProposal(CamelModel):
    transaction_id: str
    vendor: str
    current_category: CategoryRef
    proposed_category: CategoryRef
    reasoning: str


class FeedbackApproveRequest(CamelModel):
    transaction_id: str = Field(..., min_length=1)
    new_category_id: str = Field(..., min_length=1)
    vendor: str = Field(..., min_length=1, max_length=200)
    reasoning: str = Field(..., min_length=1, max_length=4000)


class FeedbackApproveResponse(CamelModel):
    transaction_id: str
    new_category_id: str
    transaction_updated: bool
    vendor_cache_updated: bool
    memory_stored: bool
