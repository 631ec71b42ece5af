from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

from app.schemas.base import CamelModel


class ResendEmailData(BaseModel):
    email_id: str = Field(..., min_length=1)
    to: Optional[List[str]] = None
    subject: Optional[str] = None
    created_at: Optional[str] = None

    # "from" is a keyword
    sender: Optional[str] = Field(None, alias="from")

    model_config = ConfigDict(populate_by_name=True)


class ResendWebhookEvent(BaseModel):
    type: str
    data: ResendEmailData
    created_at: Optional[str] = None


class WebhookProcessResult(CamelModel):
    status: Literal["duplicate", "skipped", "cached", "processed"]
    transaction_id: Optional[str] = None
