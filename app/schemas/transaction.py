from pydantic import Field, field_validator, model_validator
from typing import List, Optional, Literal
from datetime import datetime

from app.schemas.base import CamelModel
from app.utils.dates import to_local_naive

ConfidenceLevel = Literal["high", "medium", "low"]


class TransactionCreate(CamelModel):
    amount: float = Field(..., gt=0)
    vendor: str = Field(..., min_length=1, max_length=200)
    category_id: str = Field(..., min_length=1)
    transaction_date: datetime
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("vendor", mode="before")
    @classmethod
    def strip_vendor(cls, v):
        # Runs before min_length so a blank vendor is rejected
        return v.strip() if isinstance(v, str) else v

    @field_validator("transaction_date")
    @classmethod
    def to_local(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class TransactionUpdate(CamelModel):
    category_id: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, gt=0)
    vendor: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    transaction_date: Optional[datetime] = None
    confidence: Optional[ConfidenceLevel] = None

    @field_validator("vendor", mode="before")
    @classmethod
    def strip_vendor(cls, v):
        # Runs before min_length so a blank vendor is rejected
        return v.strip() if isinstance(v, str) else v

    @field_validator("transaction_date")
    @classmethod
    def to_local(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v) if v else v

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class TransactionResponse(CamelModel):
    id: str
    user_id: str
    category_id: str
    amount: float
    vendor: str
    description: str
    transaction_date: datetime
    resend_email_id: Optional[str] = None
    raw_email_subject: str
    confidence: ConfidenceLevel
    source: Literal["email", "manual"]
    created_at: datetime
    updated_at: datetime


class TransactionListResponse(CamelModel):
    data: List[TransactionResponse]
    total: int
    page: int
    limit: int
    has_more: bool
