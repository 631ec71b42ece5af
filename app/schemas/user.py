from pydantic import Field, model_validator
from typing import Literal, Optional
from datetime import datetime

from app.schemas.base import CamelModel


class UserResponse(CamelModel):
    id: str
    email: str
    name: str
    avatar_url: str
    inbound_email: str
    oauth_provider: Literal["google", "github"]
    monthly_salary: Optional[float] = None
    budget_mode: Literal["direct", "percentage"]
    created_at: datetime
    updated_at: datetime


class UserProfileUpdate(CamelModel):
    monthly_salary: Optional[float] = Field(None, ge=0)
    budget_mode: Optional[Literal["direct", "percentage"]] = None

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self
