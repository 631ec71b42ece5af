from pydantic import Field, model_validator
from typing import Optional
from datetime import datetime

from app.schemas.base import CamelModel

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    icon: Optional[str] = Field(None, min_length=1, max_length=10)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    icon: Optional[str] = Field(None, min_length=1, max_length=10)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    sort_order: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class CategoryResponse(CamelModel):
    id: str
    user_id: str
    name: str
    description: str
    icon: str
    color: str
    is_default: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime
