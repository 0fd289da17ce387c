# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Schema for registering a new product
class ProductCreate(ORMBase):
    name: str
    sku: str
    description: Optional[str] = None
    unit: str = "un"
    min_stock: int = Field(default=0, ge=0)

    @field_validator("name", "sku", "unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class ProductResponse(ORMBase):
    id: int
    name: str
    sku: str
    description: Optional[str] = None
    unit: str
    min_stock: int
    created_at: Optional[datetime] = None


class ProductListPage(BaseModel):
    items: List[ProductResponse]
    total: int
    page: int
    page_size: int
