# backend/schemas/warehouse.py
from pydantic import BaseModel, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime


# Schema for registering a storage location
class WarehouseCreate(BaseModel):
    name: str
    address: Optional[str] = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class WarehouseResponse(BaseModel):
    id: int
    name: str
    address: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WarehouseListPage(BaseModel):
    items: List[WarehouseResponse]
    total: int
    page: int
    page_size: int
