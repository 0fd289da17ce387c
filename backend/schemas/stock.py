# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Any, Dict, Optional

from models.stock import MovementType


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# Schema for recording a new stock movement.
# Which warehouse ids are required depends on the type; the ledger checks that.
class StockMovementCreate(BaseModel):
    product_id: int
    type: MovementType
    quantity: int = Field(gt=0, description="Quantity moved, always > 0")
    warehouse_from_id: Optional[int] = None
    warehouse_to_id: Optional[int] = None
    lot_id: Optional[str] = None
    reference: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("lot_id", "reference", "reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


# Partial update: only the fields present in the body are changed
class StockMovementUpdate(BaseModel):
    product_id: Optional[int] = None
    type: Optional[MovementType] = None
    quantity: Optional[int] = Field(None, gt=0)
    warehouse_from_id: Optional[int] = None
    warehouse_to_id: Optional[int] = None
    lot_id: Optional[str] = None
    reference: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("lot_id", "reference", "reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


# Schema for returning stock movement details
class StockMovementResponse(BaseModel):
    id: int
    product_id: int
    type: MovementType
    quantity: int
    warehouse_from_id: Optional[int] = None
    warehouse_to_id: Optional[int] = None
    lot_id: Optional[str] = None
    reference: Optional[str] = None
    reason: Optional[str] = None
    owner_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StockBalanceResponse(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int

    model_config = ConfigDict(from_attributes=True)


# A pair whose stored quantity differs from the replayed movement log
class BalanceDiscrepancy(BaseModel):
    product_id: int
    warehouse_id: int
    stored: int
    expected: int


# Structured body returned for every rejected command
class ErrorBody(BaseModel):
    kind: str
    message: str
    data: Dict[str, Any] = {}


class ErrorResponse(BaseModel):
    error: ErrorBody
