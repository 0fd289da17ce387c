# backend/services/movements.py
"""
Movement store: append, lookup, update, delete and list stock movements.

Records change only through ``update``; the version column makes a
concurrent update or delete of the same movement fail at flush time.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.stock import MovementType, StockMovement

# Fields a caller may change on an existing movement
MUTABLE_FIELDS = (
    "product_id",
    "type",
    "quantity",
    "warehouse_from_id",
    "warehouse_to_id",
    "lot_id",
    "reference",
    "reason",
)


class MovementStore:
    def __init__(self, db: Session):
        self.db = db

    def add(self, owner_id: int, fields: dict[str, Any]) -> StockMovement:
        movement = StockMovement(owner_id=owner_id, **fields)
        self.db.add(movement)
        return movement

    def get_owned(self, owner_id: int, movement_id: int) -> Optional[StockMovement]:
        return (
            self.db.query(StockMovement)
            .filter(StockMovement.id == movement_id, StockMovement.owner_id == owner_id)
            .with_for_update()
            .first()
        )

    def update(self, movement: StockMovement, changes: dict[str, Any]) -> StockMovement:
        for field, value in changes.items():
            if field not in MUTABLE_FIELDS:
                raise KeyError(field)
            setattr(movement, field, value)
        return movement

    def remove(self, movement: StockMovement) -> None:
        self.db.delete(movement)

    def list_owned(
        self,
        owner_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        type: Optional[MovementType] = None,
    ) -> list[StockMovement]:
        """Owned movements, newest first; ``start``/``end`` bound created_at inclusively."""
        query = self.db.query(StockMovement).filter(StockMovement.owner_id == owner_id)

        if start is not None:
            query = query.filter(StockMovement.created_at >= start)
        if end is not None:
            query = query.filter(StockMovement.created_at <= end)
        if product_id is not None:
            query = query.filter(StockMovement.product_id == product_id)
        if warehouse_id is not None:
            query = query.filter(or_(
                StockMovement.warehouse_from_id == warehouse_id,
                StockMovement.warehouse_to_id == warehouse_id,
            ))
        if type is not None:
            query = query.filter(StockMovement.type == type)

        return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()

    def for_products(self, product_ids: Iterable[int]) -> list[StockMovement]:
        """Every movement of the given products in creation order (ledger replay)."""
        product_ids = list(product_ids)
        if not product_ids:
            return []
        return (
            self.db.query(StockMovement)
            .filter(StockMovement.product_id.in_(product_ids))
            .order_by(StockMovement.created_at, StockMovement.id)
            .all()
        )
