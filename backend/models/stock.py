# backend/models/stock.py
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Enum, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# Closed set of movement kinds; every member needs a delta rule in services/reconciliation.py
class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    TRANSFER = "TRANSFER"
    ADJUST = "ADJUST"


class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    type = Column(Enum(MovementType, name="movement_type"), nullable=False)

    # Always positive; the direction comes from the type
    quantity = Column(Integer, CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"), nullable=False)

    warehouse_from_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True, index=True)
    warehouse_to_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True, index=True)

    # Free-form traceability fields
    lot_id = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    reason = Column(String, nullable=True)

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    # Bumped on every UPDATE/DELETE; a stale version fails the flush
    version = Column(Integer, nullable=False, default=1)

    product = relationship("Product")
    owner = relationship("User")
    warehouse_from = relationship("Warehouse", foreign_keys=[warehouse_from_id])
    warehouse_to = relationship("Warehouse", foreign_keys=[warehouse_to_id])

    __mapper_args__ = {"version_id_col": version}


# Current quantity of one product in one warehouse (a "pair").
# Written only by services/reconciliation.py; an absent row reads as zero.
class StockBalance(Base):
    __tablename__ = "stock_balances"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    version = Column(Integer, nullable=False, default=1)

    product = relationship("Product")
    warehouse = relationship("Warehouse")

    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", name="ux_stock_balances_pair"),
        CheckConstraint("quantity >= 0", name="ck_stock_balances_quantity_non_negative"),
    )
    __mapper_args__ = {"version_id_col": version}
