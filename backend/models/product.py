# backend/models/product.py
from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

# Catalogue entry whose quantities are tracked per warehouse by the ledger.
# The ledger only needs its id and owner; the rest is descriptive.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    sku = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    unit = Column(String, nullable=False, default="un")
    min_stock = Column(Integer, CheckConstraint("min_stock >= 0"), nullable=False, default=0)

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User")
