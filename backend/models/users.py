# backend/models/users.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

# Account that owns products, warehouses and the movements recorded against them
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
