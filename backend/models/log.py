# backend/models/log.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Index
from database import Base


# One row per committed command (STOCK_MOVEMENT_CREATE, PRODUCT_CREATE, ...).
# Written by utils/audit.py once the command itself is committed.
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    action = Column(String(50), nullable=False, index=True)
    resource = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="SUCCESS")
    ip = Column(String(64), nullable=True)

    # Command context: movement id, type, changed fields
    meta = Column(JSON, nullable=True)

    __table_args__ = (
        # GET /logs always filters by caller and sorts by time
        Index("ix_logs_user_id_ts", "user_id", "ts"),
    )
