# backend/database.py
"""Engine, session factory and declarative Base shared by the models and the stock ledger."""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings


def _normalize_url(url: str) -> str:
    # Hosted Postgres hands out postgres:// URLs; SQLAlchemy only accepts postgresql://
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


SQLALCHEMY_DATABASE_URL = _normalize_url(settings.DATABASE_URL)
IS_SQLITE = SQLALCHEMY_DATABASE_URL.startswith("sqlite")

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False} if IS_SQLITE else {},
)

# The ledger decides when to flush and commit; nothing is written behind its back
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def register_models():
    """Import every model module so its table is on Base.metadata."""
    import models.users, models.product, models.warehouse, models.stock, models.log  # noqa: F401, E401


def init_db():
    register_models()
    Base.metadata.create_all(bind=engine)
