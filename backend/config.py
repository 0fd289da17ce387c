# backend/config.py
from pydantic import Field
from pydantic_settings import BaseSettings
from typing import ClassVar, Literal, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stock_ledger.db"

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # "reject" refuses commands that would drive a balance below zero,
    # "clamp" floors the balance at zero instead
    NEGATIVE_STOCK_POLICY: Literal["reject", "clamp"] = "reject"
    # Attempts per unit of work before a ConcurrencyConflict is raised
    CONCURRENCY_MAX_RETRIES: int = Field(3, ge=1)

    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
