from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from config.settings import Settings, settings
from database.db import SessionLocal
from services.result_engine.credits import CreditFallback
from services.result_engine.errors import ValidationError
from services.result_store import CreditTableProvider, ResultStore


# ==========================================================
# [common] DB session per request
# ==========================================================
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_settings() -> Settings:
    return settings


def get_result_store(db: Session = Depends(get_db)) -> ResultStore:
    return ResultStore(db)


def get_credit_provider(db: Session = Depends(get_db)) -> CreditTableProvider:
    return CreditTableProvider(db)


def credit_policy(cfg: Settings) -> dict:
    """CreditMap policy kwargs taken from settings."""
    return {
        "fallback": CreditFallback(cfg.CREDIT_FALLBACK),
        "default_credits": cfg.DEFAULT_CREDITS,
    }


def parse_int_param(value: Optional[str], name: str) -> int:
    """year / semester arrive as strings; anything non-numeric is a ValidationError."""
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required parameter: {name}", field=name)
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{name} must be a valid number", field=name, value=value)


def require_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Missing required parameter: {name}", field=name)
    return value.strip()
