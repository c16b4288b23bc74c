"""Database engine and per-request sessions"""

from typing import Any, Dict, Generator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from careguard_gateway.config import settings


def build_engine(database_url: str) -> Engine:
    """Pooled engine for PostgreSQL; SQLite (local runs) gets a plain single-file engine"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }
    return create_engine(database_url, **options)


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Session for one request; routes commit, this only closes"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
