"""
SQLAlchemy engine, session factory and declarative base.

SQLite is the default backing store (a single local file); any SQLAlchemy
URL works through DATABASE_URL.
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from streakflame.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _connect_args(url: str) -> dict:
    # SQLite connections are shared with the threadpool FastAPI runs sync routes in.
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create missing tables. Alembic owns the schema in deployed setups."""
    import streakflame.models  # noqa: F401  (register mappers)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
