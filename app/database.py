"""Database session management."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import Settings, get_settings


def engine_connect_args(settings: Settings) -> dict:
    """Driver arguments for the configured database URL."""
    if settings.DATABASE_URL.startswith("sqlite"):
        return {"check_same_thread": False}
    if settings.DATABASE_URL.startswith("postgresql") and settings.DATABASE_SSL:
        return {"sslmode": "verify-full" if settings.DATABASE_SSL_VERIFY else "require"}
    return {}


settings = get_settings()
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=not settings.DATABASE_URL.startswith("sqlite"),
    connect_args=engine_connect_args(settings),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def init_db() -> None:
    """Create missing tables."""
    from app.models.review import Review  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
