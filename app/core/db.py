from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
import os

from config.settings import get_settings

SQLALCHEMY_DATABASE_URL = (os.getenv("DATABASE_URL") or get_settings().database_url or "").strip()

# Special case for local testing/CI
IS_TEST = os.getenv("PYTEST_CURRENT_TEST") is not None or os.getenv("ENVIRONMENT") == "testing"

if not SQLALCHEMY_DATABASE_URL:
    if not IS_TEST and get_settings().is_production:
        raise RuntimeError("CRITICAL: DATABASE_URL must be set in production.")
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test_lingua.db" if IS_TEST else "sqlite:///./lingua.db"

if SQLALCHEMY_DATABASE_URL.startswith("postgresql"):
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        pool_size=20,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )
else:
    engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def run_migrations():
    """Bootstrap the database schema."""
    # Models must be registered on Base.metadata before create_all.
    import app.core.models  # noqa: F401

    Base.metadata.create_all(bind=engine)

