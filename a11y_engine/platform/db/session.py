from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from a11y_engine.platform.config import settings


def _engine_kwargs(db_url: str) -> dict:
    if db_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 20,
        "max_overflow": 30,  # (burst capacity)
        "pool_timeout": 30,
    }


engine = create_engine(settings.DATABASE_URL, echo=False, future=True, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables. Models must be imported before calling this."""
    from a11y_engine.platform.db.base import Base
    import a11y_engine.features.audit.models  # noqa: F401
    import a11y_engine.features.remediation.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_session_factory():
    """Session factory for code that opens its own sessions (concurrent loaders)."""
    return SessionLocal
