from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def build_engine(settings):
    """
    Create the engine for the portal database.

    MySQL/Postgres get a bounded pool (callers block up to DB_POOL_TIMEOUT
    when it is exhausted). SQLite is used for local runs and tests only.
    """
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,         # Base connections kept open
        max_overflow=settings.DB_MAX_OVERFLOW,   # Additional connections when pool is full
        pool_timeout=settings.DB_POOL_TIMEOUT,   # Wait before giving up on a connection
        pool_pre_ping=True,                      # Check connections are alive before using
        pool_recycle=3600,
    )


def build_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
