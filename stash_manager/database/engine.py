"""
Database engine configuration.

Supports SQLite (the default local database) and server databases with
connection pooling. Sessions are synchronous; each import holds one pooled
connection for the duration of the call.
"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlmodel import Session, SQLModel, create_engine

from stash_manager.config import get_settings

logger = logging.getLogger(__name__)


# Global engine instance
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """
    Get the database URL from settings.

    Normalizes the legacy ``postgres://`` scheme to ``postgresql://``.
    """
    url = get_settings().DATABASE_URL
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with the pool suited to the backend."""
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            # One shared connection, otherwise every checkout sees an empty database
            return create_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
        pool_pre_ping=True,
    )


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine

    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(get_database_url(), echo=settings.DEBUG)

    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())

    return _session_factory


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=Session,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Usage:
        @router.get("/items")
        def get_items(session: Session = Depends(get_session)):
            ...
    """
    with get_session_context() as session:
        yield session


@contextmanager
def get_session_context(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Commits on success, rolls back on any exception and always returns the
    connection to the pool.

    Usage:
        with get_session_context() as session:
            ...
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Initialize the database.

    Creates all tables defined in SQLModel metadata.
    Should be called on application startup.
    """
    engine = engine or get_engine()

    # Import models to register them with SQLModel
    from stash_manager.database import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info(f"Database initialized at {engine.url!r}")


def close_db() -> None:
    """
    Close the database connection.

    Should be called on application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None


def drop_all_tables(engine: Optional[Engine] = None) -> None:
    """
    Drop all database tables.

    WARNING: This deletes all data! Only use in testing.
    """
    engine = engine or get_engine()
    SQLModel.metadata.drop_all(engine)
