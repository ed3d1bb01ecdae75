"""
StockFlow Database Configuration
SQLAlchemy engine, session factory and declarative base
"""
from sqlalchemy import create_engine, event, MetaData, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from typing import Generator

from .config import settings
from .logging import get_logger

logger = get_logger("database")


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Build an engine for the given URL

    SQLite connections get foreign key enforcement, WAL journaling and a
    busy timeout so concurrent writers queue instead of failing.
    """
    if url.startswith("sqlite"):
        new_engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.SQLITE_BUSY_TIMEOUT,
            },
            echo=echo,
        )

        @event.listens_for(new_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if ":memory:" not in url:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return new_engine

    return create_engine(
        url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,
        echo=echo,
    )


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Naming convention keeps constraint names stable across backends
Base = declarative_base(metadata=MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}))


def get_db() -> Generator:
    """
    Dependency function to get database session

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine = None):
    """
    Initialize database tables

    Creates every table registered on Base
    """
    # Import all models to ensure they are registered with Base
    from stockflow import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def check_db_connection() -> bool:
    """
    Check if database connection is working

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
