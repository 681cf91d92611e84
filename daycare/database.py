import logging
import os
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL, SESSION_DATABASE_URL

logger = logging.getLogger(__name__)

# Get environment-specific pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))


def build_engine(url: str):
    """Create an engine with pooling for Postgres, or a shared connection for SQLite."""
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_recycle=POOL_RECYCLE,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            echo=False,
        )
        logger.info(
            f"📊 Connection pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}, timeout={POOL_TIMEOUT}s"
        )

    # Slow query logging for performance monitoring
    if ENABLE_QUERY_LOGGING:

        @event.listens_for(engine, "before_cursor_execute")
        def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
            conn.info.setdefault("query_start_time", []).append(time.time())

        @event.listens_for(engine, "after_cursor_execute")
        def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
            total = time.time() - conn.info["query_start_time"].pop(-1)
            if total > SLOW_QUERY_THRESHOLD:
                logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

    return engine


try:
    engine = build_engine(DATABASE_URL)
    # Sessions acting on behalf of a signed-in user; RLS applies when a restricted role is configured
    user_engine = build_engine(SESSION_DATABASE_URL) if SESSION_DATABASE_URL else engine
    logger.info("✅ Database engine created successfully")
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
UserSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=user_engine)
Base = declarative_base()


def get_db():
    """Admin session using the service credential. Callers authorize before querying."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_user_db():
    db = UserSessionLocal()
    try:
        yield db
    finally:
        db.close()
