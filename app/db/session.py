# app/db/session.py
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    # SQLite uses a single-file lock; the pool/statement timeout knobs only
    # apply to server databases.
    if url.startswith("sqlite"):
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": settings.db_pool_timeout_s,
            },
        }
    connect_args = {}
    if url.startswith("postgresql"):
        connect_args["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"
    return {
        "connect_args": connect_args,
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_s,
    }


def _sqlite_foreign_keys(dbapi_conn, _record):
    # ON DELETE CASCADE is a no-op on SQLite unless enabled per connection
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def build_engine(url: str | None = None):
    url = url or settings.database_url
    eng = create_engine(url, **_engine_kwargs(url))
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _sqlite_foreign_keys)
    return eng


engine = build_engine()

# The session is the actual handler for the database conversation
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create any missing tables. Alembic owns the schema in production."""
    from app.db.model_registry import metadata

    metadata.create_all(bind=bind or engine)
    logger.info("Database tables checked/created.")
