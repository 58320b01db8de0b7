"""Engine, session factory and declarative base."""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from rally.config import settings

Base = declarative_base()


def configure_sqlite(engine) -> None:
    """Serialize SQLite writers: every transaction opens with BEGIN IMMEDIATE.

    SQLite ignores FOR UPDATE, so the database write lock stands in for the
    per-event row lock used on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str):
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=settings.SQL_ECHO,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        configure_sqlite(engine)
        return engine
    return create_engine(url, echo=settings.SQL_ECHO, pool_pre_ping=True)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
