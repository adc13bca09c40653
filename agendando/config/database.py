"""Database configuration and connection setup"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from agendando.config.settings import get_settings

settings = get_settings()


def configure_sqlite_locking(engine: Engine) -> Engine:
    """
    Make every SQLite transaction take the database write lock up front.

    pysqlite defers BEGIN until the first write, so two sessions could both
    read "no conflict" before either inserts. BEGIN IMMEDIATE gives SQLite the
    same read-then-insert atomicity the host row lock gives on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(database_url: str) -> Engine:
    """Create an engine with pooling suited to the backend"""
    if database_url.startswith("sqlite"):
        return configure_sqlite_locking(
            create_engine(
                database_url,
                connect_args={"check_same_thread": False, "timeout": 30},
                echo=False,
            )
        )

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=False,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all tables (local development; production uses alembic)"""
    from agendando.models import Base

    Base.metadata.create_all(bind=engine)
    print("Database tables created successfully!")


if __name__ == "__main__":
    create_tables()
