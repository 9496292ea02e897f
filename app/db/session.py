from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from ..core.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs):
    # Required for SQLite (otherwise threading errors), and cascades need the FK pragma
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    eng = create_engine(
        url,
        echo=settings.SQL_ECHO,
        future=True,
        connect_args=connect_args,
        **kwargs,
    )
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _enable_sqlite_foreign_keys)
    return eng


engine = build_engine(settings.DATABASE_URL)
# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True
)
