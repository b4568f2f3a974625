import logging
import os
from contextlib import contextmanager

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv(".env")

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quizstore.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")
DB_POOL_TIMEOUT = os.getenv("DB_POOL_TIMEOUT")

Base = declarative_base()


def _on_sqlite_connect(dbapi_connection, connection_record):
    # let SQLAlchemy emit BEGIN itself so SAVEPOINT works under pysqlite
    dbapi_connection.isolation_level = None
    # SQLite ignores REFERENCES clauses unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(connection):
    connection.exec_driver_sql("BEGIN")


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    options = {"echo": DB_ECHO, "pool_pre_ping": True}
    if DB_POOL_TIMEOUT and not url.startswith("sqlite"):
        options["pool_timeout"] = float(DB_POOL_TIMEOUT)
    options.update(kwargs)

    engine = create_engine(url, **options)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _on_sqlite_connect)
        event.listen(engine, "begin", _on_sqlite_begin)
    logger.debug("Engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine):
    # Models register themselves on Base when the package is imported
    import quizstore.v1.models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
