from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import settings

DATABASE_URL = settings.database_url


def make_engine(url: str):
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    if parsed.database in (None, "", ":memory:"):
        # one shared connection would let a session's rollback discard another session's pending writes
        raise ValueError(f"In-memory SQLite cannot back concurrent sessions, use a file URL: {url!r}")
    return create_engine(url, connect_args={"check_same_thread": False})


engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine)
Base = declarative_base()
