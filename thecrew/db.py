# Filename: thecrew/db.py
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
from .config import settings

DATABASE_URL = settings.database_url


def make_engine(url: str):
    """Engine for ``url``; in-memory SQLite shares one connection across threads."""
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False, pool_pre_ping=True)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=False, **kwargs)


engine = make_engine(DATABASE_URL)


def init_db() -> None:
    """Create DB tables and storage dirs"""
    from . import models  # noqa: F401

    settings.storage_path.mkdir(parents=True, exist_ok=True)
    (settings.storage_path / "objects").mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)


def get_session():
    """Yield a DB session (dependency)."""
    with Session(engine) as session:
        yield session
