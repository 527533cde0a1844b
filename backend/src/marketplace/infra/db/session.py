from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from marketplace.infra.db.models import Base


def build_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def init_db(bind: Engine) -> None:
    Base.metadata.create_all(bind)


@lru_cache(maxsize=None)
def session_factory(database_url: str | None) -> sessionmaker[Session]:
    """One engine per database URL, created (with its tables) on first use."""
    if not database_url:
        raise RuntimeError("DATABASE_URL is required when DB_BACKEND=sql")

    engine = build_engine(database_url)
    init_db(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)


def get_db(database_url: str | None) -> Generator[Session, None, None]:
    db = session_factory(database_url)()
    try:
        yield db
    finally:
        db.close()
