from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from upgrader.config import get_settings


class Base(DeclarativeBase):
    pass


def _build_engine():
    settings = get_settings()
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(settings.database_url, connect_args=connect_args)


engine = _build_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db() -> None:
    from upgrader import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
