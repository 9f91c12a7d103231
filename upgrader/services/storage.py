from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from upgrader.config import Settings
from upgrader.models import Preference

logger = logging.getLogger(__name__)

BACKENDS = ("sql", "memory")


class StorageError(RuntimeError):
    pass


class KeyValueStore:
    name: str

    def get_string(self, key: str) -> str | None:
        raise NotImplementedError

    def set_string(self, key: str, value: str) -> bool:
        raise NotImplementedError

    def remove(self, key: str) -> bool:
        raise NotImplementedError

    def set_many(self, values: dict[str, str]) -> bool:
        ok = True
        for key, value in values.items():
            ok = self.set_string(key, value) and ok
        return ok


class MemoryKeyValueStore(KeyValueStore):
    name = "memory"

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})

    def get_string(self, key: str) -> str | None:
        return self.values.get(key)

    def set_string(self, key: str, value: str) -> bool:
        self.values[key] = value
        return True

    def remove(self, key: str) -> bool:
        self.values.pop(key, None)
        return True


class SqlKeyValueStore(KeyValueStore):
    name = "sql"

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_string(self, key: str) -> str | None:
        try:
            with self.session_factory() as db:
                row = db.get(Preference, key)
                return row.value if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read preference {key!r}: {exc}") from exc

    def set_string(self, key: str, value: str) -> bool:
        return self.set_many({key: value})

    def set_many(self, values: dict[str, str]) -> bool:
        try:
            with self.session_factory() as db:
                for key, value in values.items():
                    row = db.get(Preference, key)
                    if row is None:
                        db.add(Preference(key=key, value=value, updated_at=datetime.now(UTC)))
                    else:
                        row.value = value
                        row.updated_at = datetime.now(UTC)
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not write preferences {sorted(values)}: {exc}") from exc
        return True

    def remove(self, key: str) -> bool:
        try:
            with self.session_factory() as db:
                db.execute(delete(Preference).where(Preference.key == key))
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not remove preference {key!r}: {exc}") from exc
        return True


def build_store(settings: Settings) -> KeyValueStore:
    backend = settings.storage_backend.strip().lower()
    if backend not in BACKENDS:
        logger.warning("Unknown storage backend %r, falling back to sql", settings.storage_backend)
        backend = "sql"
    if backend == "memory":
        return MemoryKeyValueStore()

    from upgrader.db import SessionLocal, init_db

    init_db()
    return SqlKeyValueStore(SessionLocal)
