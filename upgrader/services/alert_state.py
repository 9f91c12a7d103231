from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from upgrader.services.storage import KeyValueStore, StorageError
from upgrader.services.versions import Version, try_parse_version

logger = logging.getLogger(__name__)

LAST_TIME_ALERTED_KEY = "lastTimeAlerted"
LAST_VERSION_ALERTED_KEY = "lastVersionAlerted"
USER_IGNORED_VERSION_KEY = "userIgnoredVersion"
STATE_KEYS = (LAST_TIME_ALERTED_KEY, LAST_VERSION_ALERTED_KEY, USER_IGNORED_VERSION_KEY)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class AlertState:
    last_alerted_at: datetime | None = None
    last_version_alerted: Version | None = None
    user_ignored_version: Version | None = None


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning("Ignoring unparsable %s value: %r", LAST_TIME_ALERTED_KEY, value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class AlertStateStore:
    """Persisted record of when the user was last prompted and what they ignored."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._state = AlertState()

    @property
    def state(self) -> AlertState:
        return self._state

    def _read(self, key: str) -> str | None:
        try:
            return self.store.get_string(key)
        except StorageError as exc:
            logger.warning("Could not read %s, treating it as empty: %s", key, exc)
            return None

    def load(self) -> AlertState:
        self._state = AlertState(
            last_alerted_at=_parse_timestamp(self._read(LAST_TIME_ALERTED_KEY)),
            last_version_alerted=try_parse_version(self._read(LAST_VERSION_ALERTED_KEY)),
            user_ignored_version=try_parse_version(self._read(USER_IGNORED_VERSION_KEY)),
        )
        return self._state

    def record_alert_shown(self, version: Version | None, now: datetime | None = None) -> AlertState:
        alerted_at = now or utc_now()
        self._state = AlertState(
            last_alerted_at=alerted_at,
            last_version_alerted=version,
            user_ignored_version=self._state.user_ignored_version,
        )
        written = self.store.set_many(
            {
                LAST_TIME_ALERTED_KEY: alerted_at.isoformat(),
                LAST_VERSION_ALERTED_KEY: str(version) if version is not None else "",
            }
        )
        if not written:
            raise StorageError("Storage rejected the last-alerted record")
        return self._state

    def record_user_ignored(self, version: Version) -> AlertState:
        self._state = AlertState(
            last_alerted_at=self._state.last_alerted_at,
            last_version_alerted=self._state.last_version_alerted,
            user_ignored_version=version,
        )
        if not self.store.set_string(USER_IGNORED_VERSION_KEY, str(version)):
            raise StorageError("Storage rejected the ignored-version record")
        return self._state

    def reset(self) -> AlertState:
        clear_saved_settings(self.store)
        self._state = AlertState()
        return self._state


def clear_saved_settings(store: KeyValueStore) -> None:
    for key in STATE_KEYS:
        if not store.remove(key):
            raise StorageError(f"Storage could not remove {key}")
