from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

pytest.importorskip("pydantic_settings")

from upgrader.db import Base
from upgrader.models import Preference
from upgrader.services.alert_state import (
    LAST_TIME_ALERTED_KEY,
    LAST_VERSION_ALERTED_KEY,
    USER_IGNORED_VERSION_KEY,
    AlertState,
    AlertStateStore,
    clear_saved_settings,
)
from upgrader.services.storage import MemoryKeyValueStore, SqlKeyValueStore, StorageError
from upgrader.services.versions import parse_version


@pytest.fixture
def sql_store(tmp_path) -> SqlKeyValueStore:
    engine = create_engine(f"sqlite:///{tmp_path / 'prefs.db'}")
    Base.metadata.create_all(bind=engine)
    return SqlKeyValueStore(sessionmaker(bind=engine))


class _BrokenStore(MemoryKeyValueStore):
    def get_string(self, key):
        raise StorageError("disk unavailable")

    def set_many(self, values):
        return False

    def set_string(self, key, value):
        return False


def test_load_empty_store_gives_empty_state():
    assert AlertStateStore(MemoryKeyValueStore()).load() == AlertState()


def test_load_reads_each_field_independently():
    store = MemoryKeyValueStore(
        {
            LAST_TIME_ALERTED_KEY: "2024-05-01 10:30:00.000",
            LAST_VERSION_ALERTED_KEY: "",
            USER_IGNORED_VERSION_KEY: "2.1.0",
        }
    )

    state = AlertStateStore(store).load()

    assert state.last_alerted_at == datetime(2024, 5, 1, 10, 30, tzinfo=UTC)
    assert state.last_version_alerted is None
    assert state.user_ignored_version == parse_version("2.1.0")


def test_load_tolerates_garbage_values():
    store = MemoryKeyValueStore({LAST_TIME_ALERTED_KEY: "yesterday", USER_IGNORED_VERSION_KEY: "v?"})
    assert AlertStateStore(store).load() == AlertState()


def test_read_failure_degrades_to_empty_state():
    assert AlertStateStore(_BrokenStore()).load() == AlertState()


def test_record_alert_shown_persists_both_fields():
    store = MemoryKeyValueStore()
    alerts = AlertStateStore(store)
    now = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    state = alerts.record_alert_shown(parse_version("1.4.0"), now=now)

    assert state.last_alerted_at == now
    assert state.last_version_alerted == parse_version("1.4.0")
    assert store.values[LAST_TIME_ALERTED_KEY] == now.isoformat()
    assert store.values[LAST_VERSION_ALERTED_KEY] == "1.4.0"
    assert AlertStateStore(store).load() == state


def test_record_alert_shown_without_version_stores_empty_string():
    store = MemoryKeyValueStore()
    AlertStateStore(store).record_alert_shown(None)
    assert store.values[LAST_VERSION_ALERTED_KEY] == ""


def test_record_user_ignored_keeps_alert_fields():
    alerts = AlertStateStore(MemoryKeyValueStore())
    shown = alerts.record_alert_shown(parse_version("1.4.0"))

    state = alerts.record_user_ignored(parse_version("1.4.0"))

    assert state.user_ignored_version == parse_version("1.4.0")
    assert state.last_alerted_at == shown.last_alerted_at


def test_write_failures_raise_storage_error():
    alerts = AlertStateStore(_BrokenStore())
    with pytest.raises(StorageError):
        alerts.record_alert_shown(parse_version("1.0.0"))
    with pytest.raises(StorageError):
        alerts.record_user_ignored(parse_version("1.0.0"))


def test_reset_clears_all_keys():
    store = MemoryKeyValueStore({LAST_TIME_ALERTED_KEY: "2024-01-01T00:00:00+00:00", "other": "kept"})
    alerts = AlertStateStore(store)
    alerts.load()
    alerts.record_user_ignored(parse_version("1.0.0"))

    assert alerts.reset() == AlertState()
    assert store.values == {"other": "kept"}


def test_sql_store_round_trip(sql_store: SqlKeyValueStore):
    alerts = AlertStateStore(sql_store)
    now = datetime.now(UTC) - timedelta(hours=1)
    alerts.record_alert_shown(parse_version("3.0.0"), now=now)
    alerts.record_user_ignored(parse_version("3.0.0"))

    reloaded = AlertStateStore(sql_store).load()

    assert reloaded.last_alerted_at == now
    assert reloaded.last_version_alerted == parse_version("3.0.0")
    assert reloaded.user_ignored_version == parse_version("3.0.0")
    with sql_store.session_factory() as db:
        assert db.get(Preference, USER_IGNORED_VERSION_KEY).value == "3.0.0"


def test_sql_store_update_and_remove(sql_store: SqlKeyValueStore):
    sql_store.set_string("k", "one")
    sql_store.set_string("k", "two")
    assert sql_store.get_string("k") == "two"

    clear_saved_settings(sql_store)
    sql_store.remove("k")

    assert sql_store.get_string("k") is None
    assert sql_store.get_string(LAST_TIME_ALERTED_KEY) is None


def test_sql_store_wraps_database_errors(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    store = SqlKeyValueStore(sessionmaker(bind=engine))

    with pytest.raises(StorageError):
        store.get_string("missing-table")
    assert AlertStateStore(store).load() == AlertState()
