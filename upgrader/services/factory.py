from __future__ import annotations

from functools import lru_cache

from upgrader.config import Settings, get_settings
from upgrader.services.alert_state import AlertStateStore
from upgrader.services.appcast import AppcastConfiguration, AppcastFeedProvider
from upgrader.services.decision import DecisionConfig, DecisionEngine, DecisionObserver
from upgrader.services.feed import FeedProvider, Locale
from upgrader.services.session import ActionHandlers, SessionController
from upgrader.services.storage import KeyValueStore, build_store
from upgrader.version import InstalledVersionProvider


def build_feed_provider(settings: Settings) -> FeedProvider:
    return AppcastFeedProvider(
        AppcastConfiguration(
            url=settings.update_feed_url.strip() or None,
            supported_os=settings.supported_os,
        ),
        timeout_seconds=settings.feed_timeout_seconds,
    )


def build_session_controller(
    settings: Settings,
    *,
    store: KeyValueStore | None = None,
    feed_provider: FeedProvider | None = None,
    version_provider: InstalledVersionProvider | None = None,
    observer: DecisionObserver | None = None,
    handlers: ActionHandlers | None = None,
) -> SessionController:
    return SessionController(
        version_provider=version_provider
        or InstalledVersionProvider(settings.distribution_name, app_name=settings.app_name),
        feed_provider=feed_provider or build_feed_provider(settings),
        state_store=AlertStateStore(store or build_store(settings)),
        engine=DecisionEngine(DecisionConfig.from_settings(settings), observer=observer),
        locale=Locale(country_code=settings.country_code, language_code=settings.language_code),
        min_app_version=settings.min_app_version,
        handlers=handlers,
    )


@lru_cache
def get_session_controller() -> SessionController:
    """Process-wide default controller built from the environment settings."""
    return build_session_controller(get_settings())
