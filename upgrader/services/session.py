"""One check-then-prompt-then-record cycle per application session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Protocol

from upgrader.services.alert_state import AlertStateStore
from upgrader.services.decision import Decision, DecisionEngine
from upgrader.services.feed import FeedProvider, FeedResult, Locale, normalize_feed
from upgrader.services.storage import StorageError
from upgrader.services.versions import Version, try_parse_version
from upgrader.version import AppIdentity, InstalledVersionProvider

logger = logging.getLogger(__name__)


class NotInitializedError(RuntimeError):
    def __init__(self, message: str = "initialize() not called. Must be called first."):
        super().__init__(message)


class SessionState(str, Enum):
    NOT_INITIALIZED = "not_initialized"
    INITIALIZING = "initializing"
    READY = "ready"


class UserAction(str, Enum):
    UPDATE = "update"
    LATER = "later"
    IGNORE = "ignore"
    DISMISSED = "dismissed"


class Presenter(Protocol):
    async def present(self, decision: Decision) -> UserAction: ...


@dataclass
class ActionHandlers:
    """User callbacks. Returning False skips the default behaviour for that action."""

    on_update: Callable[[], bool] | None = None
    on_later: Callable[[], bool] | None = None
    on_ignore: Callable[[], bool] | None = None


def _run_handler(handler: Callable[[], bool] | None, action: UserAction) -> bool:
    if handler is None:
        return True
    try:
        return bool(handler())
    except Exception:  # noqa: BLE001
        logger.exception("Handler for %s failed", action.value)
        return False


class SessionController:
    def __init__(
        self,
        *,
        version_provider: InstalledVersionProvider,
        feed_provider: FeedProvider,
        state_store: AlertStateStore,
        engine: DecisionEngine,
        locale: Locale | None = None,
        min_app_version: str | None = None,
        latest_version_override: str | None = None,
        listing_url_override: str | None = None,
        handlers: ActionHandlers | None = None,
        open_listing: Callable[[str], None] | None = None,
    ):
        self.version_provider = version_provider
        self.feed_provider = feed_provider
        self.state_store = state_store
        self.engine = engine
        self.locale = locale or Locale()
        self.min_app_version = try_parse_version(min_app_version)
        self.latest_version_override = try_parse_version(latest_version_override)
        self.listing_url_override = listing_url_override
        self.handlers = handlers or ActionHandlers()
        self.open_listing = open_listing

        self.session_state = SessionState.NOT_INITIALIZED
        self._init_task: asyncio.Task[bool] | None = None
        self._identity: AppIdentity | None = None
        self._installed_version: Version | None = None
        self._feed = FeedResult.empty()
        self._displayed = False

    @property
    def is_displayed(self) -> bool:
        return self._displayed

    # Initialization

    async def initialize(self) -> bool:
        if self._init_task is None:
            self.session_state = SessionState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._initialize())
        return await asyncio.shield(self._init_task)

    async def _initialize(self) -> bool:
        logger.debug("Initializing upgrade session")
        await asyncio.to_thread(self.state_store.load)

        self._identity = self.version_provider.identity()
        self._installed_version = try_parse_version(self.version_provider.current_version())
        if self._installed_version is None:
            logger.warning("Installed version is unknown; no update will be offered")

        self._feed = await self._fetch_feed(self._identity)
        self.session_state = SessionState.READY
        return True

    async def _fetch_feed(self, identity: AppIdentity) -> FeedResult:
        try:
            items = await self.feed_provider.fetch(identity, self.locale)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Feed fetch from %s failed: %s", getattr(self.feed_provider, "name", "feed"), exc)
            items = []
        feed = normalize_feed(items, self._installed_version)

        overrides = {}
        if self.latest_version_override is not None:
            overrides["latest_version"] = self.latest_version_override
        if self.listing_url_override:
            overrides["listing_url"] = self.listing_url_override
        if overrides:
            feed = replace(feed, **overrides)
        return feed

    def _verify_init(self) -> None:
        if self.session_state is not SessionState.READY:
            raise NotInitializedError()

    @property
    def feed(self) -> FeedResult:
        self._verify_init()
        return self._feed

    @property
    def installed_version(self) -> Version | None:
        self._verify_init()
        return self._installed_version

    @property
    def app_name(self) -> str:
        self._verify_init()
        return self._identity.app_name if self._identity else ""

    # Decision

    def evaluate(self) -> Decision:
        self._verify_init()
        context = self.engine.build_context(
            installed_version=self._installed_version,
            feed=self._feed,
            state=self.state_store.state,
            min_app_version_override=self.min_app_version,
        )
        return self.engine.evaluate(context)

    async def check_version(self, presenter: Presenter) -> UserAction | None:
        await self.initialize()
        if self._displayed:
            logger.debug("Upgrade prompt already displayed")
            return None

        decision = self.evaluate()
        if not decision.should_show:
            return None

        self._displayed = True
        try:
            await self.record_alert_shown(decision)
            action = UserAction(await presenter.present(decision))
            await self.handle_action(action, decision)
            return action
        finally:
            self._displayed = False

    # Recording

    async def record_alert_shown(self, decision: Decision) -> None:
        try:
            await asyncio.to_thread(self.state_store.record_alert_shown, decision.latest_version)
        except StorageError as exc:
            logger.warning("Could not save last alerted time: %s", exc)

    async def handle_action(self, action: UserAction, decision: Decision) -> None:
        logger.info("Upgrade prompt action: %s", action.value)
        if action is UserAction.UPDATE:
            if _run_handler(self.handlers.on_update, action):
                self._send_to_listing(decision.listing_url)
        elif action is UserAction.LATER:
            _run_handler(self.handlers.on_later, action)
        elif action is UserAction.IGNORE:
            if decision.blocked:
                logger.warning("Ignore is not allowed for a blocked update")
                return
            if _run_handler(self.handlers.on_ignore, action) and decision.latest_version is not None:
                try:
                    await asyncio.to_thread(self.state_store.record_user_ignored, decision.latest_version)
                except StorageError as exc:
                    logger.warning("Could not save ignored version: %s", exc)

    def _send_to_listing(self, listing_url: str | None) -> None:
        if not listing_url:
            logger.info("No listing URL to open")
            return
        if self.open_listing is None:
            logger.info("Update available at %s", listing_url)
            return
        try:
            self.open_listing(listing_url)
        except Exception:  # noqa: BLE001
            logger.exception("Could not open listing %s", listing_url)

    async def reset(self) -> None:
        await asyncio.to_thread(self.state_store.reset)
