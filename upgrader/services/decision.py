from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from upgrader.config import Settings
from upgrader.services.alert_state import AlertState, utc_now
from upgrader.services.feed import FeedResult
from upgrader.services.versions import Version, try_parse_version

logger = logging.getLogger(__name__)


class DecisionReason(str, Enum):
    DEBUG_OVERRIDE = "debug_override"
    NO_UPDATE_AVAILABLE = "no_update_available"
    BLOCKED = "blocked"
    TOO_SOON = "too_soon"
    ALREADY_IGNORED = "already_ignored"
    UPDATE_AVAILABLE = "update_available"


@dataclass(frozen=True)
class DecisionConfig:
    throttle_duration: timedelta = timedelta(days=3)
    debug_always_show: bool = False
    debug_show_once: bool = False
    show_ignore: bool = True
    show_later: bool = True
    show_release_notes: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> DecisionConfig:
        return cls(
            throttle_duration=settings.throttle_duration,
            debug_always_show=settings.debug_display_always,
            debug_show_once=settings.debug_display_once,
            show_ignore=settings.show_ignore,
            show_later=settings.show_later,
            show_release_notes=settings.show_release_notes,
        )


@dataclass(frozen=True)
class DecisionContext:
    installed_version: Version | None
    feed: FeedResult
    state: AlertState
    config: DecisionConfig
    now: datetime
    min_app_version_override: Version | None = None

    @property
    def min_app_version(self) -> Version | None:
        if self.min_app_version_override is not None:
            return self.min_app_version_override
        return self.feed.min_app_version


@dataclass(frozen=True)
class Decision:
    should_show: bool
    blocked: bool
    reason: DecisionReason
    installed_version: Version | None = None
    latest_version: Version | None = None
    min_app_version: Version | None = None
    listing_url: str | None = None
    release_notes: str | None = None
    show_ignore: bool = True
    show_later: bool = True


@dataclass(frozen=True)
class DecisionEvent:
    should_show: bool
    min_app_version: Version | None
    installed_version: Version | None
    latest_version: Version | None


DecisionObserver = Callable[[DecisionEvent], None]


def below_min_app_version(installed: Version | None, minimum: Version | None) -> bool:
    if installed is None or minimum is None:
        return False
    return installed < minimum


def is_update_available(installed: Version | None, latest: Version | None) -> bool:
    if installed is None or latest is None:
        return False
    return latest > installed


def is_too_soon(state: AlertState, now: datetime, throttle: timedelta) -> bool:
    if state.last_alerted_at is None:
        return False
    return now - state.last_alerted_at < throttle


def already_ignored(state: AlertState, latest: Version | None) -> bool:
    return state.user_ignored_version is not None and state.user_ignored_version == latest


@dataclass
class DecisionEngine:
    config: DecisionConfig = field(default_factory=DecisionConfig)
    observer: DecisionObserver | None = None
    clock: Callable[[], datetime] = utc_now

    def build_context(
        self,
        installed_version: Version | None,
        feed: FeedResult,
        state: AlertState,
        min_app_version_override: Version | str | None = None,
        now: datetime | None = None,
    ) -> DecisionContext:
        if isinstance(min_app_version_override, str):
            min_app_version_override = try_parse_version(min_app_version_override)
        now = now or self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return DecisionContext(
            installed_version=installed_version,
            feed=feed,
            state=state,
            config=self.config,
            now=now,
            min_app_version_override=min_app_version_override,
        )

    def _reason(self, context: DecisionContext, blocked: bool) -> DecisionReason:
        config = context.config
        feed = context.feed
        if config.debug_always_show or (config.debug_show_once and context.state.last_alerted_at is None):
            return DecisionReason.DEBUG_OVERRIDE
        if not is_update_available(context.installed_version, feed.offered_version):
            return DecisionReason.NO_UPDATE_AVAILABLE
        if blocked:
            return DecisionReason.BLOCKED
        if is_too_soon(context.state, context.now, config.throttle_duration):
            return DecisionReason.TOO_SOON
        if already_ignored(context.state, feed.offered_version):
            return DecisionReason.ALREADY_IGNORED
        return DecisionReason.UPDATE_AVAILABLE

    def evaluate(self, context: DecisionContext) -> Decision:
        config = context.config
        feed = context.feed
        min_app_version = context.min_app_version
        blocked = below_min_app_version(context.installed_version, min_app_version) or feed.is_critical

        reason = self._reason(context, blocked)
        should_show = reason in {
            DecisionReason.DEBUG_OVERRIDE,
            DecisionReason.BLOCKED,
            DecisionReason.UPDATE_AVAILABLE,
        }
        logger.debug(
            "Decision: show=%s reason=%s blocked=%s installed=%s latest=%s min=%s",
            should_show,
            reason.value,
            blocked,
            context.installed_version,
            feed.offered_version,
            min_app_version,
        )

        decision = Decision(
            should_show=should_show,
            blocked=blocked,
            reason=reason,
            installed_version=context.installed_version,
            latest_version=feed.offered_version,
            min_app_version=min_app_version,
            listing_url=feed.listing_url,
            release_notes=feed.release_notes if config.show_release_notes and feed.release_notes else None,
            show_ignore=config.show_ignore and not blocked,
            show_later=config.show_later and not blocked,
        )
        self._notify(decision)
        return decision

    def _notify(self, decision: Decision) -> None:
        if self.observer is None:
            return
        event = DecisionEvent(
            should_show=decision.should_show,
            min_app_version=decision.min_app_version,
            installed_version=decision.installed_version,
            latest_version=decision.latest_version,
        )
        try:
            self.observer(event)
        except Exception:  # noqa: BLE001
            logger.exception("Decision observer failed")
