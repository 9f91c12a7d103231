from __future__ import annotations

import logging
from dataclasses import dataclass

from upgrader.services.versions import Version, parse_version, try_parse_version
from upgrader.version import AppIdentity

logger = logging.getLogger(__name__)


class FeedFetchError(RuntimeError):
    pass


@dataclass(frozen=True)
class Locale:
    country_code: str = "US"
    language_code: str = "en"


@dataclass(frozen=True)
class AppcastItem:
    version: str
    critical: bool = False
    min_app_version: str | None = None
    release_notes: str | None = None
    file_url: str | None = None
    os: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class FeedResult:
    latest_version: Version | None = None
    listing_url: str | None = None
    release_notes: str | None = None
    min_app_version: Version | None = None
    is_critical: bool = False
    critical_version: Version | None = None

    @property
    def offered_version(self) -> Version | None:
        """The version a prompt should offer: the critical release when it outranks the best one."""
        if self.is_critical and self.critical_version is not None:
            if self.latest_version is None or self.critical_version > self.latest_version:
                return self.critical_version
        return self.latest_version

    @classmethod
    def empty(cls) -> FeedResult:
        return cls()

    @classmethod
    def from_listing(
        cls,
        latest_version: str | None,
        listing_url: str | None = None,
        release_notes: str | None = None,
        min_app_version: str | None = None,
    ) -> FeedResult:
        return cls(
            latest_version=try_parse_version(latest_version),
            listing_url=listing_url or None,
            release_notes=release_notes or None,
            min_app_version=try_parse_version(min_app_version),
        )


class FeedProvider:
    name: str

    async def fetch(self, identity: AppIdentity, locale: Locale) -> list[AppcastItem]:
        raise NotImplementedError


class StaticFeedProvider(FeedProvider):
    name = "static"

    def __init__(self, items: list[AppcastItem] | None = None):
        self.items = list(items or [])

    async def fetch(self, identity: AppIdentity, locale: Locale) -> list[AppcastItem]:  # noqa: ARG002
        return list(self.items)


def _highest(entries: list[tuple[Version, AppcastItem]]) -> tuple[Version, AppcastItem] | None:
    best: tuple[Version, AppcastItem] | None = None
    for entry in entries:
        # Strictly greater keeps the first entry on ties.
        if best is None or entry[0] > best[0]:
            best = entry
    return best


def normalize_feed(items: list[AppcastItem], installed_version: Version | None) -> FeedResult:
    parsed: list[tuple[Version, AppcastItem]] = []
    for item in items:
        try:
            parsed.append((parse_version(item.version), item))
        except ValueError as exc:
            logger.warning("Skipping feed entry with bad version %r: %s", item.version, exc)

    critical = [entry for entry in parsed if entry[1].critical]
    regular = [entry for entry in parsed if not entry[1].critical]

    best = _highest(regular or parsed)
    critical_best = _highest(critical)
    if best is None:
        return FeedResult.empty()

    is_critical = (
        critical_best is not None
        and installed_version is not None
        and installed_version < critical_best[0]
    )

    best_version, best_item = best
    logger.debug(
        "Feed best item %s, critical item %s, critical update: %s",
        best_version,
        critical_best[0] if critical_best else None,
        is_critical,
    )
    return FeedResult(
        latest_version=best_version,
        listing_url=best_item.file_url or None,
        release_notes=best_item.release_notes or None,
        min_app_version=try_parse_version(best_item.min_app_version),
        is_critical=is_critical,
        critical_version=critical_best[0] if critical_best else None,
    )
