from __future__ import annotations

import logging
import platform
from dataclasses import dataclass

import httpx

from upgrader.services.feed import AppcastItem, FeedFetchError, FeedProvider, Locale
from upgrader.version import AppIdentity

logger = logging.getLogger(__name__)

_OS_ALIASES = {
    "darwin": "macos",
    "macos": "macos",
    "windows": "windows",
    "linux": "linux",
    "android": "android",
    "ios": "ios",
}


def current_operating_system() -> str:
    system = platform.system().strip().lower()
    return _OS_ALIASES.get(system, system)


@dataclass(frozen=True)
class AppcastConfiguration:
    url: str | None = None
    supported_os: list[str] | None = None

    def applies_to(self, operating_system: str) -> bool:
        if not self.url:
            return False
        # No listed OS means every OS is supported.
        if self.supported_os is None:
            return True
        return operating_system.lower() in {name.lower() for name in self.supported_os}


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


def _optional_str(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_appcast_items(payload) -> list[AppcastItem]:
    """Read release entries from an appcast JSON document.

    Accepts ``{"items": [...]}`` as well as the single-entry
    ``{"latest": {...}}`` form written by older release scripts.
    """
    if not isinstance(payload, dict):
        raise FeedFetchError("Appcast payload is not a JSON object")

    raw_items = payload.get("items")
    if raw_items is None:
        latest = payload.get("latest")
        raw_items = [latest] if isinstance(latest, dict) else []
    if not isinstance(raw_items, list):
        raise FeedFetchError("Appcast 'items' must be a list")

    items: list[AppcastItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        version = _optional_str(raw.get("version"))
        if not version:
            logger.warning("Skipping appcast entry without a version: %s", raw)
            continue
        items.append(
            AppcastItem(
                version=version,
                critical=_as_bool(raw.get("critical", False)),
                min_app_version=_optional_str(raw.get("min_app_version")),
                release_notes=_optional_str(raw.get("notes")),
                file_url=_optional_str(raw.get("download_url")),
                os=_optional_str(raw.get("os")),
                title=_optional_str(raw.get("title")),
            )
        )
    return items


class AppcastFeedProvider(FeedProvider):
    name = "appcast"

    def __init__(
        self,
        config: AppcastConfiguration,
        timeout_seconds: float = 4.0,
        client: httpx.AsyncClient | None = None,
        operating_system: str | None = None,
    ):
        self.config = config
        self.timeout_seconds = timeout_seconds
        self.client = client
        self.operating_system = (operating_system or current_operating_system()).lower()

    def is_enabled(self) -> bool:
        return self.config.applies_to(self.operating_system)

    async def _get_json(self, url: str, params: dict[str, str]):
        if self.client is not None:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()

    async def fetch(self, identity: AppIdentity, locale: Locale) -> list[AppcastItem]:
        if not self.is_enabled():
            logger.debug("Appcast not configured for %s", self.operating_system)
            return []

        params = {"country": locale.country_code, "lang": locale.language_code}
        try:
            payload = await self._get_json(self.config.url, params)
        except httpx.HTTPError as exc:
            raise FeedFetchError(f"Appcast request failed: {exc}") from exc
        except ValueError as exc:
            raise FeedFetchError(f"Appcast is not valid JSON: {exc}") from exc

        items = [
            item
            for item in parse_appcast_items(payload)
            if item.os is None or item.os.lower() == self.operating_system
        ]
        logger.info("Appcast for %s returned %d item(s)", identity.package_name, len(items))
        return items
