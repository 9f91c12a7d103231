from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from upgrader.config import get_settings
from upgrader.services.appcast import AppcastConfiguration, current_operating_system
from upgrader.services.storage import BACKENDS
from upgrader.services.versions import InvalidVersionFormat, parse_version


@dataclass
class StartupCheckResult:
    ok: bool
    errors: list[str]
    warnings: list[str]


def _is_writable_path(path: Path) -> bool:
    if path.exists():
        return os.access(path, os.W_OK)
    try:
        path.mkdir(parents=True, exist_ok=True)
        test_file = path / ".write_test"
        test_file.write_text("ok", encoding="utf-8")
        test_file.unlink(missing_ok=True)
        return True
    except OSError:
        return False


def run_startup_preflight() -> StartupCheckResult:
    settings = get_settings()
    errors: list[str] = []
    warnings: list[str] = []

    backend = settings.storage_backend.strip().lower()
    if backend not in BACKENDS:
        errors.append(f"Unsupported storage backend: {settings.storage_backend}")
    elif backend == "memory":
        warnings.append("Memory storage backend configured; alert history is lost on restart.")
    elif settings.database_url.startswith("sqlite:///"):
        sqlite_path = settings.database_url.replace("sqlite:///", "", 1)
        db_parent = Path(sqlite_path).expanduser().parent
        if not _is_writable_path(db_parent):
            errors.append(f"Database directory is not writable: {db_parent.resolve()}")
    else:
        warnings.append("Non-sqlite database configured; startup write checks skipped.")

    if settings.min_app_version:
        try:
            parse_version(settings.min_app_version)
        except InvalidVersionFormat as exc:
            errors.append(f"Minimum app version is invalid: {exc}")

    appcast = AppcastConfiguration(url=settings.update_feed_url.strip() or None, supported_os=settings.supported_os)
    if not appcast.url:
        warnings.append("Set UPGRADER_UPDATE_FEED_URL to enable update checks.")
    elif not appcast.applies_to(current_operating_system()):
        warnings.append(f"Update feed does not list this OS ({current_operating_system()}); checks are disabled.")

    if settings.debug_display_always or settings.debug_display_once:
        warnings.append("Debug display override is enabled; the upgrade prompt ignores throttling.")

    if settings.throttle_duration.total_seconds() < 0:
        errors.append("Throttle duration must not be negative.")

    return StartupCheckResult(ok=not errors, errors=errors, warnings=warnings)
