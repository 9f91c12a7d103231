from fastapi import FastAPI

from upgrader.config import get_settings
from upgrader.logging_setup import setup_logging
from upgrader.routers.upgrade_router import router as upgrade_router
from upgrader.services.startup_checks import StartupCheckResult, run_startup_preflight
from upgrader.version import get_app_version

app = FastAPI(title=get_settings().app_name)
app.include_router(upgrade_router)
STARTUP_RESULT = StartupCheckResult(ok=True, errors=[], warnings=[])


@app.on_event("startup")
def on_startup() -> None:
    global STARTUP_RESULT
    settings = get_settings()
    setup_logging(settings.log_level)
    STARTUP_RESULT = run_startup_preflight()


@app.get("/api/health")
def health():
    settings = get_settings()
    return {
        "status": "ok" if STARTUP_RESULT.ok else "degraded",
        "app_version": get_app_version(settings.distribution_name),
        "storage_backend": settings.storage_backend,
        "update_feed_configured": bool(settings.update_feed_url.strip()),
        "startup_errors": STARTUP_RESULT.errors,
        "startup_warnings": STARTUP_RESULT.warnings,
    }


@app.get("/api/app/meta")
def app_meta():
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "app_version": get_app_version(settings.distribution_name),
        "throttle_seconds": int(settings.throttle_duration.total_seconds()),
        "startup_ok": STARTUP_RESULT.ok,
        "startup_errors": STARTUP_RESULT.errors,
        "startup_warnings": STARTUP_RESULT.warnings,
    }
