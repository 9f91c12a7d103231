from __future__ import annotations

from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, metadata, version


DEFAULT_VERSION = "0.1.0"


@dataclass(frozen=True)
class AppIdentity:
    package_name: str
    app_name: str = ""
    version: str = DEFAULT_VERSION


def get_app_version(distribution: str = "upgrader") -> str:
    try:
        return version(distribution)
    except PackageNotFoundError:
        return DEFAULT_VERSION


class InstalledVersionProvider:
    """Reads the installed version from distribution metadata."""

    def __init__(self, distribution: str = "upgrader", app_name: str | None = None):
        self.distribution = distribution
        self.app_name = app_name

    def current_version(self) -> str:
        return get_app_version(self.distribution)

    def identity(self) -> AppIdentity:
        app_name = self.app_name
        if app_name is None:
            try:
                app_name = metadata(self.distribution).get("Name", self.distribution)
            except PackageNotFoundError:
                app_name = self.distribution
        return AppIdentity(
            package_name=self.distribution,
            app_name=app_name,
            version=self.current_version(),
        )
