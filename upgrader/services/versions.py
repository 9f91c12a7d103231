"""Semantic version parsing and ordering.

Versions follow ``MAJOR[.MINOR[.PATCH]][-PRERELEASE][+BUILD]`` with an
optional leading ``v``. Missing minor/patch components count as zero, so
``1.2`` and ``1.2.0`` are the same version. Build metadata never takes part
in ordering or equality.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(
    r"^[vV]?(?P<major>0|[1-9]\d*)"
    r"(?:\.(?P<minor>0|[1-9]\d*))?"
    r"(?:\.(?P<patch>0|[1-9]\d*))?"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


class InvalidVersionFormat(ValueError):
    pass


class Ordering(Enum):
    LESS_THAN = -1
    EQUAL = 0
    GREATER_THAN = 1


def _identifier_key(identifier: str | int) -> tuple[int, int, str]:
    # Numeric identifiers always have lower precedence than alphanumeric ones.
    if isinstance(identifier, int):
        return (0, identifier, "")
    return (1, 0, identifier)


@total_ordering
@dataclass(frozen=True)
class Version:
    major: int
    minor: int = 0
    patch: int = 0
    pre_release: tuple[str | int, ...] = ()
    build: str = field(default="", compare=False)

    @property
    def is_pre_release(self) -> bool:
        return bool(self.pre_release)

    def _precedence(self) -> tuple:
        # A release sorts above any pre-release of the same core version.
        pre = tuple(_identifier_key(part) for part in self.pre_release)
        return (self.major, self.minor, self.patch, 0 if pre else 1, pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._precedence() < other._precedence()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre_release:
            text += "-" + ".".join(str(part) for part in self.pre_release)
        if self.build:
            text += f"+{self.build}"
        return text


def parse_version(text: str) -> Version:
    if not isinstance(text, str):
        raise InvalidVersionFormat(f"Version must be a string, got {type(text).__name__}")
    match = _VERSION_RE.match(text.strip())
    if not match:
        raise InvalidVersionFormat(f"Invalid version: {text!r}")

    pre_release: list[str | int] = []
    pre = match.group("pre")
    if pre:
        for part in pre.split("."):
            if part.isdigit():
                if len(part) > 1 and part.startswith("0"):
                    raise InvalidVersionFormat(f"Invalid version: {text!r} (leading zero in {part!r})")
                pre_release.append(int(part))
            else:
                pre_release.append(part)

    return Version(
        major=int(match.group("major")),
        minor=int(match.group("minor") or 0),
        patch=int(match.group("patch") or 0),
        pre_release=tuple(pre_release),
        build=match.group("build") or "",
    )


def try_parse_version(text: str | None) -> Version | None:
    """Parse ``text`` or return None when it is blank or malformed."""
    if text is None or not str(text).strip():
        return None
    try:
        return parse_version(str(text))
    except InvalidVersionFormat as exc:
        logger.warning("Ignoring unparsable version: %s", exc)
        return None


def _coerce(value: Version | str) -> Version:
    return value if isinstance(value, Version) else parse_version(value)


def compare_versions(a: Version | str, b: Version | str) -> Ordering:
    left = _coerce(a)
    right = _coerce(b)
    if left < right:
        return Ordering.LESS_THAN
    if left == right:
        return Ordering.EQUAL
    return Ordering.GREATER_THAN
