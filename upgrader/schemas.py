from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from upgrader.services.decision import Decision


def _version_text(value) -> str | None:
    return str(value) if value is not None else None


class DecisionView(BaseModel):
    should_show: bool
    blocked: bool
    reason: str
    installed_version: str | None = None
    latest_version: str | None = None
    min_app_version: str | None = None
    listing_url: str | None = None
    release_notes: str | None = None
    show_ignore: bool = True
    show_later: bool = True

    @classmethod
    def from_decision(cls, decision: Decision) -> DecisionView:
        return cls(
            should_show=decision.should_show,
            blocked=decision.blocked,
            reason=decision.reason.value,
            installed_version=_version_text(decision.installed_version),
            latest_version=_version_text(decision.latest_version),
            min_app_version=_version_text(decision.min_app_version),
            listing_url=decision.listing_url,
            release_notes=decision.release_notes,
            show_ignore=decision.show_ignore,
            show_later=decision.show_later,
        )


class UserActionRequest(BaseModel):
    action: Literal["update", "later", "ignore", "dismissed"]


class AlertStateView(BaseModel):
    last_alerted_at: str | None = None
    last_version_alerted: str | None = None
    user_ignored_version: str | None = None
