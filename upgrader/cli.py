from __future__ import annotations

import argparse
import asyncio
import webbrowser
from collections.abc import Callable

from upgrader.config import get_settings
from upgrader.logging_setup import setup_logging
from upgrader.services.decision import Decision
from upgrader.services.factory import build_session_controller
from upgrader.services.session import SessionController, UserAction

_CHOICES = {
    "u": UserAction.UPDATE,
    "l": UserAction.LATER,
    "i": UserAction.IGNORE,
}


class ConsolePresenter:
    def __init__(self, app_name: str, read_line: Callable[[str], str] = input):
        self.app_name = app_name
        self.read_line = read_line

    def render(self, decision: Decision) -> str:
        lines = [
            f"A new version of {self.app_name} is available!",
            f"Version {decision.latest_version} is available - you have {decision.installed_version}.",
        ]
        if decision.release_notes:
            lines.extend(["", "Release notes:", decision.release_notes])
        options = ["[u]pdate now"]
        if decision.show_later:
            options.append("[l]ater")
        if decision.show_ignore:
            options.append("[i]gnore")
        lines.extend(["", "Would you like to update it now? " + " / ".join(options)])
        return "\n".join(lines)

    async def present(self, decision: Decision) -> UserAction:
        print(self.render(decision))
        try:
            answer = await asyncio.to_thread(self.read_line, "> ")
        except EOFError:
            return UserAction.DISMISSED
        action = _CHOICES.get(answer.strip().lower()[:1], UserAction.DISMISSED)
        if action is UserAction.LATER and not decision.show_later:
            return UserAction.DISMISSED
        if action is UserAction.IGNORE and not decision.show_ignore:
            return UserAction.DISMISSED
        return action


async def _check(controller: SessionController, presenter: ConsolePresenter) -> None:
    action = await controller.check_version(presenter)
    if action is None:
        decision = controller.evaluate()
        print(f"No upgrade prompt ({decision.reason.value}).")


async def _status(controller: SessionController) -> None:
    await controller.initialize()
    decision = controller.evaluate()
    state = controller.state_store.state
    print(f"installed:        {decision.installed_version or 'unknown'}")
    print(f"latest:           {decision.latest_version or 'unknown'}")
    print(f"min app version:  {decision.min_app_version or '-'}")
    print(f"blocked:          {decision.blocked}")
    print(f"should show:      {decision.should_show} ({decision.reason.value})")
    print(f"last alerted at:  {state.last_alerted_at.isoformat() if state.last_alerted_at else '-'}")
    print(f"ignored version:  {state.user_ignored_version or '-'}")


def _serve(host: str, port: int) -> None:
    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required. Install dependencies with: pip install -e .") from exc
    uvicorn.run("upgrader.main:app", host=host, port=port, reload=False, log_level="info")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Check whether an app upgrade prompt should be shown")
    parser.add_argument("command", choices=["check", "status", "reset", "serve"])
    parser.add_argument("--feed-url", default=None, help="Override UPGRADER_UPDATE_FEED_URL")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8765)
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.feed_url:
        settings = settings.model_copy(update={"update_feed_url": args.feed_url})
    setup_logging("DEBUG" if args.verbose else settings.log_level)
    if args.command == "serve":
        _serve(args.host, args.port)
        return

    controller = build_session_controller(settings)
    controller.open_listing = webbrowser.open

    if args.command == "check":
        asyncio.run(_check(controller, ConsolePresenter(settings.app_name)))
    elif args.command == "status":
        asyncio.run(_status(controller))
    else:
        asyncio.run(controller.reset())
        print("Cleared saved upgrade settings.")


if __name__ == "__main__":
    main()
