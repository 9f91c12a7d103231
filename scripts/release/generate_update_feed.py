from __future__ import annotations

import argparse
import json
from pathlib import Path


def build_item(args: argparse.Namespace) -> dict:
    item = {
        "version": args.version,
        "title": args.title or f"Version {args.version}",
        "download_url": args.download_url,
        "notes": args.notes,
        "critical": args.critical,
    }
    if args.min_app_version:
        item["min_app_version"] = args.min_app_version
    if args.os:
        item["os"] = args.os
    return item


def load_feed(path: Path, channel: str) -> dict:
    if not path.exists():
        return {"channel": channel, "items": []}
    payload = json.loads(path.read_text(encoding="utf-8"))
    if "items" not in payload and isinstance(payload.get("latest"), dict):
        payload = {"channel": payload.get("channel", channel), "items": [payload["latest"]]}
    payload.setdefault("items", [])
    return payload


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Add a release to an update feed (appcast JSON)")
    parser.add_argument("--version", required=True)
    parser.add_argument("--download-url", required=True)
    parser.add_argument("--channel", default="stable")
    parser.add_argument("--title", default="")
    parser.add_argument("--notes", default="")
    parser.add_argument("--critical", action="store_true")
    parser.add_argument("--min-app-version", default="")
    parser.add_argument("--os", default="", help="Restrict this item to one OS (macos, windows, linux, ...)")
    parser.add_argument("--output", default="releases/stable/appcast.json")
    args = parser.parse_args(argv)

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = load_feed(output_path, args.channel)
    items = [
        item
        for item in payload["items"]
        if not (item.get("version") == args.version and item.get("os") == (args.os or None))
    ]
    items.insert(0, build_item(args))
    payload["items"] = items

    output_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    print(f"Wrote update feed: {output_path} ({len(items)} item(s))")


if __name__ == "__main__":
    main()
