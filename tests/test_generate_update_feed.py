import importlib.util
import json
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "release" / "generate_update_feed.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("generate_update_feed", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_generated_feed_is_readable_by_appcast_parser(tmp_path, capsys):
    from upgrader.services.appcast import parse_appcast_items

    script = _load_script()
    output = tmp_path / "appcast.json"

    script.main(["--version", "1.1.0", "--download-url", "https://example.com/1.1", "--output", str(output)])
    script.main(
        [
            "--version",
            "1.2.0",
            "--download-url",
            "https://example.com/1.2",
            "--critical",
            "--min-app-version",
            "1.0.0",
            "--output",
            str(output),
        ]
    )
    capsys.readouterr()

    items = parse_appcast_items(json.loads(output.read_text(encoding="utf-8")))

    assert [item.version for item in items] == ["1.2.0", "1.1.0"]
    assert items[0].critical is True
    assert items[0].min_app_version == "1.0.0"


def test_republishing_a_version_replaces_it(tmp_path, capsys):
    script = _load_script()
    output = tmp_path / "appcast.json"
    output.write_text(json.dumps({"channel": "test", "latest": {"version": "0.9.0"}}), encoding="utf-8")

    for notes in ("first", "second"):
        script.main(
            ["--version", "1.0.0", "--download-url", "https://x/1.0", "--notes", notes, "--output", str(output)]
        )
    capsys.readouterr()

    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["channel"] == "test"
    assert [item["version"] for item in payload["items"]] == ["1.0.0", "0.9.0"]
    assert payload["items"][0]["notes"] == "second"
