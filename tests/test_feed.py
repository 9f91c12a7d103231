import asyncio

from upgrader.services.feed import (
    AppcastItem,
    FeedResult,
    Locale,
    StaticFeedProvider,
    normalize_feed,
)
from upgrader.services.versions import parse_version
from upgrader.version import AppIdentity


def test_best_item_is_highest_non_critical_version():
    items = [
        AppcastItem(version="1.1.0", release_notes="old", file_url="https://example.com/1.1"),
        AppcastItem(version="1.3.0", release_notes="new", file_url="https://example.com/1.3"),
        AppcastItem(version="1.2.0"),
    ]

    feed = normalize_feed(items, parse_version("1.0.0"))

    assert feed.latest_version == parse_version("1.3.0")
    assert feed.listing_url == "https://example.com/1.3"
    assert feed.release_notes == "new"
    assert feed.is_critical is False


def test_ties_keep_first_entry():
    items = [
        AppcastItem(version="2.0.0", file_url="https://example.com/first"),
        AppcastItem(version="2.0", file_url="https://example.com/second"),
    ]

    feed = normalize_feed(items, parse_version("1.0.0"))

    assert feed.listing_url == "https://example.com/first"


def test_critical_item_marks_update_critical_only_when_installed_is_older():
    items = [
        AppcastItem(version="1.5.0", critical=True, release_notes="security fix"),
        AppcastItem(version="1.6.0"),
    ]

    older = normalize_feed(items, parse_version("1.4.0"))
    newer = normalize_feed(items, parse_version("1.5.0"))

    assert older.is_critical is True
    assert older.latest_version == parse_version("1.6.0")
    assert newer.is_critical is False


def test_best_item_fields_are_never_filled_from_critical_item():
    items = [
        AppcastItem(version="1.5.0", critical=True, release_notes="critical notes", file_url="https://example.com/c"),
        AppcastItem(version="1.4.0"),
    ]

    feed = normalize_feed(items, parse_version("1.0.0"))

    assert feed.latest_version == parse_version("1.4.0")
    assert feed.release_notes is None
    assert feed.listing_url is None


def test_critical_version_is_offered_when_it_outranks_best_item():
    items = [AppcastItem(version="1.1.0"), AppcastItem(version="1.2.0", critical=True)]

    feed = normalize_feed(items, parse_version("1.1.0"))

    assert feed.latest_version == parse_version("1.1.0")
    assert feed.critical_version == parse_version("1.2.0")
    assert feed.is_critical is True
    assert feed.offered_version == parse_version("1.2.0")


def test_offered_version_is_best_item_when_not_critical():
    items = [AppcastItem(version="1.1.0"), AppcastItem(version="1.2.0", critical=True)]

    feed = normalize_feed(items, parse_version("1.2.0"))

    assert feed.is_critical is False
    assert feed.offered_version == parse_version("1.1.0")


def test_all_critical_entries_still_produce_a_best_item():
    items = [AppcastItem(version="3.0.0", critical=True, min_app_version="2.5.0")]

    feed = normalize_feed(items, parse_version("2.0.0"))

    assert feed.latest_version == parse_version("3.0.0")
    assert feed.min_app_version == parse_version("2.5.0")
    assert feed.is_critical is True


def test_unparsable_entries_are_skipped():
    items = [AppcastItem(version="banana"), AppcastItem(version="1.2.0")]

    feed = normalize_feed(items, parse_version("1.0.0"))

    assert feed.latest_version == parse_version("1.2.0")


def test_unknown_installed_version_is_never_critical():
    feed = normalize_feed([AppcastItem(version="1.0.0", critical=True)], None)
    assert feed.is_critical is False


def test_empty_feed_has_no_latest_version():
    assert normalize_feed([], parse_version("1.0.0")) == FeedResult.empty()
    assert normalize_feed([AppcastItem(version="??")], parse_version("1.0.0")).latest_version is None


def test_from_listing_parses_marketplace_values():
    feed = FeedResult.from_listing("2.1", "https://store.example.com/app", "", "not-a-version")
    assert feed.latest_version == parse_version("2.1.0")
    assert feed.release_notes is None
    assert feed.min_app_version is None


def test_static_provider_returns_copy_of_items():
    provider = StaticFeedProvider([AppcastItem(version="1.0.0")])
    items = asyncio.run(provider.fetch(AppIdentity(package_name="demo"), Locale()))
    items.clear()
    assert len(provider.items) == 1
