"""Tests for collection buckets, listings and footer data."""

from __future__ import annotations

from polysite.collection import (
    build_collection_listing,
    build_collections,
    build_content_index,
    build_footer_policies,
    build_footer_tags,
    build_series_listing,
    collection_flags,
    collection_slug,
    dedupe_collection_items,
    resolve_collection_display_key,
    resolve_collection_type,
    resolve_listing_empty,
    resolve_listing_key,
    sort_entries,
)
from polysite.content import collate_key
from polysite.meta import MetaEngine


def test_bucket_sorted_by_date_descending(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="winter", title="Winter", category="life", date="2024-01-01"),
        make_file(id="summer", title="Summer", category="life", date="2024-06-01"),
    ]
    collections = build_collections(files, meta)
    assert [entry.id for entry in collections["en"]["life"]] == ["summer", "winter"]
    assert all(entry.type == "category" for entry in collections["en"]["life"])


def test_equal_dates_fall_back_to_collated_title(make_entry) -> None:
    entries = [
        make_entry("b", "beta", "2024-01-01"),
        make_entry("a", "Álpha", "2024-01-01"),
        make_entry("c", "gamma", "2024-02-01"),
    ]
    ordered = sort_entries(entries)
    assert [entry.id for entry in ordered] == ["c", "a", "b"]
    same_day = [entry for entry in ordered if entry.date == "2024-01-01"]
    keys = [collate_key(entry.title) for entry in same_day]
    assert keys == sorted(keys)


def test_unparseable_dates_sort_last(make_entry) -> None:
    ordered = sort_entries([make_entry("x", date="not a date"), make_entry("y", date="2020-01-01")])
    assert [entry.id for entry in ordered] == ["y", "x"]


def test_ineligible_files_are_excluded(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="ok", category="life", tags=["python"]),
        make_file(id="draft", status="draft", category="life", tags=["python"]),
        make_file(id="broken", is_valid=False, category="life"),
    ]
    collections = build_collections(files, meta)
    ids = {entry.id for buckets in collections.values() for items in buckets.values() for entry in items}
    assert ids == {"ok"}
    assert set(build_content_index(files, meta)) == {"ok"}


def test_home_bucket_only_holds_featured_posts(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="featured", template="post", featured=True),
        make_file(id="plain", template="post"),
        make_file(id="page", template="page", featured=True),
    ]
    collections = build_collections(files, meta)
    assert [entry.id for entry in collections["en"]["home"]] == ["featured"]


def test_series_title_shared_across_members(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="part-1", series="Guide", date="2024-01-01"),
        make_file(id="part-2", series="Guide", seriesTitle="My Series", date="2024-01-02"),
        make_file(id="part-3", series="Guide", date="2024-01-03"),
    ]
    bucket = dedupe_collection_items(build_collections(files, meta)["en"]["guide"])
    assert [entry.id for entry in bucket] == ["part-3", "part-2", "part-1"]
    assert {entry.series_title for entry in bucket} == {"My Series"}


def test_series_title_falls_back_to_series_name(make_file, meta: MetaEngine) -> None:
    bucket = build_collections([make_file(id="solo", series="Deep Dive")], meta)["en"]["deep-dive"]
    assert bucket[0].series_title == "Deep Dive"


def test_dedupe_prefers_later_entry_with_series_title(make_entry) -> None:
    items = [
        make_entry("a"),
        make_entry("b"),
        make_entry("a", series_title="My Series"),
        make_entry("b", series_title=""),
        make_entry(""),
        make_entry(""),
    ]
    deduped = dedupe_collection_items(items)
    assert [entry.id for entry in deduped] == ["a", "b", "", ""]
    assert deduped[0].series_title == "My Series"
    assert dedupe_collection_items(deduped) == deduped


def test_resolve_listing_key_precedence() -> None:
    assert resolve_listing_key({"listKey": "Life Notes", "slug": "x"}) == "life-notes"
    assert resolve_listing_key({"slug": "!!!", "category": "Tech"}) == "tech"
    assert resolve_listing_key({}) == ""
    assert resolve_listing_key(None) == ""


def test_resolve_listing_empty_per_locale() -> None:
    front = {"listingEmpty": {"en": "Nothing yet", "tr": ""}}
    assert resolve_listing_empty(front, "tr", "en") == "Nothing yet"
    assert resolve_listing_empty({"listingEmpty": " Empty "}, "en", "en") == "Empty"
    assert resolve_listing_empty({}, "en", "en") == ""


def test_collection_type_strategies(make_entry) -> None:
    tagged = [make_entry("a", type=""), make_entry("b", type="tag")]
    assert resolve_collection_type({"collectionType": "Series"}, tagged, "home") == "series"
    assert resolve_collection_type({}, tagged, "home") == "tag"
    assert resolve_collection_type({}, [], " Home ") == "home"
    assert resolve_collection_type({}, [], "") == ""
    flags = collection_flags("tag")
    assert flags["is_tag"] and not flags["is_category"]


def test_build_collection_listing(make_file, meta: MetaEngine) -> None:
    collections = build_collections([make_file(id="p", tags=["Python"])], meta)
    listing = build_collection_listing({"listKey": "python", "title": "Python"}, "en", collections, "en")
    assert listing["key"] == "python"
    assert listing["has_items"]
    assert listing["heading"] == "Python"
    assert listing["type"] == "tag"
    assert listing["is_tag"]


def test_series_listing_marks_current_and_placeholders(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="part-1", title="Part One", slug="part-1"),
        make_file(id="part-1", title="Birinci", slug="birinci", lang="tr"),
    ]
    index = build_content_index(files, meta)
    front = {"id": "part-2", "title": "Part Two", "series": "Guide", "related": ["part-1", "part-2", "", "part-9"]}
    listing = build_series_listing(front, "tr", index)
    labels = [item["label"] for item in listing["items"]]
    assert labels == ["Birinci", "Part Two", "...", "part-9"]
    assert listing["items"][0]["url"] == "/tr/birinci/"
    assert listing["items"][1]["is_current"]
    assert listing["items"][2]["is_placeholder"]
    assert not listing["items"][3]["has_url"]
    assert listing["label"] == "Guide"


def test_collection_slug_and_display_key(make_entry) -> None:
    assert collection_slug("tag/{{key}}", "python") == "tag/python"
    assert collection_slug("topics", "python") == "topics"
    assert collection_slug(None, "python") == "python"
    items = [make_entry("a", series_title=""), make_entry("b", series_title="My Series")]
    assert resolve_collection_display_key("series", "guide", items) == "My Series"
    assert resolve_collection_display_key("tags", "guide", items) == "guide"


def test_footer_tags_ordered_by_count_then_key(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="a", tags=["zeta", "alpha"]),
        make_file(id="b", tags=["zeta", "beta"]),
        make_file(id="c", category="life"),
    ]
    collections = build_collections(files, meta)
    tags = build_footer_tags(collections, "en", 2, lambda key, lang: f"/tag/{key}/")
    assert [(tag["key"], tag["count"]) for tag in tags] == [("zeta", 2), ("alpha", 1)]
    assert tags[0]["url"] == "/tag/zeta/"


def test_footer_policies(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="terms", title="Terms", category="Policy"),
        make_file(id="privacy", title="Privacy", category="policy"),
        make_file(id="post", title="Post", category="life"),
    ]
    policies = build_footer_policies(files, meta)
    assert [item["key"] for item in policies["en"]] == ["privacy", "terms"]
