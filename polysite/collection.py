"""Locale-scoped collection buckets built from published content."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace

from .config import I18n
from .content import ContentFile, collate_key, slugify
from .meta import MetaEngine
from .utils import text, timestamp

COLLECTION_FLAGS = {
    "is_tag": "tag",
    "is_category": "category",
    "is_author": "author",
    "is_series": "series",
    "is_home": "home",
}


@dataclass(frozen=True)
class CollectionEntry:
    id: str
    title: str
    date: object
    description: str
    cover: str
    cover_alt: str
    cover_caption: str
    reading_time: int
    date_display: str | None
    canonical: str
    type: str = ""
    series_title: str = ""

    @property
    def timestamp(self) -> float:
        return timestamp(self.date)


@dataclass(frozen=True)
class IndexEntry:
    id: str
    lang: str
    title: str
    canonical: str


Collections = dict[str, dict[str, tuple[CollectionEntry, ...]]]
ContentIndex = dict[str, dict[str, IndexEntry]]


def entry_from_file(file: ContentFile, meta: MetaEngine, i18n: I18n) -> CollectionEntry:
    summary = file.summary
    return CollectionEntry(
        id=summary.id,
        title=summary.title,
        date=summary.date,
        description=summary.description,
        cover=summary.cover,
        cover_alt=summary.cover_alt,
        cover_caption=summary.cover_caption,
        reading_time=summary.reading_time,
        date_display=i18n.format_date(summary.date, file.lang),
        canonical=meta.build_content_url(file.canonical, file.lang, file.slug),
    )


def resolve_series_titles(files: Iterable[ContentFile]) -> dict[tuple[str, str], str]:
    titles: dict[tuple[str, str], str] = {}
    for file in files:
        if file.is_eligible and file.series and file.series_title:
            titles.setdefault((file.lang, file.series), file.series_title)
    return titles


def add_collection_entry(
    store: dict[str, list[CollectionEntry]], key: str, entry: CollectionEntry, entry_type: str
) -> None:
    store.setdefault(key, []).append(replace(entry, type=entry_type))


def sort_entries(entries: Iterable[CollectionEntry]) -> list[CollectionEntry]:
    # stable sort twice: title ascending, then date descending
    ordered = sorted(entries, key=lambda entry: collate_key(entry.title))
    return sorted(ordered, key=lambda entry: entry.timestamp, reverse=True)


def sort_collection_entries(collections: Mapping[str, Mapping[str, Iterable[CollectionEntry]]]) -> Collections:
    return {
        lang: {key: tuple(sort_entries(entries)) for key, entries in buckets.items()}
        for lang, buckets in collections.items()
    }


def build_collections(files: Iterable[ContentFile], meta: MetaEngine) -> Collections:
    files = [file for file in files if file.is_eligible]
    series_titles = resolve_series_titles(files)
    pages_by_lang: dict[str, dict[str, list[CollectionEntry]]] = {}
    for file in files:
        entry = entry_from_file(file, meta, meta.i18n)
        store = pages_by_lang.setdefault(file.lang, {})

        if file.is_post_template and file.is_featured:
            add_collection_entry(store, "home", entry, "home")
        if file.category:
            add_collection_entry(store, file.category, entry, "category")
        for tag in file.tags:
            add_collection_entry(store, tag, entry, "tag")
        if file.series:
            series_title = series_titles.get((file.lang, file.series)) or file.series_label
            add_collection_entry(
                store, file.series, replace(entry, series_title=series_title), "series"
            )
    return sort_collection_entries(pages_by_lang)


def dedupe_collection_items(items: Sequence[CollectionEntry]) -> list[CollectionEntry]:
    """Drop repeated ids from one bucket, keeping the first position.

    A later duplicate replaces the kept entry only when it carries a series
    title and the kept one does not. Entries without an id are kept as-is.
    """
    seen: dict[str, int] = {}
    order: list[CollectionEntry] = []
    for item in items:
        if not item.id:
            order.append(item)
            continue
        existing_index = seen.get(item.id)
        if existing_index is None:
            seen[item.id] = len(order)
            order.append(item)
            continue
        if item.series_title and not order[existing_index].series_title:
            order[existing_index] = item
    return order


def build_content_index(files: Iterable[ContentFile], meta: MetaEngine) -> ContentIndex:
    index: ContentIndex = {}
    for file in files:
        if not file.is_eligible or not file.id:
            continue
        index.setdefault(file.id, {})[file.lang] = IndexEntry(
            id=file.id,
            lang=file.lang,
            title=file.title,
            canonical=meta.build_content_url(file.canonical, file.lang, file.slug),
        )
    return index


def resolve_listing_key(front: Mapping | None) -> str:
    if not front:
        return ""
    for field_name in ("listKey", "slug", "category", "id"):
        value = front.get(field_name)
        if not isinstance(value, str):
            continue
        normalized = slugify(value)
        if normalized:
            return normalized
    return ""


def resolve_listing_empty(front: Mapping | None, lang: str, default_lang: str) -> str:
    if not front:
        return ""
    listing_empty = front.get("listingEmpty")
    if isinstance(listing_empty, str):
        return listing_empty.strip()
    if isinstance(listing_empty, Mapping):
        return text(listing_empty.get(lang)) or text(listing_empty.get(default_lang))
    return ""


def resolve_listing_heading(front: Mapping | None) -> str:
    if not front:
        return ""
    return text(front.get("listHeading")) or text(front.get("title"))


def _explicit_type(front: Mapping, items: Sequence[CollectionEntry], fallback: str) -> str:
    for field_name in ("collectionType", "listType", "type"):
        value = text(front.get(field_name)).lower()
        if value:
            return value
    return ""


def _entry_type(front: Mapping, items: Sequence[CollectionEntry], fallback: str) -> str:
    return next((item.type for item in items if item.type), "")


def _fallback_type(front: Mapping, items: Sequence[CollectionEntry], fallback: str) -> str:
    return (fallback or "").strip().lower()


COLLECTION_TYPE_STRATEGIES: tuple[Callable[[Mapping, Sequence[CollectionEntry], str], str], ...] = (
    _explicit_type,
    _entry_type,
    _fallback_type,
)


def resolve_collection_type(
    front: Mapping | None, items: Sequence[CollectionEntry], fallback: str = ""
) -> str:
    front = front or {}
    for strategy in COLLECTION_TYPE_STRATEGIES:
        value = strategy(front, items, fallback)
        if value:
            return value
    return ""


def collection_flags(collection_type: str) -> dict[str, bool]:
    return {flag: collection_type == value for flag, value in COLLECTION_FLAGS.items()}


def bucket_items(collections: Collections, lang: str, key: str) -> list[CollectionEntry]:
    if not key:
        return []
    return dedupe_collection_items(collections.get(lang, {}).get(key, ()))


def build_collection_listing(
    front: Mapping, lang: str, collections: Collections, default_lang: str, fallback_type: str = ""
) -> dict:
    key = resolve_listing_key(front)
    items = bucket_items(collections, lang, key)
    collection_type = resolve_collection_type(front, items, fallback_type)
    return {
        "key": key,
        "lang": lang,
        "items": items,
        "has_items": bool(items),
        "empty_message": resolve_listing_empty(front, lang, default_lang),
        "heading": resolve_listing_heading(front),
        "type": collection_type,
        **collection_flags(collection_type),
    }


def build_series_listing(front: Mapping, lang: str, content_index: ContentIndex) -> dict:
    related = front.get("related")
    related = related if isinstance(related, list) else []
    series_name = text(front.get("seriesTitle")) or text(front.get("series"))
    current_id = text(front.get("id"))
    front_lang = text(front.get("lang"))
    items = []
    for value in related:
        value = text(value)
        if not value:
            items.append(
                {"id": "", "label": "...", "url": "", "has_url": False, "is_current": False, "is_placeholder": True}
            )
            continue
        is_current = value == current_id
        lookup = content_index.get(value) or {}
        entry = lookup.get(lang) or lookup.get(front_lang) or next(iter(lookup.values()), None)
        if entry is not None:
            label = entry.title
        elif is_current:
            label = text(front.get("title")) or value
        else:
            label = value
        url = entry.canonical if entry is not None else ""
        items.append(
            {
                "id": value,
                "label": label,
                "url": url,
                "has_url": bool(url),
                "is_current": is_current,
                "is_placeholder": False,
            }
        )
    return {
        "label": series_name,
        "has_label": bool(series_name),
        "has_items": bool(items),
        "items": items,
    }


def collection_slug(pattern: str | None, key: str) -> str:
    if pattern and "{{key}}" in pattern:
        return pattern.replace("{{key}}", key)
    return pattern or key


def resolve_collection_display_key(config_name: str, key: str, items: Sequence[CollectionEntry]) -> str:
    if config_name == "series":
        for entry in items:
            if entry.series_title.strip():
                return entry.series_title.strip()
    return key


def build_footer_tags(
    collections: Collections, lang: str, limit: int, tag_url: Callable[[str, str], str | None]
) -> list[dict]:
    results = []
    for key, items in collections.get(lang, {}).items():
        count = sum(1 for entry in items if entry.type == "tag")
        if not count:
            continue
        url = tag_url(key, lang)
        if not url:
            continue
        results.append({"key": key, "count": count, "url": url})
    results.sort(key=lambda item: collate_key(item["key"]))
    results.sort(key=lambda item: item["count"], reverse=True)
    if limit > 0:
        return results[:limit]
    return results


def build_footer_policies(files: Iterable[ContentFile], meta: MetaEngine) -> dict[str, tuple[dict, ...]]:
    policies: dict[str, list[dict]] = {}
    for file in files:
        if not file.is_eligible or file.category != "policy":
            continue
        policies.setdefault(file.lang, []).append(
            {
                "lang": file.lang,
                "key": file.id,
                "label": file.menu_label,
                "url": meta.build_content_url(file.canonical, file.lang, file.slug),
            }
        )
    return {
        lang: tuple(sorted(items, key=lambda item: collate_key(item["label"])))
        for lang, items in policies.items()
    }
