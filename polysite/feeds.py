from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .collection import (
    Collections,
    bucket_items,
    collection_slug,
    dedupe_collection_items,
    resolve_listing_key,
)
from .config import SiteConfig
from .content import ContentFile
from .meta import MetaEngine
from .pagination import paginate_listing
from .utils import cdata, lastmod_date, parse_datetime, rfc822_date, timestamp, xml_escape


@dataclass(frozen=True)
class RssEntry:
    title: str
    description: str
    link: str
    guid: str
    date: object
    category: str


@dataclass(frozen=True)
class SitemapEntry:
    loc: str
    lastmod: str | None = None


def feed_path(lang: str, default_lang: str) -> str:
    if lang == default_lang:
        return "/feed.xml"
    return f"/{lang}/feed.xml"


def collect_rss_entries(
    files: Iterable[ContentFile], meta: MetaEngine, lang: str, limit: int = 50
) -> list[RssEntry]:
    entries = []
    for file in files:
        if not file.is_eligible or not file.is_post_template or file.lang != lang:
            continue
        link = meta.canonical_url(file.header, file.lang, file.slug)
        entries.append(
            RssEntry(
                title=file.title,
                description=file.description,
                link=link,
                guid=link,
                date=file.date,
                category=file.category,
            )
        )
    entries.sort(key=lambda entry: timestamp(entry.date), reverse=True)
    if limit > 0:
        return entries[:limit]
    return entries


def latest_lastmod(values: Iterable[object]) -> str | None:
    latest = None
    for value in values:
        parsed = parse_datetime(value)
        if parsed is not None and (latest is None or parsed > latest):
            latest = parsed
    return lastmod_date(latest) if latest else None


def render_rss(
    entries: Sequence[RssEntry],
    meta: MetaEngine,
    lang: str,
    build_date: dt.datetime | None = None,
) -> str:
    config = meta.config
    i18n = meta.i18n
    site_title = i18n.t(lang, "site.title", config.author)
    site_description = i18n.t(lang, "site.description", "")
    channel_link = meta.locale_canonical_base(lang) or meta.resolve_url(i18n.home_path(lang))
    language_code = i18n.culture(lang).replace("_", "-")
    last_build = rfc822_date(build_date or dt.datetime.now(dt.timezone.utc))
    self_url = meta.resolve_url(feed_path(lang, i18n.default))
    author_field = f"{config.email} ({config.author})" if config.email and config.author else (
        config.email or config.author
    )

    links = [f'    <atom:link href="{xml_escape(self_url)}" rel="self" type="application/rss+xml" />']
    for code in i18n.supported:
        if code == lang:
            continue
        alternate_url = meta.resolve_url(feed_path(code, i18n.default))
        links.append(
            f'    <atom:link href="{xml_escape(alternate_url)}" rel="alternate" '
            f'hreflang="{xml_escape(code)}" type="application/rss+xml" />'
        )

    items = []
    for entry in entries:
        description = entry.description.strip()
        published = parse_datetime(entry.date)
        lines = [
            "  <item>",
            f"    <title>{xml_escape(entry.title)}</title>",
            f"    <link>{xml_escape(entry.link)}</link>",
            f'    <guid isPermaLink="true">{xml_escape(entry.guid)}</guid>',
            f"    <pubDate>{rfc822_date(published)}</pubDate>" if published else "",
            f"    <description>{cdata(description)}</description>" if description else "",
            f"    <author>{xml_escape(author_field)}</author>" if author_field else "",
            f"    <category>{xml_escape(entry.category)}</category>" if entry.category else "",
            "  </item>",
        ]
        items.append("\n".join(line for line in lines if line))

    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
            "  <channel>",
            f"    <title>{xml_escape(site_title)}</title>",
            f"    <link>{xml_escape(channel_link)}</link>",
            f"    <description>{xml_escape(site_description)}</description>",
            f"    <language>{xml_escape(language_code)}</language>",
            f"    <lastBuildDate>{last_build}</lastBuildDate>",
            *links,
            *items,
            "  </channel>",
            "</rss>",
            "",
        ]
    )


def build_rss_documents(
    files: Sequence[ContentFile], meta: MetaEngine, build_date: dt.datetime | None = None
) -> dict[str, str]:
    """Feed XML per locale keyed by output path; locales without posts are skipped."""
    i18n = meta.i18n
    documents = {}
    for lang in i18n.supported or (i18n.default,):
        entries = collect_rss_entries(files, meta, lang, meta.config.feed_limit)
        if not entries:
            continue
        documents[feed_path(lang, i18n.default).lstrip("/")] = render_rss(entries, meta, lang, build_date)
    return documents


def collect_content_sitemap_entries(
    files: Iterable[ContentFile], meta: MetaEngine, collections: Collections
) -> list[SitemapEntry]:
    config = meta.config
    urls = []
    for file in files:
        if not file.is_eligible:
            continue
        base_lastmod = lastmod_date(file.updated or file.date)
        urls.append(SitemapEntry(meta.canonical_url(file.header, file.lang, file.slug), base_lastmod))

        if not config.include_paging or file.template not in {"collection", "home"}:
            continue
        items = bucket_items(collections, file.lang, resolve_listing_key(file.header))
        listings = paginate_listing(meta, file.header, file.lang, items, file.slug)
        if len(listings) < 2:
            continue
        listing_lastmod = latest_lastmod(item.date for item in items) or base_lastmod
        for listing in listings[1:]:
            urls.append(SitemapEntry(listing.canonical, listing_lastmod))
    urls.sort(key=lambda entry: entry.loc)
    return urls


def collect_dynamic_collection_sitemap_entries(
    config: SiteConfig, meta: MetaEngine, collections: Collections
) -> list[SitemapEntry]:
    urls = []
    for collection in config.collections:
        for lang, buckets in collections.items():
            pattern = collection.slug_pattern.get(lang)
            for key, source_items in buckets.items():
                items = dedupe_collection_items(source_items)
                if not items or not any(entry.type in collection.types for entry in items):
                    continue
                slug = collection_slug(pattern, key)
                loc = meta.resolve_url(meta.build_content_url(None, lang, slug))
                urls.append(SitemapEntry(loc, latest_lastmod(item.date for item in items)))
    urls.sort(key=lambda entry: entry.loc)
    return urls


def collect_feed_sitemap_entries(files: Sequence[ContentFile], meta: MetaEngine) -> list[SitemapEntry]:
    i18n = meta.i18n
    urls = []
    for lang in i18n.supported or (i18n.default,):
        entries = collect_rss_entries(files, meta, lang, 1)
        if not entries:
            continue
        loc = meta.resolve_url(feed_path(lang, i18n.default))
        urls.append(SitemapEntry(loc, lastmod_date(entries[0].date)))
    return urls


def merge_sitemap_entries(*sources: Iterable[SitemapEntry]) -> list[SitemapEntry]:
    """Deduplicate by location keeping the later lastmod, sorted by location."""
    by_loc: dict[str, SitemapEntry] = {}
    for source in sources:
        for entry in source:
            if not entry.loc:
                continue
            existing = by_loc.get(entry.loc)
            if existing is None:
                by_loc[entry.loc] = entry
                continue
            incoming_date = parse_datetime(entry.lastmod)
            if incoming_date is None:
                continue
            existing_date = parse_datetime(existing.lastmod)
            if existing_date is None or incoming_date > existing_date:
                by_loc[entry.loc] = entry
    return sorted(by_loc.values(), key=lambda entry: entry.loc)


def build_sitemap_entries(
    files: Sequence[ContentFile], meta: MetaEngine, collections: Collections
) -> list[SitemapEntry]:
    content_entries = collect_content_sitemap_entries(files, meta, collections)
    collection_entries = (
        collect_dynamic_collection_sitemap_entries(meta.config, meta, collections)
        if meta.config.include_collections
        else []
    )
    feed_entries = collect_feed_sitemap_entries(files, meta)
    return merge_sitemap_entries(content_entries, collection_entries, feed_entries)


def render_sitemap(entries: Sequence[SitemapEntry]) -> str:
    urls = []
    for entry in entries:
        parts = ["  <url>", f"    <loc>{xml_escape(entry.loc)}</loc>"]
        if entry.lastmod:
            parts.append(f"    <lastmod>{xml_escape(entry.lastmod)}</lastmod>")
        parts.append("  </url>")
        urls.append("\n".join(parts))
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            *urls,
            "</urlset>",
            "",
        ]
    )


def render_robots_txt(config: SiteConfig) -> str:
    lines = ["User-agent: *"]
    lines.extend(f"Allow: {path}" for path in config.robots_allow)
    lines.extend(f"Disallow: {path}" for path in config.robots_disallow)
    lines.extend(["", f"Sitemap: {config.url.rstrip('/')}/sitemap.xml", ""])
    return "\n".join(lines)
