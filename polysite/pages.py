from __future__ import annotations

import datetime as dt
import html
from collections.abc import Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .collection import (
    CollectionEntry,
    build_collection_listing,
    build_footer_tags,
    build_series_listing,
    collection_slug,
    dedupe_collection_items,
    resolve_collection_display_key,
)
from .config import DynamicCollection
from .content import ContentFile, normalize_list_spacing, slugify
from .context import BuildContext
from .feeds import build_rss_documents, build_sitemap_entries, feed_path, render_robots_txt, render_sitemap
from .menu import get_menu_data
from .meta import PageMeta
from .pagination import PaginatedListing, paginate_listing
from .render import (
    MarkdownRenderer,
    TemplateStore,
    apply_language_metadata,
    render_template,
    resolve_virtual_root,
    write_text,
)
from .utils import string_list, text

LISTING_TEMPLATES = {"collection", "home"}
DEFAULT_LAYOUT = "default"


def esc(value: object) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def build_head_meta(ctx: BuildContext, page: PageMeta, lang: str) -> str:
    lang_config = ctx.i18n.build(lang)
    meta_language = lang_config.meta_language if lang_config else lang
    lines = [
        f'<meta name="description" content="{esc(page.description)}" />',
        f'<meta name="robots" content="{esc(page.robots)}" />',
        f'<meta name="language" content="{esc(meta_language)}" />',
        f'<link rel="canonical" href="{esc(page.canonical)}" data-canonical />',
    ]
    for link in page.alternate_links:
        lines.append(f'<link rel="alternate" hreflang="{esc(link["hreflang"])}" href="{esc(link["url"])}" />')
    if page.alternates.get("default"):
        lines.append(f'<link rel="alternate" hreflang="x-default" href="{esc(page.alternates["default"])}" />')
    lines.extend(
        [
            f'<meta property="og:title" content="{esc(page.og.title)}" />',
            f'<meta property="og:description" content="{esc(page.og.description)}" />',
            f'<meta property="og:type" content="{esc(page.og.type)}" />',
            f'<meta property="og:url" content="{esc(page.og.url)}" data-og-url />',
            f'<meta property="og:image" content="{esc(page.og.image)}" />',
            f'<meta property="og:locale" content="{esc(page.og.locale)}" data-og-locale />',
        ]
    )
    for locale in page.og.alt_locale:
        lines.append(f'<meta property="og:locale:alternate" content="{esc(locale)}" data-og-locale-alt />')
    lines.extend(
        [
            f'<meta name="twitter:card" content="{esc(page.twitter.card)}" />',
            f'<meta name="twitter:title" content="{esc(page.twitter.title)}" />',
            f'<meta name="twitter:description" content="{esc(page.twitter.description)}" />',
            f'<meta name="twitter:image" content="{esc(page.twitter.image)}" />',
            f'<meta name="twitter:url" content="{esc(page.twitter.url)}" data-twitter-url />',
        ]
    )
    feed_url = ctx.meta.resolve_url(feed_path(lang, ctx.i18n.default))
    lines.append(
        f'<link rel="alternate" type="application/rss+xml" title="{esc(ctx.meta.site_title(lang))}" '
        f'href="{esc(feed_url)}" />'
    )
    if page.structured_data:
        lines.append(f'<script type="application/ld+json">{page.structured_data}</script>')
    return "\n    ".join(lines)


def build_menu(menu_data: Mapping) -> str:
    items = []
    for item in menu_data["items"]:
        active = ' class="is-active" aria-current="page"' if item["is_active"] else ""
        items.append(f'<li><a href="{esc(item["url"])}"{active}>{esc(item["label"])}</a></li>')
    if not items:
        return ""
    return f'<nav class="site-menu"><ul>{"".join(items)}</ul></nav>'


def build_listing_cards(ctx: BuildContext, items: Sequence[CollectionEntry], lang: str) -> str:
    minutes_label = ctx.i18n.t(lang, "post.readingTime", "min read")
    more_label = ctx.i18n.t(lang, "post.readMore", "Read more")
    cards = []
    for idx, entry in enumerate(items):
        delay = min(idx * 0.05, 0.3)
        title = esc(entry.title)
        url = esc(entry.canonical)
        cover = (
            f'<img class="post-cover" src="{esc(entry.cover)}" alt="{esc(entry.cover_alt)}" loading="lazy" />'
            if entry.cover
            else ""
        )
        series = f'<span class="post-series">{esc(entry.series_title)}</span>' if entry.series_title else ""
        reading = f'<span class="post-words">{entry.reading_time} {esc(minutes_label)}</span>' if entry.reading_time else ""
        cards.append(
            f'<article class="post-card" style="animation-delay: {delay:.2f}s">'
            f"{cover}"
            '<div class="post-meta"><div class="post-meta-left">'
            f'<span class="post-date">{esc(entry.date_display or "")}</span>'
            f"{reading}"
            "</div>"
            f"{series}</div>"
            f'<h2 class="post-title"><a href="{url}">{title}</a></h2>'
            f'<p class="post-summary">{esc(entry.description)}</p>'
            f'<a class="post-more" href="{url}">{esc(more_label)}</a>'
            "</article>"
        )
    return "\n".join(cards)


def build_pagination_nav(ctx: BuildContext, listing: PaginatedListing) -> str:
    if not listing.has_pagination:
        return ""
    lang = listing.lang
    prev_label = esc(ctx.i18n.t(lang, "pagination.previous", "Previous"))
    next_label = esc(ctx.i18n.t(lang, "pagination.next", "Next"))
    items = []
    if listing.has_prev:
        items.append(f'<a class="page-link" rel="prev" href="{esc(listing.prev_url)}">{prev_label}</a>')
    else:
        items.append(f'<span class="page-link is-disabled">{prev_label}</span>')
    items.append(f'<span class="page-number is-active">{listing.page} / {listing.total_pages}</span>')
    if listing.has_next:
        items.append(f'<a class="page-link" rel="next" href="{esc(listing.next_url)}">{next_label}</a>')
    else:
        items.append(f'<span class="page-link is-disabled">{next_label}</span>')
    return f'<nav class="pagination">{"".join(items)}</nav>'


def build_listing_html(
    ctx: BuildContext,
    lang: str,
    items: Sequence[CollectionEntry],
    heading: str,
    empty_message: str,
    listing_type: str = "",
    pagination: str = "",
) -> str:
    head = f'<div class="section-head"><h2>{esc(heading)}</h2></div>' if heading else ""
    if items:
        body = f'<div class="post-grid">{build_listing_cards(ctx, items, lang)}</div>'
    else:
        message = empty_message or ctx.i18n.t(lang, "listing.empty", "Nothing here yet.")
        body = f'<p class="listing-empty">{esc(message)}</p>'
    type_attr = f' data-collection-type="{esc(listing_type)}"' if listing_type else ""
    return f'<section class="listing"{type_attr}>{head}{body}{pagination}</section>'


def build_series_nav(series: Mapping) -> str:
    if not series["has_items"]:
        return ""
    rows = []
    for item in series["items"]:
        if item["is_placeholder"]:
            rows.append('<li class="series-item is-placeholder">...</li>')
        elif item["is_current"]:
            rows.append(f'<li class="series-item is-current" aria-current="page">{esc(item["label"])}</li>')
        elif item["has_url"]:
            rows.append(f'<li class="series-item"><a href="{esc(item["url"])}">{esc(item["label"])}</a></li>')
        else:
            rows.append(f'<li class="series-item">{esc(item["label"])}</li>')
    label = f'<h3>{esc(series["label"])}</h3>' if series["has_label"] else ""
    return f'<nav class="series-nav">{label}<ol>{"".join(rows)}</ol></nav>'


def build_footer(ctx: BuildContext, lang: str) -> str:
    i18n = ctx.i18n
    tags = build_footer_tags(ctx.collections, lang, ctx.config.footer_tag_count, ctx.tag_url)
    policies = ctx.footer_policies.get(lang) or ctx.footer_policies.get(i18n.default) or ()
    parts = []
    if tags:
        links = []
        for tag in tags:
            label = i18n.t(lang, "footer.tags." + tag["key"], tag["key"])
            links.append(
                f'<a class="chip" href="{esc(tag["url"])}">{esc(label)}'
                f'<span class="count">{tag["count"]}</span></a>'
            )
        parts.append(f'<div class="footer-tags">{"".join(links)}</div>')
    if policies:
        links = []
        for policy in policies:
            label = i18n.t(lang, "footer.policies." + policy["key"], policy["label"])
            links.append(f'<li><a href="{esc(policy["url"])}">{esc(label)}</a></li>')
        parts.append(f'<ul class="footer-policies">{"".join(links)}</ul>')
    feed_label = i18n.t(lang, "footer.social.rss", "RSS")
    parts.append(f'<a class="footer-feed" href="{esc(feed_path(lang, i18n.default))}">{esc(feed_label)}</a>')
    tagline = i18n.t(lang, "footer.tagline", "")
    if tagline:
        parts.append(f'<p class="footer-tagline">{esc(tagline)}</p>')
    return "".join(parts)


def build_taxonomy_links(ctx: BuildContext, front: Mapping, lang: str) -> tuple[str, str]:
    category_label = text(front.get("category"))
    category_slug = slugify(category_label)
    category_html = ""
    if category_slug:
        url = ctx.meta.build_content_url(None, lang, category_slug)
        label = ctx.i18n.t(lang, f"categories.{category_slug}", category_label)
        category_html = f'<a class="chip chip-category" href="{esc(url)}">{esc(label)}</a>'
    tag_links = []
    for label in string_list(front.get("tags")):
        url = ctx.tag_url(slugify(label), lang)
        if url:
            tag_links.append(f'<a class="chip" href="{esc(url)}">{esc(label)}</a>')
    return category_html, " ".join(tag_links)


def build_cover(ctx: BuildContext, front: Mapping) -> str:
    cover = text(front.get("cover")) or ctx.config.default_image
    if not cover:
        return ""
    caption = text(front.get("coverCaption"))
    caption_html = f"<figcaption>{esc(caption)}</figcaption>" if caption else ""
    return (
        f'<figure class="post-cover"><img src="{esc(cover)}" alt="{esc(text(front.get("coverAlt")))}" />'
        f"{caption_html}</figure>"
    )


def render_page(
    ctx: BuildContext,
    store: TemplateStore,
    template_name: str,
    layout_name: str,
    front: Mapping,
    lang: str,
    slug: str,
    body_html: str = "",
    listing_html: str = "",
    toc_html: str = "",
) -> str:
    template = store.template(template_name)
    layout = store.layout(layout_name)
    i18n = ctx.i18n
    page = ctx.meta.build_page_meta(front, lang, slug)
    lang_config = i18n.build(lang)
    category_html, tags_html = build_taxonomy_links(ctx, front, lang)
    series_html = build_series_nav(build_series_listing(front, lang, ctx.content_index))
    content = render_template(
        template,
        title=esc(text(front.get("title"))),
        description=esc(text(front.get("description"))),
        lang=esc(lang),
        date=esc(i18n.format_date(front.get("date"), lang) or ""),
        updated=esc(i18n.format_date(front.get("updated"), lang) or ""),
        category=category_html,
        tags=tags_html,
        cover=build_cover(ctx, front),
        series=series_html,
        toc=toc_html if "<li" in toc_html else "",
        body=body_html,
        listing=listing_html,
    )
    site_title = ctx.meta.site_title(lang)
    document_title = page.title if page.title == site_title else f"{page.title} | {site_title}"
    menu_data = get_menu_data(ctx.menus, lang, front, i18n)
    rendered = render_template(
        layout,
        lang=esc(lang_config.lang_attr if lang_config else lang),
        title=esc(document_title),
        head=build_head_meta(ctx, page, lang),
        menu=build_menu(menu_data),
        footer=build_footer(ctx, lang),
        site_title=esc(site_title),
        site_description=esc(ctx.meta.site_description(lang)),
        home=esc(i18n.home_path(lang)),
        theme_color=esc(ctx.config.theme_color),
        author=esc(ctx.config.author),
        year=str(dt.datetime.now().year),
        content=content,
    )
    return resolve_virtual_root(rendered)


def legacy_paths(ctx: BuildContext, lang: str, slug: str) -> list[str]:
    cleaned = (slug or "").lstrip("/")
    if not cleaned:
        return []
    legacy = cleaned if cleaned.endswith(".html") else f"{cleaned}.html"
    paths = [legacy]
    if lang and lang != ctx.i18n.default:
        paths.append(f"{lang}/{legacy}")
    return paths


def write_page(ctx: BuildContext, output_dir: Path, relative: str, lang: str, slug: str, document: str) -> list[str]:
    write_text(output_dir / relative, document)
    return [relative, *legacy_paths(ctx, lang, slug)]


def build_paginated_collection_pages(
    ctx: BuildContext,
    store: TemplateStore,
    output_dir: Path,
    file: ContentFile,
    content_html: str,
    toc_html: str = "",
) -> list[str]:
    front = file.header
    lang = file.lang
    summary = build_collection_listing(front, lang, ctx.collections, ctx.i18n.default, file.template)
    listings = paginate_listing(
        ctx.meta,
        front,
        lang,
        summary["items"],
        file.slug,
        listing_type=summary["type"],
        empty_message=summary["empty_message"],
        heading=summary["heading"],
        key=summary["key"],
    )
    generated = []
    for listing in listings:
        front_for_page = {**front, "slug": listing.slug}
        front_for_page.pop("canonical", None)
        if listing.front_canonical:
            front_for_page["canonical"] = listing.front_canonical
        listing_html = build_listing_html(
            ctx,
            lang,
            listing.items,
            listing.heading,
            listing.empty_message,
            listing.type,
            build_pagination_nav(ctx, listing),
        )
        document = render_page(
            ctx,
            store,
            file.template,
            file.layout,
            front_for_page,
            lang,
            listing.slug,
            body_html=content_html,
            listing_html=listing_html,
            toc_html=toc_html,
        )
        relative = ctx.meta.output_path(listing.front_canonical, lang, listing.slug)
        generated.extend(write_page(ctx, output_dir, relative, lang, listing.slug, document))
    return generated


def build_content_pages(
    ctx: BuildContext, store: TemplateStore, renderer: MarkdownRenderer, output_dir: Path
) -> list[str]:
    generated = []
    for file in ctx.eligible_files:
        content_html, toc_html = renderer.render(normalize_list_spacing(file.body))
        if file.template in LISTING_TEMPLATES:
            generated.extend(
                build_paginated_collection_pages(ctx, store, output_dir, file, content_html, toc_html)
            )
            continue
        document = render_page(
            ctx,
            store,
            file.template,
            file.layout,
            file.header,
            file.lang,
            file.slug,
            body_html=content_html,
            toc_html=toc_html,
        )
        relative = ctx.meta.output_path(file.canonical, file.lang, file.slug)
        generated.extend(write_page(ctx, output_dir, relative, file.lang, file.slug, document))
    return generated


def iter_dynamic_collections(
    ctx: BuildContext,
) -> Iterator[tuple[DynamicCollection, str, str, list[CollectionEntry]]]:
    for collection in ctx.config.collections:
        for lang, buckets in ctx.collections.items():
            for key, source_items in buckets.items():
                if not any(entry.type in collection.types for entry in source_items):
                    continue
                items = dedupe_collection_items(source_items)
                if items:
                    yield collection, lang, key, items


def build_pair_alternates(ctx: BuildContext, collection: DynamicCollection, lang: str, key: str) -> dict | None:
    if not collection.pairs:
        return None
    pair = collection.pairs.get(key)
    if not isinstance(pair, Mapping):
        return None
    alternates = {}
    for code in ctx.i18n.supported:
        if code == lang:
            continue
        alt_key = text(pair.get(code))
        if not alt_key:
            continue
        alt_slug = collection_slug(collection.slug_pattern.get(code), alt_key)
        alternates[code] = ctx.meta.build_content_url(None, code, alt_slug)
    return alternates or None


def dynamic_collection_front(
    ctx: BuildContext, collection: DynamicCollection, lang: str, key: str, items: Sequence[CollectionEntry]
) -> dict:
    slug = collection_slug(collection.slug_pattern.get(lang), key)
    display_key = resolve_collection_display_key(collection.name, key, items)
    suffix = ctx.i18n.t(lang, f"seo.collections.{collection.name}.titleSuffix", "").strip()
    effective_title = f"{display_key} | {suffix}" if suffix else display_key
    front = {
        "title": display_key if collection.name == "series" else effective_title,
        "metaTitle": effective_title,
        "slug": slug,
        "template": collection.template,
        "listKey": key,
        "listHeading": effective_title,
    }
    alternate = build_pair_alternates(ctx, collection, lang, key)
    if alternate:
        front["alternate"] = alternate
    if collection.name == "series":
        front["series"] = key
        front["seriesTitle"] = display_key
    return front


def build_dynamic_collection_pages(ctx: BuildContext, store: TemplateStore, output_dir: Path) -> list[str]:
    generated = []
    for collection, lang, key, items in iter_dynamic_collections(ctx):
        front = dynamic_collection_front(ctx, collection, lang, key, items)
        summary = build_collection_listing(front, lang, ctx.collections, ctx.i18n.default, collection.template)
        listing_html = build_listing_html(
            ctx, lang, summary["items"], summary["heading"], summary["empty_message"], summary["type"]
        )
        document = render_page(
            ctx, store, collection.template, DEFAULT_LAYOUT, front, lang, front["slug"], listing_html=listing_html
        )
        relative = ctx.meta.output_path(None, lang, front["slug"])
        generated.extend(write_page(ctx, output_dir, relative, lang, front["slug"], document))
    return generated


def validate_references(ctx: BuildContext, store: TemplateStore) -> None:
    for file in ctx.eligible_files:
        store.layout(file.layout)
        store.template(file.template)
    for collection, _lang, _key, _items in iter_dynamic_collections(ctx):
        store.layout(DEFAULT_LAYOUT)
        store.template(collection.template)


def copy_localized_html(ctx: BuildContext, pages_dir: Path, output_dir: Path, generated: set[str]) -> list[str]:
    if not pages_dir.is_dir():
        return []
    written = []
    for path in sorted(pages_dir.glob("*.html")):
        relative = path.name
        if relative in generated:
            continue
        transformed = resolve_virtual_root(path.read_text(encoding="utf-8"))
        if relative != "index.html":
            write_text(output_dir / relative, transformed)
            written.append(relative)
            continue

        def write_localized(code: str, source: str = transformed) -> str:
            target = "index.html" if code == ctx.i18n.default else f"{code}/index.html"
            canonical = ctx.meta.locale_canonical_base(code) or ctx.meta.resolve_url(ctx.i18n.home_path(code))
            write_text(output_dir / target, apply_language_metadata(source, ctx.i18n.build(code), canonical))
            return target

        languages = ctx.i18n.supported or (ctx.i18n.default,)
        with ThreadPoolExecutor(max_workers=len(languages)) as executor:
            futures = [executor.submit(write_localized, code) for code in languages]
            written.extend(future.result() for future in futures)
    return written


def build_rss_feeds(ctx: BuildContext, output_dir: Path) -> list[str]:
    documents = build_rss_documents(ctx.files, ctx.meta)
    for relative, document in documents.items():
        write_text(output_dir / relative, document)
    return list(documents)


def build_sitemap(ctx: BuildContext, output_dir: Path) -> int:
    entries = build_sitemap_entries(ctx.files, ctx.meta, ctx.collections)
    write_text(output_dir / "sitemap.xml", render_sitemap(entries))
    return len(entries)


def build_robots_txt(ctx: BuildContext, output_dir: Path) -> None:
    write_text(output_dir / "robots.txt", render_robots_txt(ctx.config))
