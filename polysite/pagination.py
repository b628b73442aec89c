from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .collection import CollectionEntry
from .config import SiteConfig
from .meta import MetaEngine
from .utils import text

DEFAULT_PAGE_SIZE = 5
DEFAULT_SEGMENT = "page"


@dataclass(frozen=True)
class PaginatedListing:
    key: str
    lang: str
    items: tuple[CollectionEntry, ...]
    page: int
    total_pages: int
    has_prev: bool
    has_next: bool
    prev_url: str
    next_url: str
    type: str
    empty_message: str
    heading: str
    slug: str
    canonical: str
    front_canonical: str | None

    @property
    def has_items(self) -> bool:
        return bool(self.items)

    @property
    def has_pagination(self) -> bool:
        return self.total_pages > 1


def resolve_page_size(config: SiteConfig) -> int:
    return config.page_size if config.page_size > 0 else DEFAULT_PAGE_SIZE


def resolve_pagination_segment(config: SiteConfig, lang: str, default_lang: str) -> str:
    segments = config.pagination_segments
    for code in (lang, default_lang):
        value = segments.get(code)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return DEFAULT_SEGMENT


def total_pages(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def paginated_slug(base_slug: str, segment: str, page: int) -> str:
    if page == 1:
        return base_slug
    base = base_slug.rstrip("/")
    if base:
        return f"{base}/{segment}-{page}"
    return f"{segment}-{page}"


def previous_slug(base_slug: str, segment: str, page: int) -> str:
    # page 2 links back to the unsuffixed first page
    if page > 2:
        return paginated_slug(base_slug, segment, page - 1)
    return base_slug


def paginated_canonical(front_canonical: str, segment: str, page: int) -> str | None:
    """Explicit canonical of a listing page; None means derive it from the slug."""
    explicit = text(front_canonical)
    if page == 1:
        return explicit or None
    if not explicit:
        return None
    return f"{explicit.rstrip('/')}/{segment}-{page}/"


def paginate_listing(
    meta: MetaEngine,
    front: Mapping,
    lang: str,
    items: Sequence[CollectionEntry],
    base_slug: str,
    listing_type: str = "",
    empty_message: str = "",
    heading: str = "",
    key: str = "",
) -> list[PaginatedListing]:
    config = meta.config
    page_size = resolve_page_size(config)
    pages = total_pages(len(items), page_size)
    segment = resolve_pagination_segment(config, lang, meta.i18n.default)
    explicit = text(front.get("canonical"))
    listings = []
    for page in range(1, pages + 1):
        start = (page - 1) * page_size
        has_prev = page > 1
        has_next = page < pages
        slug = paginated_slug(base_slug, segment, page)
        front_canonical = paginated_canonical(explicit, segment, page)
        listings.append(
            PaginatedListing(
                key=key,
                lang=lang,
                items=tuple(items[start : start + page_size]),
                page=page,
                total_pages=pages,
                has_prev=has_prev,
                has_next=has_next,
                prev_url=meta.build_content_url(None, lang, previous_slug(base_slug, segment, page))
                if has_prev
                else "",
                next_url=meta.build_content_url(None, lang, paginated_slug(base_slug, segment, page + 1))
                if has_next
                else "",
                type=listing_type,
                empty_message=empty_message,
                heading=heading,
                slug=slug,
                canonical=meta.canonical_url({"canonical": front_canonical or ""}, lang, slug),
                front_canonical=front_canonical,
            )
        )
    return listings
