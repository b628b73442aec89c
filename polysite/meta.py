"""URL canonicalisation and page-level SEO metadata."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit

from .config import I18n, SiteConfig
from .content import slugify
from .utils import iso_date, string_list, text

VIRTUAL_ROOT = "~/"
ARTICLE_TYPES = {"article", "guide", "post"}
DUPLICATE_SLASH_RE = re.compile(r"/{2,}")
SCHEME_HOST_RE = re.compile(r"^https?://[^/]+", re.IGNORECASE)


def serialize_for_inline_script(value: object) -> str:
    """JSON for embedding inside a <script> element.

    Characters that could close the script context or break JavaScript string
    literals are emitted as unicode escapes.
    """
    payload = json.dumps(value if value is not None else {}, ensure_ascii=False)
    return (
        payload.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def normalize_trailing_slash(url: str) -> str:
    parts = urlsplit(url)
    path = DUPLICATE_SLASH_RE.sub("/", parts.path) or "/"
    last_segment = path.rsplit("/", 1)[-1]
    if not path.endswith("/") and "." not in last_segment and last_segment != "~":
        path += "/"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def canonical_to_relative_path(value: str) -> str | None:
    if not value:
        return None
    path = value.strip()
    if path.startswith(VIRTUAL_ROOT):
        path = path[len(VIRTUAL_ROOT) :]
    else:
        path = SCHEME_HOST_RE.sub("", path)
    path = path.strip().strip("/")
    return path or None


def normalize_alternate_locales(value: object, fallback: object = None) -> list[str]:
    source = string_list(value) or string_list(fallback)
    seen: set[str] = set()
    result = []
    for item in source:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def resolve_keywords(front: Mapping) -> list[str]:
    keywords = string_list(front.get("keywords"))
    if keywords:
        return keywords
    return string_list(front.get("tags"))


@dataclass(frozen=True)
class OpenGraph:
    title: str
    description: str
    type: str
    url: str
    image: str
    locale: str
    alt_locale: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TwitterCard:
    card: str
    title: str
    description: str
    image: str
    url: str


@dataclass(frozen=True)
class PageMeta:
    title: str
    description: str
    robots: str
    canonical: str
    alternates: dict
    alternate_links: list
    og: OpenGraph
    twitter: TwitterCard
    structured_data: str | None = None


class MetaEngine:
    def __init__(self, config: SiteConfig, i18n: I18n) -> None:
        self.config = config
        self.i18n = i18n

    @property
    def base_url(self) -> str:
        return self.config.url.rstrip("/")

    def resolve_url(self, value: str = "") -> str:
        base = self.base_url
        value = (value or "").strip()
        if not value:
            return normalize_trailing_slash(base or "/")
        if value.startswith(("http://", "https://")):
            raw = value
        elif value.startswith(VIRTUAL_ROOT):
            raw = f"{base}/{value[len(VIRTUAL_ROOT):]}"
        elif value.startswith("/"):
            raw = f"{base}{value}"
        else:
            raw = f"{base}/{value}"
        return normalize_trailing_slash(raw)

    def fallback_path(self, lang: str) -> str:
        return "/" if lang == self.i18n.default else f"/{lang}/"

    def locale_canonical_base(self, lang: str) -> str | None:
        config = self.i18n.build(lang)
        if config is None or not config.canonical:
            return None
        return self.resolve_url(config.canonical)

    def default_canonical(self, lang: str, slug: str) -> str:
        cleaned = (slug or "").strip().strip("/")
        base = self.locale_canonical_base(lang) or self.resolve_url(self.fallback_path(lang))
        base = base.rstrip("/") + "/"
        if not cleaned:
            return base
        return f"{base}{cleaned}/"

    def canonical_url(self, front: Mapping, lang: str, slug: str) -> str:
        explicit = text(front.get("canonical"))
        if explicit:
            return self.resolve_url(explicit)
        return self.default_canonical(lang, slug)

    def build_content_url(self, canonical: str | None, lang: str, slug: str) -> str:
        source = text(canonical) or self.default_canonical(lang or self.i18n.default, slug)
        relative = canonical_to_relative_path(source)
        if not relative:
            return "/"
        return normalize_trailing_slash(f"/{relative}")

    def output_path(self, canonical: str | None, lang: str, slug: str) -> str:
        explicit = text(canonical)
        relative = canonical_to_relative_path(explicit) if explicit else None
        if relative:
            relative = urlsplit(relative).path.strip("/")
        if relative:
            return f"{relative}/index.html"
        segments = []
        if lang and lang != self.i18n.default:
            segments.append(lang)
        cleaned = (slug or "").strip("/")
        if cleaned:
            segments.append(cleaned)
        segments.append("index.html")
        return "/".join(segments)

    def pick_fallback_alternate_lang(self, lang: str) -> str | None:
        supported = self.i18n.supported
        if not supported:
            return None
        if len(supported) == 1:
            return supported[0]
        if lang and lang != self.i18n.default:
            return self.i18n.default
        return next((code for code in supported if code != lang), None)

    def normalize_alternate_overrides(self, alternate: object, lang: str) -> dict:
        if isinstance(alternate, str) and alternate.strip():
            fallback_lang = self.pick_fallback_alternate_lang(lang)
            if not fallback_lang:
                return {}
            return {fallback_lang: self.resolve_url(alternate.strip())}
        if isinstance(alternate, Mapping):
            overrides = {}
            for code, value in alternate.items():
                if code not in self.i18n.supported:
                    continue
                if isinstance(value, str) and value.strip():
                    overrides[code] = self.resolve_url(value.strip())
            return overrides
        return {}

    def build_alternate_url_map(self, front: Mapping, lang: str, canonical_url: str) -> dict:
        overrides = self.normalize_alternate_overrides(front.get("alternate"), lang)
        result = {}
        for code in self.i18n.supported:
            if code == lang:
                result[code] = canonical_url
            elif code in overrides:
                result[code] = overrides[code]
            else:
                result[code] = self.locale_canonical_base(code) or self.resolve_url(
                    self.fallback_path(code)
                )
        result["default"] = canonical_url
        return result

    def build_alternate_link_list(self, alternates: Mapping) -> list[dict]:
        if not alternates:
            return []
        return [
            {
                "lang": code,
                "hreflang": code,
                "url": alternates.get(code) or alternates.get("default", ""),
            }
            for code in self.i18n.supported
        ]

    def resolve_article_section(self, front: Mapping, lang: str) -> str:
        category = text(front.get("category"))
        if not category:
            return ""
        return self.i18n.t(lang, f"categories.{slugify(category)}", category)

    def site_title(self, lang: str) -> str:
        return self.i18n.t(lang, "site.title", self.config.author)

    def site_description(self, lang: str) -> str:
        return self.i18n.t(lang, "site.description", "")

    def build_article_structured_data(
        self, front: Mapping, lang: str, canonical_url: str, image_url: str
    ) -> str:
        structured: dict = {
            "@context": "https://schema.org",
            "@type": "Article",
            "headline": text(front.get("title")),
            "description": text(front.get("description")),
            "author": {"@type": "Person", "name": self.config.author},
            "inLanguage": lang,
            "mainEntityOfPage": canonical_url,
        }
        published = iso_date(front.get("date"))
        if published:
            structured["datePublished"] = published
        modified = iso_date(front.get("updated"))
        if modified:
            structured["dateModified"] = modified
        if image_url:
            structured["image"] = [image_url]
        section = self.resolve_article_section(front, lang)
        if section:
            structured["articleSection"] = section
        keywords = resolve_keywords(front)
        if keywords:
            structured["keywords"] = keywords
        return serialize_for_inline_script(structured)

    def build_home_structured_data(self, lang: str, canonical_url: str) -> str:
        structured = {
            "@context": "https://schema.org",
            "@type": "WebSite",
            "name": self.site_title(lang),
            "description": self.site_description(lang),
            "url": canonical_url,
            "inLanguage": lang,
            "publisher": {"@type": "Person", "name": self.config.author},
        }
        return serialize_for_inline_script(structured)

    def build_webpage_structured_data(self, front: Mapping, lang: str, canonical_url: str) -> str:
        structured: dict = {
            "@context": "https://schema.org",
            "@type": "WebPage",
            "headline": text(front.get("title")),
            "description": text(front.get("description")),
            "author": {"@type": "Person", "name": self.config.author},
            "inLanguage": lang,
            "mainEntityOfPage": canonical_url,
        }
        keywords = resolve_keywords(front)
        if keywords:
            structured["keywords"] = keywords
        return serialize_for_inline_script(structured)

    def build_structured_data(
        self, front: Mapping, lang: str, canonical_url: str, image_url: str
    ) -> str | None:
        type_value = text(front.get("type")).lower()
        template_value = text(front.get("template")).lower()
        if template_value == "post" or type_value in ARTICLE_TYPES:
            return self.build_article_structured_data(front, lang, canonical_url, image_url)
        if template_value == "home":
            return self.build_home_structured_data(lang, canonical_url)
        if template_value == "page" or type_value == "page":
            return self.build_webpage_structured_data(front, lang, canonical_url)
        return None

    def build_page_meta(self, front: Mapping, lang: str, slug: str) -> PageMeta:
        canonical = self.canonical_url(front, lang, slug)
        lang_config = self.i18n.build(lang)
        title = text(front.get("metaTitle")) or text(front.get("title")) or "Untitled"
        description = text(front.get("description"))
        og_locale = (lang_config.og_locale if lang_config else "") or self.i18n.culture(lang)
        default_alt_locales = (lang_config.alt_locale if lang_config else ()) or [
            self.i18n.culture(code) for code in self.i18n.supported if code != lang
        ]
        alt_locales = normalize_alternate_locales(front.get("ogAltLocale"), default_alt_locales)
        image = self.resolve_url(text(front.get("cover")) or self.config.default_image)
        alternates = self.build_alternate_url_map(front, lang, canonical)

        type_value = text(front.get("type")).lower()
        is_article = text(front.get("template")).lower() == "post" or type_value in ARTICLE_TYPES

        return PageMeta(
            title=title,
            description=description,
            robots=text(front.get("robots")) or "index,follow",
            canonical=canonical,
            alternates=alternates,
            alternate_links=self.build_alternate_link_list(alternates),
            og=OpenGraph(
                title=text(front.get("ogTitle")) or title,
                description=description,
                type=text(front.get("ogType")) or ("article" if is_article else "website"),
                url=canonical,
                image=image,
                locale=text(front.get("ogLocale")) or og_locale,
                alt_locale=alt_locales,
            ),
            twitter=TwitterCard(
                card=text(front.get("twitterCard")) or "summary_large_image",
                title=text(front.get("twitterTitle")) or title,
                description=description,
                image=image,
                url=canonical,
            ),
            structured_data=self.build_structured_data(front, lang, canonical, image),
        )
