from __future__ import annotations

import copy
import json
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .utils import parse_bool, parse_datetime, parse_int, string_list, text

MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

FALLBACKS: dict = {
    "identity": {
        "author": "",
        "email": "",
        "url": "http://localhost:3000",
        "themeColor": "#5a8df0",
    },
    "seo": {
        "defaultImage": "",
        "includeCollections": False,
        "includePaging": False,
        "footerTagCount": 8,
    },
    "content": {
        "pagination": {"pageSize": 10, "segment": {"en": "page"}},
        "languages": {"default": "en", "supported": ["en"], "canonical": {}},
        "collections": {},
    },
    "feeds": {"limit": 50},
    "markdown": {"highlight": False},
    "robots": {"allow": ["/"], "disallow": []},
}


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    raw = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
    else:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
    if not isinstance(data, dict):
        print(f"Config file must be a mapping: {path}", file=sys.stderr)
        sys.exit(1)
    return data


def merge_sections(base: dict, override: object) -> dict:
    merged = copy.deepcopy(base)
    if not isinstance(override, dict):
        return merged
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_sections(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass(frozen=True)
class DynamicCollection:
    name: str
    types: tuple[str, ...]
    slug_pattern: dict = field(default_factory=dict)
    template: str = "category"
    pairs: dict | None = None

    @classmethod
    def from_mapping(cls, name: str, data: object) -> "DynamicCollection | None":
        if not isinstance(data, dict):
            return None
        types = tuple(string_list(data.get("types")))
        if not types:
            return None
        slug_pattern = data.get("slugPattern")
        pairs = data.get("pairs")
        return cls(
            name=name,
            types=types,
            slug_pattern={k: v for k, v in slug_pattern.items() if isinstance(v, str)}
            if isinstance(slug_pattern, dict)
            else {},
            template=text(data.get("template")) or "category",
            pairs=pairs if isinstance(pairs, dict) else None,
        )


@dataclass(frozen=True)
class SiteConfig:
    author: str
    email: str
    url: str
    theme_color: str
    default_image: str
    include_collections: bool
    include_paging: bool
    footer_tag_count: int
    page_size: int
    pagination_segments: dict
    default_lang: str
    supported_langs: tuple[str, ...]
    canonical_bases: dict
    collections: tuple[DynamicCollection, ...]
    feed_limit: int
    highlight: bool
    robots_allow: tuple[str, ...]
    robots_disallow: tuple[str, ...]

    @classmethod
    def from_mapping(cls, data: dict | None = None) -> "SiteConfig":
        data = data or {}
        identity = merge_sections(FALLBACKS["identity"], data.get("identity"))
        seo = merge_sections(FALLBACKS["seo"], data.get("seo"))
        content = merge_sections(FALLBACKS["content"], data.get("content"))
        feeds = merge_sections(FALLBACKS["feeds"], data.get("feeds"))
        markdown_cfg = merge_sections(FALLBACKS["markdown"], data.get("markdown"))
        robots = merge_sections(FALLBACKS["robots"], data.get("robots"))

        pagination = content.get("pagination") or {}
        languages = content.get("languages") or {}
        raw_collections = content.get("collections") or {}
        collections = [
            DynamicCollection.from_mapping(name, value)
            for name, value in raw_collections.items()
        ] if isinstance(raw_collections, dict) else []
        default_lang = text(languages.get("default")) or "en"
        supported = string_list(languages.get("supported")) or [default_lang]
        segments = pagination.get("segment")
        canonical = languages.get("canonical")

        return cls(
            author=str(identity.get("author") or ""),
            email=str(identity.get("email") or ""),
            url=str(identity.get("url") or "").rstrip("/"),
            theme_color=str(identity.get("themeColor") or ""),
            default_image=str(seo.get("defaultImage") or ""),
            include_collections=parse_bool(seo.get("includeCollections")),
            include_paging=parse_bool(seo.get("includePaging")),
            footer_tag_count=parse_int(seo.get("footerTagCount"), 8),
            page_size=parse_int(pagination.get("pageSize"), 0),
            pagination_segments=segments if isinstance(segments, dict) else {},
            default_lang=default_lang,
            supported_langs=tuple(supported),
            canonical_bases=canonical if isinstance(canonical, dict) else {},
            collections=tuple(item for item in collections if item is not None),
            feed_limit=parse_int(feeds.get("limit"), 50),
            highlight=parse_bool(markdown_cfg.get("highlight")),
            robots_allow=tuple(string_list(robots.get("allow"))),
            robots_disallow=tuple(string_list(robots.get("disallow"))),
        )


@dataclass(frozen=True)
class LanguageConfig:
    code: str
    culture: str = ""
    canonical: str = ""
    lang_attr: str = ""
    meta_language: str = ""
    og_locale: str = ""
    alt_locale: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, code: str, data: object, canonical: str = "") -> "LanguageConfig":
        data = data if isinstance(data, dict) else {}
        culture = text(data.get("culture")) or code
        return cls(
            code=code,
            culture=culture,
            canonical=text(data.get("canonical")) or canonical,
            lang_attr=text(data.get("langAttr")) or code,
            meta_language=text(data.get("metaLanguage")) or code,
            og_locale=text(data.get("ogLocale")),
            alt_locale=tuple(string_list(data.get("altLocale"))),
        )


@dataclass(frozen=True)
class I18n:
    default: str
    supported: tuple[str, ...]
    languages: dict
    translations: dict

    @classmethod
    def from_mapping(cls, data: dict | None, site: SiteConfig) -> "I18n":
        data = data or {}
        default = text(data.get("default")) or site.default_lang
        supported = string_list(data.get("supported")) or list(site.supported_langs)
        if default not in supported:
            supported.insert(0, default)
        raw_languages = data.get("languages") if isinstance(data.get("languages"), dict) else {}
        languages = {
            code: LanguageConfig.from_mapping(
                code, raw_languages.get(code), text(site.canonical_bases.get(code))
            )
            for code in supported
        }
        translations = data.get("translations")
        return cls(
            default=default,
            supported=tuple(supported),
            languages=languages,
            translations=translations if isinstance(translations, dict) else {},
        )

    def build(self, lang: str) -> LanguageConfig | None:
        return self.languages.get(lang)

    def culture(self, lang: str) -> str:
        config = self.languages.get(lang)
        return config.culture if config and config.culture else lang

    def t(self, lang: str, key: str, fallback: str = "") -> str:
        node = self.translations.get(lang)
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return fallback
            node = node[part]
        if isinstance(node, (str, int, float)) and not isinstance(node, bool):
            return str(node)
        return fallback

    def home_path(self, lang: str) -> str:
        if not lang or lang == self.default:
            return "/"
        return f"/{lang}/"

    def format_date(self, value: object, lang: str) -> str | None:
        if not value:
            return None
        parsed = parse_datetime(value)
        if parsed is None:
            return str(value)
        month = self.t(lang, f"months.{parsed.month}", MONTHS[parsed.month - 1])
        return f"{parsed.day:02d} {month} {parsed.year}"
