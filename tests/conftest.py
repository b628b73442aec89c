from __future__ import annotations

from pathlib import Path

import pytest

from polysite.collection import CollectionEntry
from polysite.config import I18n, SiteConfig
from polysite.content import ContentFile
from polysite.meta import MetaEngine

SITE_DATA = {
    "identity": {"author": "Ada Lovelace", "email": "ada@example.com", "url": "https://example.com/"},
    "seo": {"defaultImage": "~/assets/share.png", "includeCollections": True, "includePaging": True},
    "content": {
        "pagination": {"pageSize": 5, "segment": {"en": "page", "tr": "sayfa"}},
        "languages": {"default": "en", "supported": ["en", "tr"]},
        "collections": {
            "tags": {"types": ["tag"], "slugPattern": {"en": "tag/{{key}}", "tr": "etiket/{{key}}"}},
        },
    },
}

I18N_DATA = {
    "languages": {
        "en": {"culture": "en_US", "ogLocale": "en_US", "langAttr": "en"},
        "tr": {
            "culture": "tr_TR",
            "ogLocale": "tr_TR",
            "langAttr": "tr",
            "canonical": "https://example.com/tr/",
        },
    },
    "translations": {
        "en": {
            "site": {"title": "Example Notes", "description": "Notes in two languages."},
            "categories": {"life": "Life"},
        },
        "tr": {
            "site": {"title": "Örnek Notlar"},
            "months": {"3": "Mart"},
            "menu": {"about": "Hakkında"},
        },
    },
}


@pytest.fixture
def site_config() -> SiteConfig:
    return SiteConfig.from_mapping(SITE_DATA)


@pytest.fixture
def i18n(site_config: SiteConfig) -> I18n:
    return I18n.from_mapping(I18N_DATA, site_config)


@pytest.fixture
def meta(site_config: SiteConfig, i18n: I18n) -> MetaEngine:
    return MetaEngine(site_config, i18n)


@pytest.fixture
def make_file():
    """Build a ContentFile from front matter keyword arguments."""

    def _make(body: str = "Body text.", is_valid: bool = True, **front: object) -> ContentFile:
        front.setdefault("status", "published")
        front.setdefault("lang", "en")
        name = str(front.get("id") or front.get("slug") or "page")
        return ContentFile.from_source(Path(f"{name}.md"), front, body, is_valid, "en", "")

    return _make


@pytest.fixture
def make_entry():
    def _make(entry_id: str, title: str = "", date: object = "", **extra: object) -> CollectionEntry:
        values = {
            "id": entry_id,
            "title": title or entry_id,
            "date": date,
            "description": "",
            "cover": "",
            "cover_alt": "",
            "cover_caption": "",
            "reading_time": 1,
            "date_display": None,
            "canonical": f"/{entry_id}/",
        }
        values.update(extra)
        return CollectionEntry(**values)

    return _make
