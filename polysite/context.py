from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .collection import (
    Collections,
    ContentIndex,
    build_collections,
    build_content_index,
    build_footer_policies,
    collection_slug,
)
from .config import I18n, SiteConfig
from .content import ContentFile
from .menu import Menus, build_menu_items
from .meta import MetaEngine


@dataclass(frozen=True)
class BuildContext:
    """Everything derived from the loaded content, computed once per build."""

    config: SiteConfig
    i18n: I18n
    meta: MetaEngine
    files: tuple[ContentFile, ...]
    collections: Collections
    content_index: ContentIndex
    menus: Menus
    footer_policies: dict

    @classmethod
    def create(cls, config: SiteConfig, i18n: I18n, files: Sequence[ContentFile]) -> "BuildContext":
        meta = MetaEngine(config, i18n)
        files = tuple(files)
        return cls(
            config=config,
            i18n=i18n,
            meta=meta,
            files=files,
            collections=build_collections(files, meta),
            content_index=build_content_index(files, meta),
            menus=build_menu_items(files, meta),
            footer_policies=build_footer_policies(files, meta),
        )

    @property
    def eligible_files(self) -> list[ContentFile]:
        return [file for file in self.files if file.is_eligible]

    def tag_url(self, key: str, lang: str) -> str | None:
        if not key:
            return None
        tags = next((item for item in self.config.collections if item.name == "tags"), None)
        pattern = tags.slug_pattern.get(lang) if tags else None
        return self.meta.build_content_url(None, lang, collection_slug(pattern, key))
