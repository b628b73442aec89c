from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .config import I18n
from .content import ContentFile, collate_key
from .meta import MetaEngine
from .utils import text


@dataclass(frozen=True)
class MenuItem:
    key: str
    label: str
    url: str
    order: float = 0


Menus = dict[str, tuple[MenuItem, ...]]


def build_menu_items(files: Iterable[ContentFile], meta: MetaEngine) -> Menus:
    items_by_lang: dict[str, list[MenuItem]] = {}
    for file in files:
        if not file.is_eligible or file.is_hidden_on_menu:
            continue
        items_by_lang.setdefault(file.lang, []).append(
            MenuItem(
                key=file.id,
                label=file.menu_label,
                url=meta.build_content_url(file.canonical, file.lang, file.slug),
                order=file.menu_order,
            )
        )
    menus: Menus = {}
    for lang, items in items_by_lang.items():
        ordered = sorted(items, key=lambda item: collate_key(item.label))
        menus[lang] = tuple(sorted(ordered, key=lambda item: item.order))
    return menus


def resolve_active_menu_key(front: Mapping | None) -> str | None:
    if not front:
        return None
    return text(front.get("id")) or text(front.get("slug")) or None


def resolve_active_item(items: Sequence[MenuItem], front: Mapping | None) -> MenuItem | None:
    """Item a page highlights: matched by id or slug, else the first item."""
    active_key = resolve_active_menu_key(front)
    if active_key:
        for item in items:
            if item.key == active_key:
                return item
    return items[0] if items else None


def get_menu_data(menus: Menus, lang: str, front: Mapping | None, i18n: I18n) -> dict:
    base_items = menus.get(lang) or menus.get(i18n.default) or ()
    active = resolve_active_item(base_items, front)
    active_key = active.key if active else ""
    items = [
        {
            "key": item.key,
            "label": i18n.t(lang, f"menu.{item.key}", item.label or item.key),
            "url": item.url,
            "is_active": item is active,
        }
        for item in base_items
    ]
    return {"items": items, "active_key": active_key}
