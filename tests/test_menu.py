from __future__ import annotations

from polysite.config import I18n
from polysite.menu import build_menu_items, get_menu_data, resolve_active_menu_key
from polysite.meta import MetaEngine


def test_menu_items_ordered_by_order_then_label(make_file, meta: MetaEngine) -> None:
    files = [
        make_file(id="contact", title="Contact", show=True),
        make_file(id="blog", title="Blog", show=True, order=2),
        make_file(id="about", title="About", slug="about", show=True, order=1),
        make_file(id="archive", title="Archive", show=True),
        make_file(id="hidden", title="Hidden"),
        make_file(id="draft", title="Draft", show=True, status="draft"),
        make_file(id="broken", title="Broken", show=True, is_valid=False),
    ]
    menus = build_menu_items(files, meta)
    assert [item.key for item in menus["en"]] == ["about", "blog", "archive", "contact"]
    assert menus["en"][0].url == "/about/"


def test_menu_label_prefers_menu_field(make_file, meta: MetaEngine) -> None:
    menus = build_menu_items([make_file(id="about", title="About us", menu="About", show=True)], meta)
    assert menus["en"][0].label == "About"


def test_resolve_active_menu_key() -> None:
    assert resolve_active_menu_key({"id": " blog ", "slug": "b"}) == "blog"
    assert resolve_active_menu_key({"slug": "b"}) == "b"
    assert resolve_active_menu_key({}) is None


def test_get_menu_data_marks_one_active_item(make_file, meta: MetaEngine, i18n: I18n) -> None:
    files = [
        make_file(id="about", title="About", show=True, order=1),
        make_file(id="blog", title="Blog", show=True, order=2),
    ]
    menus = build_menu_items(files, meta)
    data = get_menu_data(menus, "en", {"id": "blog"}, i18n)
    assert data["active_key"] == "blog"
    assert [item["is_active"] for item in data["items"]] == [False, True]

    fallback = get_menu_data(menus, "en", {"id": "unknown"}, i18n)
    assert fallback["active_key"] == "about"
    assert sum(item["is_active"] for item in fallback["items"]) == 1


def test_get_menu_data_falls_back_to_default_locale(make_file, meta: MetaEngine, i18n: I18n) -> None:
    menus = build_menu_items([make_file(id="about", title="About", show=True)], meta)
    data = get_menu_data(menus, "tr", None, i18n)
    assert [item["label"] for item in data["items"]] == ["Hakkında"]
    assert get_menu_data({}, "en", None, i18n) == {"items": [], "active_key": ""}
