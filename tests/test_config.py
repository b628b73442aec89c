"""Tests for config loading, site settings and locale lookups."""

from __future__ import annotations

from pathlib import Path

import pytest

from polysite.config import I18n, SiteConfig, load_config, merge_sections


def test_load_config_reads_toml_yaml_and_json(tmp_path: Path) -> None:
    toml_path = tmp_path / "site.toml"
    toml_path.write_text('[identity]\nauthor = "Ada"\n', encoding="utf-8")
    yaml_path = tmp_path / "site.yml"
    yaml_path.write_text("identity:\n  author: Ada\n", encoding="utf-8")
    json_path = tmp_path / "site.json"
    json_path.write_text('{"identity": {"author": "Ada"}}', encoding="utf-8")

    for path in (toml_path, yaml_path, json_path):
        assert load_config(path) == {"identity": {"author": "Ada"}}


def test_load_config_missing_file_is_empty(tmp_path: Path) -> None:
    assert load_config(tmp_path / "absent.toml") == {}


def test_load_config_exits_on_malformed_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "site.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        load_config(path)
    assert excinfo.value.code == 1
    assert "Invalid JSON" in capsys.readouterr().err


def test_merge_sections_is_deep_and_does_not_mutate() -> None:
    base = {"a": {"b": 1, "c": 2}}
    merged = merge_sections(base, {"a": {"c": 3}})
    assert merged == {"a": {"b": 1, "c": 3}}
    assert base == {"a": {"b": 1, "c": 2}}


def test_site_config_fallbacks() -> None:
    config = SiteConfig.from_mapping({})
    assert config.url == "http://localhost:3000"
    assert config.page_size == 10
    assert config.footer_tag_count == 8
    assert config.feed_limit == 50
    assert config.default_lang == "en"
    assert config.supported_langs == ("en",)
    assert config.robots_allow == ("/",)
    assert not config.include_paging


def test_site_config_skips_collections_without_types() -> None:
    config = SiteConfig.from_mapping(
        {"content": {"collections": {"tags": {"types": ["tag"]}, "broken": {"slugPattern": {"en": "x"}}}}}
    )
    assert [item.name for item in config.collections] == ["tags"]
    assert config.collections[0].template == "category"


def test_site_config_trims_trailing_slash(site_config: SiteConfig) -> None:
    assert site_config.url == "https://example.com"
    assert site_config.pagination_segments == {"en": "page", "tr": "sayfa"}


def test_i18n_translation_lookup(i18n: I18n) -> None:
    assert i18n.default == "en"
    assert i18n.supported == ("en", "tr")
    assert i18n.t("en", "site.title") == "Example Notes"
    assert i18n.t("tr", "site.description", "fallback") == "fallback"
    assert i18n.t("de", "site.title", "none") == "none"
    assert i18n.culture("tr") == "tr_TR"
    assert i18n.home_path("en") == "/"
    assert i18n.home_path("tr") == "/tr/"


def test_i18n_format_date_uses_translated_months(i18n: I18n) -> None:
    assert i18n.format_date("2024-03-05", "en") == "05 March 2024"
    assert i18n.format_date("2024-03-05", "tr") == "05 Mart 2024"
    assert i18n.format_date("", "en") is None
    assert i18n.format_date("someday", "en") == "someday"


def test_i18n_adds_default_to_supported(site_config: SiteConfig) -> None:
    i18n = I18n.from_mapping({"default": "de", "supported": ["en"]}, site_config)
    assert i18n.supported == ("de", "en")
    assert i18n.build("de").culture == "de"
