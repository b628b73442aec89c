"""Tests for front matter parsing and ContentFile normalisation."""

from __future__ import annotations

from pathlib import Path

import pytest

from polysite.content import (
    MENU_ORDER_UNSET,
    collate_key,
    count_words,
    load_content_files,
    normalize_list_spacing,
    parse_front_matter,
    reading_time,
    slugify,
)


def test_parse_front_matter_reads_yaml_block() -> None:
    meta, body, is_valid = parse_front_matter("---\ntitle: Hello\ntags: [a, b]\n---\n# Heading\n")
    assert is_valid
    assert meta == {"title": "Hello", "tags": ["a", "b"]}
    assert body == "# Heading"


def test_parse_front_matter_without_block_is_valid() -> None:
    meta, body, is_valid = parse_front_matter("Just text")
    assert is_valid
    assert meta == {}
    assert body == "Just text"


def test_parse_front_matter_flags_broken_yaml() -> None:
    meta, body, is_valid = parse_front_matter("---\ntitle: [unclosed\n---\nBody\n")
    assert not is_valid
    assert meta == {}
    assert body == ""


def test_parse_front_matter_flags_non_mapping() -> None:
    _, _, is_valid = parse_front_matter("---\n- one\n- two\n---\nBody\n")
    assert not is_valid


def test_slugify_folds_accents_and_special_letters() -> None:
    assert slugify("Çalışma Notları") == "calisma-notlari"
    assert slugify("Straße & Co.") == "strasse-co"
    assert slugify("  Hello, World!  ") == "hello-world"


def test_slugify_may_return_empty() -> None:
    assert slugify("!!!") == ""
    assert slugify(None) == ""


def test_collate_key_ignores_case_and_accents() -> None:
    assert sorted(["beta", "Álpha", "alpha"], key=collate_key) == ["alpha", "Álpha", "beta"]


def test_reading_time_prefers_declared_value() -> None:
    assert reading_time(3.6, "word " * 900) == 4
    assert reading_time(None, "word " * 450) == 3
    assert reading_time(0, "") == 0


def test_count_words_counts_cjk_characters() -> None:
    assert count_words("hello world") == 2
    assert count_words("日本語 text") == 4


def test_normalize_list_spacing_inserts_blank_line_before_list() -> None:
    assert normalize_list_spacing("Intro\n- one\n- two") == "Intro\n\n- one\n- two"
    assert normalize_list_spacing("```\nIntro\n- one\n```") == "```\nIntro\n- one\n```"


def test_content_file_normalises_front_matter(make_file) -> None:
    file = make_file(
        id="guide-1",
        title="Guide",
        category="Life Notes",
        tags="Python, Tips",
        series="Getting Started",
        status=" Published ",
    )
    assert file.is_eligible
    assert file.category == "life-notes"
    assert file.tags == ("python", "tips")
    assert file.series == "getting-started"
    assert file.series_title == ""
    assert file.series_label == "Getting Started"
    assert file.template == "page"
    assert file.layout == "default"
    assert file.menu_label == "Guide"
    assert file.menu_order == MENU_ORDER_UNSET
    assert file.is_hidden_on_menu


def test_content_file_eligibility(make_file) -> None:
    assert not make_file(id="a", status="draft").is_eligible
    assert not make_file(id="b", status="").is_eligible
    assert not make_file(id="c", is_valid=False).is_eligible


def test_load_content_files_reads_markdown_in_name_order(tmp_path: Path) -> None:
    (tmp_path / "b.md").write_text("---\nid: b\nstatus: published\n---\nB\n", encoding="utf-8")
    (tmp_path / "a.md").write_text("---\nid: a\n---\nA\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    files = load_content_files(tmp_path, "en")
    assert [file.id for file in files] == ["a", "b"]
    assert files[0].lang == "en"


def test_load_content_files_missing_directory_is_empty(tmp_path: Path) -> None:
    assert load_content_files(tmp_path / "missing") == []


def test_undecodable_file_is_kept_but_inert(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "bad.md").write_bytes(b"---\nid: bad\nstatus: published\n---\n\xff\xfe broken\n")
    (tmp_path / "good.md").write_text("---\nid: good\nstatus: published\n---\nGood\n", encoding="utf-8")
    bad, good = load_content_files(tmp_path, "en")
    assert not bad.is_valid
    assert not bad.is_eligible
    assert bad.lang == "en"
    assert good.is_eligible
    assert "Unreadable content file" in capsys.readouterr().err
