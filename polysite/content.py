from __future__ import annotations

import html as html_lib
import math
import re
import sys
import unicodedata
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .utils import parse_bool, parse_float, string_list, text

LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")
WORD_RE = re.compile(r"[A-Za-z0-9\u00c0-\u024f]+(?:'[A-Za-z0-9\u00c0-\u024f]+)?")
SLUG_RE = re.compile(r"[^a-z0-9]+")

MENU_ORDER_UNSET = 2**53 - 1
WORDS_PER_MINUTE = 200
MAX_LOAD_WORKERS = 8

# letters NFD leaves intact
TRANSLITERATION = str.maketrans(
    {
        "ß": "ss",
        "Ø": "o",
        "ø": "o",
        "Æ": "ae",
        "æ": "ae",
        "Đ": "d",
        "đ": "d",
        "Ł": "l",
        "ł": "l",
        "ı": "i",
        "Œ": "oe",
        "œ": "oe",
        "Þ": "th",
        "þ": "th",
    }
)


def strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def slugify(value: object) -> str:
    if not isinstance(value, str) or not value:
        return ""
    normalized = strip_accents(value).translate(TRANSLITERATION)
    return SLUG_RE.sub("-", normalized.strip().lower()).strip("-")


def collate_key(value: str) -> tuple[str, str]:
    folded = strip_accents(value or "").translate(TRANSLITERATION).casefold()
    return folded, value or ""


def parse_front_matter(text_value: str) -> tuple[dict, str, bool]:
    clean_text = text_value.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, clean_text, True

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end = i
            break
    if end is None:
        return {}, clean_text, True

    body = "\n".join(lines[end + 1 :])
    try:
        meta = yaml.safe_load("\n".join(lines[1:end]))
    except yaml.YAMLError:
        return {}, "", False
    if meta is None:
        return {}, body, True
    if not isinstance(meta, dict):
        return {}, "", False
    return {str(key): value for key, value in meta.items()}, body, True


def count_words(value: str) -> int:
    value = html_lib.unescape(value)
    cjk_count = len(CJK_RE.findall(value))
    value = CJK_RE.sub(" ", value)
    return cjk_count + len(WORD_RE.findall(value))


def reading_time(declared: object, body: str) -> int:
    minutes = parse_float(declared)
    if minutes is not None and minutes > 0:
        return round(minutes)
    words = count_words(body)
    if not words:
        return 0
    return math.ceil(words / WORDS_PER_MINUTE)


def normalize_list_spacing(value: str) -> str:
    lines = value.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        list_match = LIST_MARKER_RE.match(line)
        if list_match and not list_match.group("indent"):
            if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                out.append("")
        out.append(line)
    return "\n".join(out)


@dataclass(frozen=True)
class ContentSummary:
    id: str
    title: str
    date: object
    description: str
    cover: str
    cover_alt: str
    cover_caption: str
    reading_time: int


@dataclass(frozen=True)
class ContentFile:
    source_path: Path
    header: dict = field(repr=False, compare=False)
    body: str = field(repr=False, compare=False)
    is_valid: bool
    status: str
    id: str
    lang: str
    slug: str
    canonical: str
    title: str
    template: str
    layout: str
    is_featured: bool
    category: str
    category_label: str
    tags: tuple[str, ...]
    tag_labels: tuple[str, ...]
    series: str
    series_name: str
    series_title: str
    date: object
    updated: object
    description: str
    cover: str
    cover_alt: str
    cover_caption: str
    reading_time: int
    menu_label: str
    is_hidden_on_menu: bool
    menu_order: float

    @classmethod
    def from_source(
        cls,
        source_path: Path,
        meta: dict,
        body: str,
        is_valid: bool,
        default_lang: str = "",
        default_image: str = "",
    ) -> "ContentFile":
        tag_labels = string_list(meta.get("tags"))
        tags = [slugify(tag) for tag in tag_labels]
        series_name = text(meta.get("series"))
        order = parse_float(meta.get("order"))
        identifier = text(meta.get("id"))
        slug = text(meta.get("slug"))
        title = text(meta.get("title"))
        return cls(
            source_path=source_path,
            header=dict(meta),
            body=body,
            is_valid=is_valid,
            status=text(meta.get("status")).lower(),
            id=identifier,
            lang=text(meta.get("lang")) or default_lang,
            slug=slug,
            canonical=text(meta.get("canonical")),
            title=title,
            template=text(meta.get("template")) or "page",
            layout=text(meta.get("layout")) or "default",
            is_featured=parse_bool(meta.get("featured")),
            category=slugify(text(meta.get("category"))),
            category_label=text(meta.get("category")),
            tags=tuple(tag for tag in tags if tag),
            tag_labels=tuple(tag_labels),
            series=slugify(series_name),
            series_name=series_name,
            series_title=text(meta.get("seriesTitle")) if series_name else "",
            date=meta.get("date") or "",
            updated=meta.get("updated") or "",
            description=text(meta.get("description")),
            cover=text(meta.get("cover")) or default_image,
            cover_alt=text(meta.get("coverAlt")),
            cover_caption=text(meta.get("coverCaption")),
            reading_time=reading_time(meta.get("readingTime"), body),
            menu_label=text(meta.get("menu")) or title or identifier or slug,
            is_hidden_on_menu=not parse_bool(meta.get("show")),
            menu_order=order if order is not None else MENU_ORDER_UNSET,
        )

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @property
    def is_draft(self) -> bool:
        return self.status == "draft"

    @property
    def is_post_template(self) -> bool:
        return self.template == "post"

    @property
    def is_eligible(self) -> bool:
        return self.is_valid and self.is_published and not self.is_draft

    @property
    def series_label(self) -> str:
        return self.series_title or self.series_name

    @property
    def summary(self) -> ContentSummary:
        return ContentSummary(
            id=self.id,
            title=self.title,
            date=self.date,
            description=self.description,
            cover=self.cover,
            cover_alt=self.cover_alt,
            cover_caption=self.cover_caption,
            reading_time=self.reading_time,
        )


def load_content_file(path: Path, default_lang: str = "", default_image: str = "") -> ContentFile:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        print(f"Unreadable content file {path}: {exc}", file=sys.stderr)
        return ContentFile.from_source(path, {}, "", False, default_lang, default_image)
    meta, body, is_valid = parse_front_matter(raw_text)
    return ContentFile.from_source(path, meta, body, is_valid, default_lang, default_image)


def load_content_files(directory: Path, default_lang: str = "", default_image: str = "") -> list[ContentFile]:
    if not directory.is_dir():
        return []
    paths = sorted(directory.glob("*.md"), key=lambda p: p.name)

    def load(path: Path) -> ContentFile:
        return load_content_file(path, default_lang, default_image)

    workers = min(MAX_LOAD_WORKERS, len(paths)) if paths else 1
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(load, paths))
    return [load(path) for path in paths]
