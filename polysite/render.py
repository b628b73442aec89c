from __future__ import annotations

import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path

import markdown

from .config import LanguageConfig
from .errors import LayoutNotFoundError, TemplateNotFoundError
from .meta import normalize_alternate_locales

VIRTUAL_ROOT_RE = re.compile(r'\b(src|href)="~/')
HTML_LANG_RE = re.compile(r'(<html\b[^>]*\slang=")(.*?)"')
META_LANGUAGE_RE = re.compile(r'(<meta name="language" content=")(.*?)"')
CANONICAL_RE = re.compile(r'(<link rel="canonical" href=")(.*?)" data-canonical')
OG_URL_RE = re.compile(r'(<meta property="og:url" content=")(.*?)" data-og-url')
TWITTER_URL_RE = re.compile(r'(<meta name="twitter:url" content=")(.*?)" data-twitter-url')
OG_LOCALE_RE = re.compile(r'(<meta property="og:locale" content=")(.*?)" data-og-locale')
OG_LOCALE_ANCHOR_RE = re.compile(r'(<meta property="og:locale" content=".*?" data-og-locale\s*/?>)')
OG_ALT_LOCALE_RE = re.compile(
    r'([^\S\r\n]*)<meta property="og:locale:alternate" content=".*?" data-og-locale-alt\s*/?>'
)
OG_ALT_LOCALE_CLEANUP_RE = re.compile(
    r'[^\S\r\n]*<meta property="og:locale:alternate" content=".*?" data-og-locale-alt\s*/?>\s*'
)

LATE_KEYS = ("content", "body", "listing")


def render_template(template: str, **context: str) -> str:
    output = template
    for key, value in context.items():
        if key in LATE_KEYS:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    for key in LATE_KEYS:
        if key in context:
            output = output.replace(f"{{{{{key}}}}}", context[key])
    return output


def resolve_virtual_root(html_text: str) -> str:
    return VIRTUAL_ROOT_RE.sub(r'\1="/', html_text)


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_static(static_dir: Path, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    for item in static_dir.iterdir():
        dest = output_dir / item.name
        if item.is_dir():
            if dest.exists():
                shutil.rmtree(dest)
            shutil.copytree(item, dest)
        else:
            shutil.copy2(item, dest)


def load_html_files(directory: Path) -> dict[str, str]:
    if not directory.is_dir():
        return {}
    return {path.stem: read_template(path) for path in sorted(directory.glob("*.html"))}


@dataclass(frozen=True)
class TemplateStore:
    layouts: dict[str, str] = field(default_factory=dict)
    templates: dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, layouts_dir: Path, templates_dir: Path) -> "TemplateStore":
        return cls(layouts=load_html_files(layouts_dir), templates=load_html_files(templates_dir))

    def layout(self, name: str) -> str:
        try:
            return self.layouts[name]
        except KeyError:
            raise LayoutNotFoundError(name) from None

    def template(self, name: str) -> str:
        try:
            return self.templates[name]
        except KeyError:
            raise TemplateNotFoundError(name) from None


class MarkdownRenderer:
    def __init__(self, highlight: bool = False, toc_depth: str = "2-4") -> None:
        extensions = ["fenced_code", "tables", "toc"]
        extension_configs: dict = {"toc": {"toc_depth": toc_depth}}
        if highlight:
            extensions.append("codehilite")
            extension_configs["codehilite"] = {"guess_lang": False, "css_class": "highlight"}
        self.extensions = extensions
        self.extension_configs = extension_configs

    def render(self, body: str) -> tuple[str, str]:
        md = markdown.Markdown(extensions=self.extensions, extension_configs=self.extension_configs)
        html_content = md.convert(body)
        toc_html = md.toc
        md.reset()
        return html_content, toc_html


def inject_alternate_locale_meta(html_text: str, locales: list[str]) -> str:
    indent_match = OG_ALT_LOCALE_RE.search(html_text)
    indent = indent_match.group(1) if indent_match else "  "
    output = OG_ALT_LOCALE_CLEANUP_RE.sub("", html_text)
    if not locales:
        return output
    tags = "\n".join(
        f'{indent}<meta property="og:locale:alternate" content="{locale}" data-og-locale-alt />'
        for locale in locales
    )
    if OG_LOCALE_ANCHOR_RE.search(output):
        return OG_LOCALE_ANCHOR_RE.sub(lambda match: f"{match.group(1)}\n{tags}", output, count=1)
    return f"{tags}\n{output}"


def apply_language_metadata(html_text: str, config: LanguageConfig | None, canonical: str = "") -> str:
    if config is None:
        return html_text
    canonical = canonical or config.canonical

    def swap(pattern: re.Pattern, value: str, suffix: str = "") -> None:
        nonlocal html_text
        if value:
            html_text = pattern.sub(lambda match: f'{match.group(1)}{value}"{suffix}', html_text, count=1)

    swap(HTML_LANG_RE, config.lang_attr)
    swap(META_LANGUAGE_RE, config.meta_language)
    swap(CANONICAL_RE, canonical, " data-canonical")
    swap(OG_URL_RE, canonical, " data-og-url")
    swap(TWITTER_URL_RE, canonical, " data-twitter-url")
    swap(OG_LOCALE_RE, config.og_locale, " data-og-locale")
    return inject_alternate_locale_meta(html_text, normalize_alternate_locales(list(config.alt_locale)))
