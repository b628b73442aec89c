from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from .config import I18n, SiteConfig, load_config
from .content import load_content_files
from .context import BuildContext
from .errors import NotFoundError
from .pages import (
    build_content_pages,
    build_dynamic_collection_pages,
    build_robots_txt,
    build_rss_feeds,
    build_sitemap,
    copy_localized_html,
    validate_references,
)
from .render import MarkdownRenderer, TemplateStore, copy_static
from .utils import clean_output_dir, parse_bool


def build_site(args: argparse.Namespace, config_data: dict) -> dict:
    project_root = Path.cwd()
    content_dir = Path(args.content)
    output_dir = Path(args.output)

    config = SiteConfig.from_mapping(config_data)
    i18n = I18n.from_mapping(load_config(Path(args.i18n)), config)

    if not content_dir.is_dir():
        print(f"Content directory not found: {content_dir}", file=sys.stderr)
    files = load_content_files(content_dir, i18n.default, config.default_image)
    for file in files:
        if not file.is_valid:
            print(f"Skipping {file.source_path}: invalid front matter.", file=sys.stderr)

    ctx = BuildContext.create(config, i18n, files)
    store = TemplateStore.load(Path(args.layouts), Path(args.templates))
    validate_references(ctx, store)

    if args.clean:
        clean_output_dir(output_dir, project_root)
    output_dir.mkdir(parents=True, exist_ok=True)

    assets_dir = Path(args.assets)
    if assets_dir.is_dir():
        copy_static(assets_dir, output_dir / "assets")

    renderer = MarkdownRenderer(highlight=config.highlight, toc_depth=args.toc_depth)
    generated = build_content_pages(ctx, store, renderer, output_dir)
    generated.extend(build_dynamic_collection_pages(ctx, store, output_dir))
    copied = copy_localized_html(ctx, Path(args.pages), output_dir, set(generated))

    stats = {"pages": len(generated), "copied": len(copied), "feeds": 0, "sitemap": 0}
    if args.enable_rss:
        stats["feeds"] = len(build_rss_feeds(ctx, output_dir))
    if args.enable_sitemap:
        stats["sitemap"] = build_sitemap(ctx, output_dir)
    if args.enable_robots:
        build_robots_txt(ctx, output_dir)
    return stats


def main() -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args()
    config_data = load_config(Path(pre_args.config))
    build_section = config_data.get("build")
    build_section = build_section if isinstance(build_section, dict) else {}

    def cfg_str(key: str, default: str) -> str:
        value = build_section.get(key)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = build_section.get(key)
        return default if value is None else parse_bool(value)

    parser = argparse.ArgumentParser(description="Multilingual Markdown site generator.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--i18n", default=cfg_str("i18n", "i18n.yml"), help="Path to locale and translation file.")
    parser.add_argument("--content", default=cfg_str("content", "content"), help="Directory containing Markdown content.")
    parser.add_argument("--layouts", default=cfg_str("layouts", "layouts"), help="Directory containing page layouts.")
    parser.add_argument(
        "--templates", default=cfg_str("templates", "templates"), help="Directory containing content templates."
    )
    parser.add_argument("--pages", default=cfg_str("pages", "pages"), help="Directory containing static HTML pages.")
    parser.add_argument("--assets", default=cfg_str("assets", "assets"), help="Directory copied to <output>/assets.")
    parser.add_argument("--output", default=cfg_str("output", "dist"), help="Output directory for the site.")
    parser.add_argument("--toc-depth", default=cfg_str("toc_depth", "2-4"), help="Heading depth range for TOC (e.g. 2-4).")
    parser.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean", True),
        help="Clean output directory before build.",
    )
    parser.add_argument(
        "--enable-rss",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_rss", True),
        help="Generate one feed.xml per locale.",
    )
    parser.add_argument(
        "--enable-sitemap",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_sitemap", True),
        help="Generate sitemap.xml.",
    )
    parser.add_argument(
        "--enable-robots",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_robots", True),
        help="Generate robots.txt.",
    )
    args = parser.parse_args()

    start = time.perf_counter()
    try:
        stats = build_site(args, config_data)
    except NotFoundError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(
        f"Built {stats['pages']} pages, copied {stats['copied']} HTML files, "
        f"{stats['feeds']} feeds, {stats['sitemap']} sitemap URLs."
    )
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Site generated in: {args.output}")
