# autobuild.py - 全量构建入口

import os
import shutil
import glob
import hashlib
import logging
from typing import List, Dict, Any, Optional
from collections import defaultdict

import requests

import config
import generator
import ogp
from parser import ContentError, load_entry, load_page


def setup_logging():
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)


def hash_file(filepath: str) -> str:
    """计算文件的 SHA256 哈希值前 8 位。用于 CSS 文件名。"""
    hasher = hashlib.sha256()
    try:
        with open(filepath, 'rb') as f:
            hasher.update(f.read())
        return hasher.hexdigest()[:8]
    except FileNotFoundError:
        return 'nohash'


def copy_assets():
    static_output_dir = os.path.join(config.BUILD_DIR, config.STATIC_DIR)
    assets_output_dir = os.path.join(config.BUILD_DIR, config.ASSETS_DIR)
    if os.path.exists(config.STATIC_DIR):
        shutil.copytree(config.STATIC_DIR, static_output_dir, dirs_exist_ok=True)

    os.makedirs(assets_output_dir, exist_ok=True)
    css_source = os.path.join(config.ASSETS_DIR, 'style.css')
    if os.path.exists(css_source):
        new_css = f"style.{hash_file(css_source)}.css"
        config.CSS_FILENAME = new_css
        shutil.copy2(css_source, os.path.join(assets_output_dir, new_css))
    else:
        config.CSS_FILENAME = 'style.css'


def load_collection(collection: str) -> List[Dict[str, Any]]:
    """读取 markdown/<collection>/*.md，不合法的条目报告后跳过。"""
    entries = []
    seen_slugs: Dict[str, str] = {}
    md_files = sorted(glob.glob(os.path.join(config.MARKDOWN_DIR, collection, '*.md')))
    for md_file in md_files:
        try:
            entry = load_entry(md_file, collection)
        except ContentError as e:
            print(f"   -> [INVALID] {e}")
            continue

        if entry['slug'] in seen_slugs:
            print(f"   -> [DUPLICATE] {md_file}: slug '{entry['slug']}' already used by {seen_slugs[entry['slug']]}")
            continue
        seen_slugs[entry['slug']] = md_file
        entries.append(entry)
    return generator.sort_newest_first(entries)


def load_optional_page(file_name: str) -> Optional[Dict[str, Any]]:
    path = os.path.join(config.MARKDOWN_DIR, file_name)
    if not os.path.exists(path):
        return None
    try:
        return load_page(path)
    except ContentError as e:
        print(f"   -> [INVALID] {e}")
        return None


def build_tag_map(posts: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    tag_map = defaultdict(list)
    for post in posts:
        if generator.is_draft(post):
            continue
        for tag in post.get('tags', []):
            tag_map[tag['name']].append(post)
    return tag_map


def load_og_font(session: Optional[requests.Session] = None) -> Optional[bytes]:
    """整个构建只下载一次字体；失败时返回 None 并跳过 OGP 图片。"""
    try:
        return ogp.fetch_font(session)
    except (ogp.OgImageError, requests.RequestException, OSError) as e:
        print(f"   -> [SKIPPED] OG images: {e}")
        return None


def build_site():
    setup_logging()
    print("\n" + "=" * 40)
    print("   🚀 STARTING BUILD PROCESS")
    print("=" * 40 + "\n")

    # -------------------------------------------------------------------------
    # [1/5] 准备输出目录
    # -------------------------------------------------------------------------
    print("[1/5] Preparing build directory...")
    if os.path.exists(config.BUILD_DIR):
        shutil.rmtree(config.BUILD_DIR)
    os.makedirs(config.BUILD_DIR, exist_ok=True)

    # -------------------------------------------------------------------------
    # [2/5] 资源处理
    # -------------------------------------------------------------------------
    print("\n[2/5] Processing Assets...")
    copy_assets()

    # -------------------------------------------------------------------------
    # [3/5] 解析内容集合
    # -------------------------------------------------------------------------
    print("\n[3/5] Parsing Content Collections...")
    posts = load_collection(config.BLOG_COLLECTION)
    talks = load_collection(config.TALKS_COLLECTION)
    about_page = load_optional_page(config.ABOUT_PAGE)
    not_found_page = load_optional_page(config.NOT_FOUND_PAGE)
    print(f"   -> Parsed {len(posts)} blog posts, {len(talks)} talks.")

    # -------------------------------------------------------------------------
    # [4/5] 上一篇/下一篇 & 标签
    # -------------------------------------------------------------------------
    print("\n[4/5] Linking posts and tags...")
    published_posts = [p for p in posts if not generator.is_draft(p)]
    tag_map = build_tag_map(posts)
    print(f"   -> {len(tag_map)} tags.")

    # -------------------------------------------------------------------------
    # [5/5] 生成页面
    # -------------------------------------------------------------------------
    print("\n[5/5] Generating HTML...")
    for i, post in enumerate(published_posts):
        prev_post = published_posts[i - 1] if i > 0 else None
        next_post = published_posts[i + 1] if i < len(published_posts) - 1 else None
        generator.generate_post_page(post, prev_post, next_post)

    for talk in talks:
        if not generator.is_draft(talk):
            generator.generate_talk_page(talk)

    generator.generate_index_html(posts)
    generator.generate_blog_list_html(posts)
    generator.generate_talks_html(talks)
    generator.generate_tags_list_html(tag_map)
    for tag_name, tagged_posts in tag_map.items():
        generator.generate_tag_page(tag_name, generator.sort_newest_first(tagged_posts))

    extra_paths = []
    if about_page:
        generator.generate_page_html(about_page, 'about', 'about')
        extra_paths.append('about')
    if not_found_page:
        generator.generate_page_html(not_found_page, '404', '404.html')

    generator.generate_robots_txt()
    with open(os.path.join(config.BUILD_DIR, config.SITEMAP_FILE), 'w', encoding='utf-8') as f:
        f.write(generator.generate_sitemap(posts, talks, extra_paths))
    with open(os.path.join(config.BUILD_DIR, config.RSS_FILE), 'w', encoding='utf-8') as f:
        f.write(generator.generate_rss(posts))
    print(f"Generated: {config.SITEMAP_FILE}, {config.RSS_FILE}")

    if config.OG_IMAGE_ENABLED and published_posts:
        font_data = load_og_font()
        if font_data:
            for post in published_posts:
                generator.generate_og_image(post, font_data)

    print("\n✅ BUILD COMPLETE")


if __name__ == '__main__':
    build_site()
