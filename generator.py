# generator.py (页面渲染 + 运行期外链 favicon + RSS/Sitemap/OGP)

import html
import json
import os
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

import minify_html
from jinja2 import Environment, FileSystemLoader

import config
import i18n
import ogp
from live_page import LivePage, install_favicon_links
from parser import tag_to_slug

# --- Jinja2 环境配置 ---
TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')
env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True
)
env.globals['t'] = i18n.t
env.filters['format_date'] = i18n.format_date

# --- 辅助函数：路径和 URL ---

def get_site_root_prefix() -> str:
    """获取网站在部署环境中的相对子目录路径前缀。"""
    root = config.REPO_SUBPATH.strip()
    if not root or root == '/':
        config.SITE_ROOT = ''
        return ''
    root = root.rstrip('/')
    config.SITE_ROOT = root if root.startswith('/') else f'/{root}'
    return config.SITE_ROOT


def make_internal_url(path: str) -> str:
    """
    生成规范化的内部 URL。
    页面统一为目录模式 (/blog/slug/)，带扩展名的文件 (rss.xml, og/x.png, 404.html) 保持原样。
    """
    if not path:
        return ""

    normalized_path = path if path.startswith('/') else f'/{path}'
    last_segment = normalized_path.rstrip('/').rsplit('/', 1)[-1]
    extension = os.path.splitext(last_segment)[1].lower()

    if normalized_path.lower() in ('/index', '/index.html'):
        normalized_path = '/'
    elif extension == '.html' and normalized_path.lower() != '/404.html':
        normalized_path = f'{normalized_path[:-5]}/'
    elif not extension and not normalized_path.endswith('/'):
        normalized_path = f'{normalized_path}/'

    site_root = get_site_root_prefix()
    if not site_root:
        return normalized_path
    return f"{site_root}{normalized_path}"


def absolute_url(path: str) -> str:
    return f"{config.BASE_URL.rstrip('/')}{make_internal_url(path)}"


def post_path(entry: Dict[str, Any]) -> str:
    directory = config.BLOG_DIR_NAME if entry.get('collection') != config.TALKS_COLLECTION else config.TALKS_DIR_NAME
    return f"{directory}/{entry['slug']}/"


def og_image_path(post: Dict[str, Any]) -> str:
    return f"{config.OG_DIR_NAME}/{post['slug']}.png"


def is_draft(entry: Dict[str, Any]) -> bool:
    return entry.get('draft') is True


def sort_newest_first(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(entries, key=lambda e: e['date'], reverse=True)


def with_links(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """复制 entry，附加模板需要的 link / 标签 link。"""
    cleaned = []
    for entry in entries:
        new_entry = entry.copy()
        new_entry['link'] = make_internal_url(post_path(entry))
        new_entry['tags'] = [
            {**tag, 'link': make_internal_url(f"{config.TAGS_DIR_NAME}/{tag['slug']}")}
            for tag in entry.get('tags', [])
        ]
        cleaned.append(new_entry)
    return cleaned

# --- 页面增强与输出 ---

def minify_html_content(html_content: str) -> str:
    return minify_html.minify(
        html_content,
        do_not_minify_doctype=True,
        keep_comments=False,
        minify_css=True,
        minify_js=True,
        keep_html_and_head_opening_tags=True,
    )


def enhance_page(html_content: str, late_fragments: Optional[Dict[str, str]] = None) -> str:
    """
    页面加载后的增强：把渲染结果当作活文档，安装外链 favicon 监听器，
    然后把后插入的片段 (id -> markup) 注入页面。
    """
    page = LivePage(html_content)
    annotator = install_favicon_links(page)
    page.finish_loading()

    for element_id, markup in (late_fragments or {}).items():
        target = page.soup.find(id=element_id)
        if target is None:
            print(f"   -> [WARN] Missing placeholder #{element_id}")
            continue
        page.insert_html(target, markup)

    annotator.dispose()
    return str(page)


def base_context(page_id: str, page_title: str, canonical_path: str, **extra: Any) -> Dict[str, Any]:
    context = {
        'page_id': page_id,
        'page_title': page_title,
        'blog_title': config.BLOG_TITLE,
        'blog_description': config.BLOG_DESCRIPTION,
        'blog_author': config.BLOG_AUTHOR,
        'site_name': config.SITE_NAME,
        'locale': i18n.current_locale(),
        'site_root': get_site_root_prefix(),
        'current_year': datetime.now().year,
        'css_filename': config.CSS_FILENAME,
        'canonical_url': absolute_url(canonical_path),
        'og_image_url': None,
        'json_ld_schema': None,
        'rss_url': make_internal_url(config.RSS_FILE),
    }
    context.update(extra)
    return context


def render_page(context: Dict[str, Any], output_path: str,
                late_fragments: Optional[Dict[str, str]] = None) -> str:
    template = env.get_template('base.html')
    html_content = template.render(context)
    html_content = enhance_page(html_content, late_fragments)
    minified_html_content = minify_html_content(html_content)

    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(minified_html_content)
    return minified_html_content


def output_path_for(path: str) -> str:
    """'blog/slug/' -> _site/blog/slug/index.html"""
    clean = path.strip('/')
    if os.path.splitext(clean)[1]:
        return os.path.join(config.BUILD_DIR, clean)
    return os.path.join(config.BUILD_DIR, clean, 'index.html')

# --- 核心生成函数 ---

def get_json_ld_schema(post: Dict[str, Any]) -> str:
    """生成 BlogPosting 类型的 JSON-LD 结构化数据。"""
    schema = {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "headline": post['title'],
        "description": post.get('description', config.BLOG_DESCRIPTION),
        "image": absolute_url(og_image_path(post)),
        "datePublished": post['date'].isoformat(),
        "dateModified": post['date'].isoformat(),
        "author": {
            "@type": "Person",
            "name": config.BLOG_AUTHOR
        },
        "publisher": {
            "@type": "Organization",
            "name": config.BLOG_TITLE,
        },
        "keywords": [tag['name'] for tag in post.get('tags', [])],
        "mainEntityOfPage": {
            "@type": "WebPage",
            "url": absolute_url(post_path(post))
        }
    }
    return json.dumps(schema, ensure_ascii=False, indent=4)


def generate_post_page(post: Dict[str, Any], prev_post: Optional[Dict[str, Any]] = None,
                       next_post: Optional[Dict[str, Any]] = None):
    """生成单篇文章页面 (blog/slug/index.html)"""
    try:
        path = post_path(post)
        processed = with_links([post])[0]
        nav = with_links([p for p in (prev_post, next_post) if p])
        context = base_context(
            'post', post['title'], path,
            blog_description=post.get('description', config.BLOG_DESCRIPTION),
            post=processed,
            content_html=post['content_html'],
            toc_html=post.get('toc_html'),
            prev_post_nav=nav[0] if prev_post else None,
            next_post_nav=nav[-1] if next_post else None,
            og_image_url=absolute_url(og_image_path(post)),
            json_ld_schema=get_json_ld_schema(post),
        )
        output_path = output_path_for(path)
        render_page(context, output_path)
        print(f"Generated: {output_path}")
    except Exception as e:
        print(f"Error generating post {post.get('title')}: {e}")


def generate_index_html(sorted_posts: List[Dict[str, Any]]):
    """生成首页 (index.html)"""
    try:
        visible_posts = [p for p in sorted_posts if not is_draft(p)][:config.MAX_POSTS_ON_INDEX]
        context = base_context(
            'index', i18n.t('home.title'), '/',
            blog_description=i18n.t('home.description'),
            posts=with_links(visible_posts),
        )
        render_page(context, output_path_for('/'))
        print("Generated: index.html")
    except Exception as e:
        print(f"Error index.html: {e}")


def generate_blog_list_html(sorted_posts: List[Dict[str, Any]]):
    """生成文章列表页 (blog/index.html)"""
    try:
        visible_posts = [p for p in sorted_posts if not is_draft(p)]
        context = base_context(
            'blog', i18n.t('nav.blog'), config.BLOG_DIR_NAME,
            posts=with_links(visible_posts),
        )
        render_page(context, output_path_for(config.BLOG_DIR_NAME))
        print(f"Generated: {config.BLOG_DIR_NAME}/index.html")
    except Exception as e:
        print(f"Error blog list: {e}")


def talk_links_html(talk: Dict[str, Any]) -> str:
    return env.get_template('partials/talk_links.html').render(talk=talk)


def generate_talks_html(sorted_talks: List[Dict[str, Any]]):
    """
    生成登壇一覧 (talks/index.html)
    幻灯片/视频链接在页面加载后注入，由运行期监听器补上 favicon。
    """
    try:
        visible_talks = [t for t in sorted_talks if not is_draft(t)]
        context = base_context(
            'talks', i18n.t('talks.title'), config.TALKS_DIR_NAME,
            blog_description=i18n.t('talks.description'),
            talks=with_links(visible_talks),
        )
        late_fragments = {
            f"talk-links-{talk['slug']}": talk_links_html(talk)
            for talk in visible_talks
            if talk.get('slidesUrl') or talk.get('videoUrl')
        }
        render_page(context, output_path_for(config.TALKS_DIR_NAME), late_fragments)
        print(f"Generated: {config.TALKS_DIR_NAME}/index.html")
    except Exception as e:
        print(f"Error talks: {e}")


def generate_talk_page(talk: Dict[str, Any]):
    """生成单个登壇页面 (talks/slug/index.html)"""
    try:
        path = post_path(talk)
        context = base_context(
            'talk', talk['title'], path,
            blog_description=talk.get('description', config.BLOG_DESCRIPTION),
            post=with_links([talk])[0],
            content_html=talk['content_html'],
        )
        late_fragments = {}
        if talk.get('slidesUrl') or talk.get('videoUrl'):
            late_fragments[f"talk-links-{talk['slug']}"] = talk_links_html(talk)
        output_path = output_path_for(path)
        render_page(context, output_path, late_fragments)
        print(f"Generated: {output_path}")
    except Exception as e:
        print(f"Error generating talk {talk.get('title')}: {e}")


def generate_tags_list_html(tag_map: Dict[str, List[Dict[str, Any]]]):
    """生成标签列表页 (tags/index.html)"""
    try:
        sorted_tags = sorted(tag_map.items(), key=lambda item: len(item[1]), reverse=True)
        tags = []
        for tag_name, posts in sorted_tags:
            count = len(posts)
            tags.append({
                'name': tag_name,
                'link': make_internal_url(f"{config.TAGS_DIR_NAME}/{tag_to_slug(tag_name)}"),
                'count': count,
                'font_size': max(1.0, min(2.5, 0.8 + count * 0.15)),
            })
        context = base_context('tags', i18n.t('tags.title'), config.TAGS_DIR_NAME, tags=tags)
        render_page(context, output_path_for(config.TAGS_DIR_NAME))
        print(f"Generated: {config.TAGS_DIR_NAME}/index.html")
    except Exception as e:
        print(f"Error tags.html: {e}")


def generate_tag_page(tag_name: str, sorted_tag_posts: List[Dict[str, Any]]):
    """生成单个标签页面 (tags/slug/index.html)"""
    try:
        tag_slug = tag_to_slug(tag_name)
        path = f"{config.TAGS_DIR_NAME}/{tag_slug}"
        context = base_context(
            'tag', i18n.t('tags.tag', tag=tag_name), path,
            posts=with_links(sorted_tag_posts),
            tag=tag_name,
        )
        render_page(context, output_path_for(path))
        print(f"Generated tag page: {tag_name}")
    except Exception as e:
        print(f"Error tag page {tag_name}: {e}")


def generate_page_html(page: Dict[str, Any], page_id: str, path: str):
    """生成独立页面 (about/index.html, 404.html)"""
    try:
        context = base_context(
            page_id, page['title'], path,
            blog_description=page.get('description', config.BLOG_DESCRIPTION),
            content_html=page['content_html'],
        )
        output_path = output_path_for(path)
        render_page(context, output_path)
        print(f"Generated: {output_path}")
    except Exception as e:
        print(f"Error {page_id}: {e}")

# --- OGP 图片 ---

def generate_og_image(post: Dict[str, Any], font_data: Optional[bytes]):
    try:
        png = ogp.render_og_image(post['title'], i18n.format_date(post['date']), font_data)
        output_path = output_path_for(og_image_path(post))
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
        with open(output_path, 'wb') as f:
            f.write(png)
        print(f"Generated: {output_path}")
    except Exception as e:
        print(f"Error OG image {post.get('title')}: {e}")

# --- 辅助生成：Robots, Sitemap, RSS ---

def generate_robots_txt():
    try:
        output_path = os.path.join(config.BUILD_DIR, 'robots.txt')
        content = f"User-agent: *\nAllow: /\nSitemap: {absolute_url(config.SITEMAP_FILE)}\n"
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(content)
        print("Generated: robots.txt")
    except Exception as e:
        print(f"Error robots.txt: {e}")


def generate_sitemap(posts: List[Dict[str, Any]], talks: List[Dict[str, Any]],
                     extra_paths: Optional[List[str]] = None) -> str:
    """生成 sitemap.xml"""
    urls = []
    static_pages = [('/', '1.0'), (config.BLOG_DIR_NAME, '0.8'), (config.TALKS_DIR_NAME, '0.8'),
                    (config.TAGS_DIR_NAME, '0.5')]
    static_pages += [(path, '0.5') for path in (extra_paths or [])]
    for path, prio in static_pages:
        urls.append(f"<url><loc>{html.escape(absolute_url(path))}</loc><priority>{prio}</priority></url>")

    tag_slugs = set()
    for entry in list(posts) + list(talks):
        if is_draft(entry):
            continue
        link = html.escape(absolute_url(post_path(entry)))
        lastmod = entry['date'].strftime('%Y-%m-%d')
        urls.append(f"<url><loc>{link}</loc><lastmod>{lastmod}</lastmod><priority>0.6</priority></url>")
        tag_slugs.update(tag['slug'] for tag in entry.get('tags', []))

    for slug in sorted(tag_slugs):
        link = html.escape(absolute_url(f'{config.TAGS_DIR_NAME}/{slug}'))
        urls.append(f"<url><loc>{link}</loc><priority>0.5</priority></url>")

    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{"".join(urls)}</urlset>'


def rfc822(value) -> str:
    return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc).strftime('%a, %d %b %Y %H:%M:%S +0000')


def generate_rss(posts: List[Dict[str, Any]]) -> str:
    """生成 RSS Feed (全部已发布文章，新的在前)"""
    items = []
    for post in sort_newest_first([p for p in posts if not is_draft(p)]):
        link = html.escape(absolute_url(post_path(post)))
        items.append(
            f"<item><title>{html.escape(post['title'])}</title><link>{link}</link>"
            f"<guid isPermaLink=\"true\">{link}</guid>"
            f"<description>{html.escape(post.get('description', ''))}</description>"
            f"<pubDate>{rfc822(post['date'])}</pubDate></item>"
        )

    rss_link = html.escape(absolute_url(config.RSS_FILE))
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom"><channel>'
        f'<title>{html.escape(config.BLOG_TITLE)}</title>'
        f'<description>{html.escape(config.BLOG_DESCRIPTION)}</description>'
        f'<link>{html.escape(absolute_url("/"))}</link>'
        f'<language>{i18n.current_locale()}</language>'
        f'<atom:link href="{rss_link}" rel="self" type="application/rss+xml" />'
        f'<lastBuildDate>{datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S +0000")}</lastBuildDate>'
        f'{"".join(items)}</channel></rss>'
    )
