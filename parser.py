# parser.py - Front-matter / 内容集合 schema / Markdown 渲染

import os
import re
import yaml
import markdown
from datetime import datetime, date
from typing import Dict, Any, List, Optional, Tuple
from urllib.parse import urlsplit
import config
import unicodedata
from bs4 import BeautifulSoup


class ContentError(Exception):
    """内容文件无法解析或不符合集合 schema。"""

    def __init__(self, path: str, problems: List[str]):
        self.path = path
        self.problems = problems
        super().__init__(f"{path}: {'; '.join(problems)}")


# 辅助函数 - 将日期时间对象标准化为日期对象
def standardize_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


# -------------------------------------------------------------------------
# 【TOC/目录专用 Slugify】
# -------------------------------------------------------------------------
def my_custom_slugify(s: str, separator: str) -> str:
    s = str(s).lower().strip()
    s = unicodedata.normalize('NFKD', s)
    s = re.sub(r'[^\w\s-]', '', s)
    s = re.sub(r'[\s-]+', separator, s).strip(separator)
    return s


# -------------------------------------------------------------------------
# 【标签/Tag 专用 Slugify】
# -------------------------------------------------------------------------
def tag_to_slug(tag_name: str) -> str:
    return my_custom_slugify(tag_name, '-')


def is_absolute_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


# -------------------------------------------------------------------------
# 【内容集合 Schema】
# -------------------------------------------------------------------------
# 字段: (类型, 是否必填)
BASE_SCHEMA = {
    'title': ('str', True),
    'description': ('str', True),
    'date': ('date', True),
    'tags': ('tags', False),
}

COLLECTION_SCHEMAS = {
    config.BLOG_COLLECTION: dict(BASE_SCHEMA),
    config.TALKS_COLLECTION: {
        **BASE_SCHEMA,
        'event': ('str', False),
        'location': ('str', False),
        'slidesUrl': ('url', False),
        'slidesEmbedUrl': ('url', False),
        'videoUrl': ('url', False),
    },
}


def validate_entry(collection: str, metadata: Dict[str, Any], path: str) -> Dict[str, Any]:
    """按集合 schema 校验并规范化 front-matter，失败时抛出 ContentError。"""
    schema = COLLECTION_SCHEMAS.get(collection)
    if schema is None:
        raise ContentError(path, [f"unknown collection '{collection}'"])

    data = dict(metadata)
    problems = []
    for field, (kind, required) in schema.items():
        value = data.get(field)
        if value is None or value == '':
            if required:
                problems.append(f"'{field}' is required")
            elif kind == 'tags':
                data[field] = []
            else:
                data.pop(field, None)
            continue

        if kind == 'str':
            if not isinstance(value, str):
                problems.append(f"'{field}' must be a string")
        elif kind == 'date':
            parsed = standardize_date(value)
            if parsed is None:
                problems.append(f"'{field}' is not a valid date: {value!r}")
            else:
                data[field] = parsed
        elif kind == 'tags':
            if isinstance(value, str):
                value = [t.strip() for t in value.split(',')]
            if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
                problems.append(f"'{field}' must be a list of strings")
            else:
                data[field] = [t for t in value if t]
        elif kind == 'url':
            if not is_absolute_url(value):
                problems.append(f"'{field}' must be an absolute URL: {value!r}")

    if problems:
        raise ContentError(path, problems)
    return data


# -------------------------------------------------------------------------
# 【Front-matter】
# -------------------------------------------------------------------------
def split_front_matter(content: str, path: str = '<string>') -> Tuple[Dict[str, Any], str]:
    match = re.match(r'---\s*\n(.*?)\n---\s*\n', content, re.DOTALL)
    if not match:
        return {}, content
    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise ContentError(path, [f"invalid YAML front-matter: {exc}"])
    if not isinstance(metadata, dict):
        raise ContentError(path, ["front-matter must be a mapping"])
    return metadata, content[len(match.group(0)):]


def slug_from_path(md_file_path: str) -> str:
    base_name = os.path.splitext(os.path.basename(md_file_path))[0]
    slug_match = re.match(r'^(\d{4}-\d{2}-\d{2}-)?(.*)$', base_name)
    if slug_match and slug_match.group(2):
        return slug_match.group(2).lower()
    return base_name.lower()


# -------------------------------------------------------------------------
# 【阅读时间】
# -------------------------------------------------------------------------
CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")


def reading_time_minutes(text: str) -> int:
    """英文按 200 词/分钟，CJK 字符按 500 字/分钟。"""
    clean_text = re.sub(r'<[^>]+>', '', text)
    cjk_chars = len(CJK_RE.findall(clean_text))
    words = len(CJK_RE.sub(' ', clean_text).split())
    return max(1, round(words / 200 + cjk_chars / 500))


# -------------------------------------------------------------------------
# 【代码块后处理】
# -------------------------------------------------------------------------
LANG_MAP = {
    'py': 'PYTHON', 'python': 'PYTHON',
    'js': 'JS', 'javascript': 'JS',
    'ts': 'TS', 'typescript': 'TS',
    'vue': 'VUE',
    'sh': 'SHELL', 'bash': 'SHELL', 'shell': 'SHELL', 'zsh': 'SHELL',
    'html': 'HTML', 'css': 'CSS', 'scss': 'CSS',
    'json': 'JSON', 'sql': 'SQL', 'yaml': 'YAML', 'yml': 'YAML',
    'md': 'MARKDOWN', 'markdown': 'MARKDOWN',
    'go': 'GO', 'rust': 'RUST',
}

COPY_ICON_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="16" height="16" viewBox="0 0 24 24" '
    'fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">'
    '<rect x="9" y="9" width="13" height="13" rx="2" ry="2"></rect>'
    '<path d="M5 15H4a2 2 0 0 1-2-2V4a2 2 0 0 1 2-2h9a2 2 0 0 1 2 2v1"></path></svg>'
)


def add_copy_button(soup: BeautifulSoup, pre) -> None:
    """代码块右上角的复制按钮 (点击逻辑在 static/js/enhancements.js)。"""
    if pre.find(class_='code-copy-button-container'):
        return
    container = soup.new_tag('div', attrs={'class': 'code-copy-button-container'})
    button = soup.new_tag('button', attrs={
        'class': 'code-copy-button',
        'type': 'button',
        'aria-label': 'Copy code',
    })
    button.append(BeautifulSoup(COPY_ICON_SVG, 'html.parser').svg.extract())
    label = soup.new_tag('span')
    label.string = 'Copy'
    button.append(label)
    container.append(button)
    pre.append(container)


def post_process_html(html_content: str) -> str:
    """
    使用 BeautifulSoup 对 HTML 进行后处理：
    1. 图片懒加载 (favicon 已自带 loading)
    2. 表格包裹
    3. 代码块语言标签 + 复制按钮
    """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, 'html.parser')

    for img in soup.find_all('img'):
        if not img.get('loading'):
            img['loading'] = 'lazy'

    for table in soup.find_all('table'):
        parent = table.parent
        if parent and 'table-wrapper' not in parent.get('class', []):
            wrapper_div = soup.new_tag('div', attrs={'class': 'table-wrapper'})
            table.replace_with(wrapper_div)
            wrapper_div.append(table)

    for div in soup.find_all('div', class_=config.CODE_HIGHLIGHT_CLASS):
        lang = 'CODE'
        for cls in div.get('class', []):
            if cls != config.CODE_HIGHLIGHT_CLASS:
                # pymdownx.highlight 输出 "language-python"
                name = cls.lower()
                if name.startswith('language-'):
                    name = name[len('language-'):]
                lang = LANG_MAP.get(name, name.upper())
                break
        pre = div.find('pre')
        if pre:
            pre['data-lang'] = lang

    for pre in soup.find_all('pre'):
        add_copy_button(soup, pre)

    return str(soup)


def render_markdown(content_markdown: str) -> Tuple[str, str]:
    """渲染 Markdown，返回 (content_html, toc_html)。每次调用新建 Markdown 实例。"""
    extension_configs = {name: dict(opts) for name, opts in config.MARKDOWN_EXTENSION_CONFIGS.items()}
    if 'toc' in extension_configs:
        extension_configs['toc']['slugify'] = my_custom_slugify

    md = markdown.Markdown(
        extensions=config.MARKDOWN_EXTENSIONS,
        extension_configs=extension_configs,
        output_format='html5',
    )
    raw_html = md.convert(content_markdown)
    toc_html = getattr(md, 'toc', '')
    return post_process_html(raw_html), toc_html


def load_entry(md_file_path: str, collection: str) -> Dict[str, Any]:
    """
    读取集合中的一篇内容并返回 entry 字典：
    front-matter 字段 + slug / collection / content_html / toc_html / reading_time。
    """
    try:
        with open(md_file_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        raise ContentError(md_file_path, [f"cannot read file: {e}"])

    metadata, content_markdown = split_front_matter(content, md_file_path)
    entry = validate_entry(collection, metadata, md_file_path)

    entry['slug'] = str(entry.get('slug') or slug_from_path(md_file_path)).lower()
    entry['collection'] = collection
    entry['draft'] = entry.get('draft') is True
    entry['tags'] = [{'name': t, 'slug': tag_to_slug(t)} for t in entry.get('tags', [])]
    entry['content_markdown'] = content_markdown
    entry['content_html'], entry['toc_html'] = render_markdown(content_markdown)
    entry['reading_time'] = reading_time_minutes(entry['content_html'])
    entry['source_path'] = md_file_path
    return entry


def load_page(md_file_path: str) -> Dict[str, Any]:
    """about / 404 等独立页面：schema 宽松，只要求能解析。"""
    try:
        with open(md_file_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        raise ContentError(md_file_path, [f"cannot read file: {e}"])

    metadata, content_markdown = split_front_matter(content, md_file_path)
    page = dict(metadata)
    page.setdefault('slug', slug_from_path(md_file_path))
    page.setdefault('title', page['slug'].replace('-', ' ').title())
    page['content_html'], page['toc_html'] = render_markdown(content_markdown)
    return page
