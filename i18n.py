# i18n.py - 界面文案 (ja / en)

from datetime import date
from typing import Any, Optional

import config

DEFAULT_LOCALE = 'ja'

TRANSLATIONS = {
    'ja': {
        'nav.blog': 'Blog',
        'nav.talks': 'Talks',
        'nav.about': 'About',
        'home.title': 'nao.dev',
        'home.description': 'Front-end Developer loving Vue ecosystem. 技術のこと、日々のこと、思いついたことを綴るブログ',
        'blog.readingTime': '{minutes}分で読めます',
        'blog.backToHome': 'ホームに戻る',
        'blog.scrollToTop': 'トップへ',
        'talks.title': 'Talks',
        'talks.description': '登壇資料やプレゼンテーションのまとめ',
        'talks.noTalks': 'No talks yet. Check back soon!',
        'talks.slides': 'Slides',
        'talks.video': 'Video',
        'tags.title': 'タグ',
        'tags.tag': 'タグ: {tag}',
        'about.title': 'About',
        'about.description': 'Naoki Haba のプロフィールと開発環境',
        'about.currentlyReading': '現在読んでいる',
        'about.toolsHardware': '開発環境',
        '404.title': 'ページが見つかりません',
        '404.description': 'お探しのページは存在しないか、移動した可能性があります。',
        '404.home': 'ホーム',
        '404.backButton': '前のページに戻る',
        'search.placeholder': '記事を検索...',
        'search.noResults': '結果が見つかりませんでした',
        'search.searching': '検索中...',
        'search.enterKeyword': 'キーワードを入力して検索',
        'search.button': '検索',
    },
    'en': {
        'nav.blog': 'Blog',
        'nav.talks': 'Talks',
        'nav.about': 'About',
        'home.title': 'nao.dev',
        'home.description': 'Front-end Developer loving Vue ecosystem. Sharing technical insights, daily experiences, and random thoughts.',
        'blog.readingTime': '{minutes} min read',
        'blog.backToHome': 'Back to Home',
        'blog.scrollToTop': 'Scroll to Top',
        'talks.title': 'Talks',
        'talks.description': 'Collection of presentations and slides',
        'talks.noTalks': 'No talks yet. Check back soon!',
        'talks.slides': 'Slides',
        'talks.video': 'Video',
        'tags.title': 'Tags',
        'tags.tag': 'Tag: {tag}',
        'about.title': 'About',
        'about.description': "Naoki Haba's profile and development environment",
        'about.currentlyReading': 'Currently Reading',
        'about.toolsHardware': 'Development Environment',
        '404.title': 'Page Not Found',
        '404.description': 'The page you are looking for does not exist or has been moved.',
        '404.home': 'Home',
        '404.backButton': 'Go Back',
        'search.placeholder': 'Search articles...',
        'search.noResults': 'No results found',
        'search.searching': 'Searching...',
        'search.enterKeyword': 'Enter keyword to search',
        'search.button': 'Search',
    },
}

MONTH_NAMES_EN = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
]


def current_locale(locale: Optional[str] = None) -> str:
    locale = locale or config.SITE_LOCALE
    return locale if locale in TRANSLATIONS else DEFAULT_LOCALE


def t(key: str, locale: Optional[str] = None, **params: Any) -> str:
    """查表：当前语言 -> 默认语言 -> key 本身。"""
    table = TRANSLATIONS[current_locale(locale)]
    text = table.get(key) or TRANSLATIONS[DEFAULT_LOCALE].get(key) or key
    for name, value in params.items():
        text = text.replace('{' + name + '}', str(value))
    return text


def format_date(value: date, locale: Optional[str] = None) -> str:
    if current_locale(locale) == 'ja':
        return f"{value.year}年{value.month}月{value.day}日"
    return f"{MONTH_NAMES_EN[value.month - 1]} {value.day}, {value.year}"
