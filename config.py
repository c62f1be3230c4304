# config.py

# --- 站点配置 ---
BASE_URL = "https://nao-dev.netlify.app/"
# 部署在子目录时填写，例如 "/blog-repo"
REPO_SUBPATH = ""

# 内部链接的根路径
SITE_ROOT = REPO_SUBPATH.rstrip('/')

SITE_NAME = "nao.dev"
BLOG_TITLE = "nao.dev"
BLOG_DESCRIPTION = "Front-end Developer loving Vue ecosystem. 技術のこと、日々のこと、思いついたことを綴るブログ"
BLOG_AUTHOR = "Naoki Haba"

# 默认语言 (i18n.py 中的 key)
SITE_LOCALE = 'ja'

# 存储 CSS 文件的哈希名
CSS_FILENAME = 'style.css'

CODE_HIGHLIGHT_CLASS = 'highlight'

# --- 日志 ---
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# --- 外链 Favicon ---
FAVICON_SERVICE_URL = "https://www.google.com/s2/favicons?domain={domain}&sz=16"
FAVICON_CLASS = 'inline-favicon'
FAVICON_SIZE = 16
FAVICON_STYLE = 'display: inline; margin: 0 0.25rem 0 0; vertical-align: middle;'

# --- Markdown 配置 ---
MARKDOWN_EXTENSIONS = [
    'extra',              # 包含 fenced_code (```), tables, footnotes
    'toc',                # 目录
    'admonition',         # 提示块
    'sane_lists',         # 更好的列表
    'pymdownx.tasklist',  # 任务列表支持 (- [ ])
    'pymdownx.tilde',     # 删除线支持 (~~text~~)
    'pymdownx.highlight',
    'pymdownx.superfences',
    'markdown_favicon:FaviconLinkExtension',  # 外链前插入 favicon
]

MARKDOWN_EXTENSION_CONFIGS = {
    'toc': {
        'baselevel': 2,
        'anchorlink': True,
    },
    'pymdownx.highlight': {
        'use_pygments': True,
        'css_class': CODE_HIGHLIGHT_CLASS,
        'guess_lang': True,
        'anchor_linenums': True,
        'pygments_style': 'default',
        'noclasses': False,            # 必须为 False，以便使用 CSS 类
    },
    'pymdownx.superfences': {
        'css_class': CODE_HIGHLIGHT_CLASS,
    },
    'pymdownx.tasklist': {
        'custom_checkbox': True,
        'clickable_checkbox': False,
    },
}
# --- Markdown 配置结束 ---

# --- OGP 图片 ---
OG_IMAGE_ENABLED = True
OG_IMAGE_SIZE = (1200, 630)   # Twitter/OGP 推荐尺寸
OG_GRADIENT = ('#667eea', '#764ba2')
OG_FONT_CSS_URL = 'https://fonts.googleapis.com/css2?family=Noto+Sans+JP:wght@700&display=swap'
# 本地字体文件 (离线构建时使用，优先于网络下载)
OG_FONT_PATH = ''
OG_FETCH_TIMEOUT = 30

# --- 列表配置 ---
MAX_POSTS_ON_INDEX = 5

# --- 目录和文件配置 ---
MARKDOWN_DIR = 'markdown'
BLOG_COLLECTION = 'blog'
TALKS_COLLECTION = 'talks'
BUILD_DIR = '_site'
BLOG_DIR_NAME = 'blog'
TALKS_DIR_NAME = 'talks'
TAGS_DIR_NAME = 'tags'
OG_DIR_NAME = 'og'
STATIC_DIR = 'static'
ASSETS_DIR = 'assets'

ABOUT_PAGE = 'about.md'
NOT_FOUND_PAGE = '404.md'

# 特殊文件名称
SITEMAP_FILE = 'sitemap.xml'
RSS_FILE = 'rss.xml'
