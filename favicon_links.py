# favicon_links.py - 外链分类 + favicon 注入的公共逻辑

import logging
import re
from typing import Any, Dict, Iterable, NamedTuple, Optional, Union
from urllib.parse import unquote

import config

logger = logging.getLogger(__name__)

# RFC 3986 scheme
SCHEME_RE = re.compile(r'^([A-Za-z][A-Za-z0-9+.\-]*):')
# 解析前删除的 ASCII tab 和换行
TAB_OR_NEWLINE_RE = re.compile(r'[\t\n\r]')
CONTROL_CHARS_RE = re.compile(r'[\x00-\x1f\x7f]')
# authority 结束于路径、查询或片段
AUTHORITY_END_RE = re.compile(r'[/\\?#]')
# WHATWG forbidden host code points
FORBIDDEN_HOST_CHARS_RE = re.compile(r'[\x00-\x20#%/:<>?@\[\\\]^|\x7f]')

WEB_SCHEMES = ('http', 'https')
C0_CONTROL_OR_SPACE = ''.join(map(chr, range(0x21)))


class External(NamedTuple):
    domain: str
    icon_url: str


class NotExternal(NamedTuple):
    pass


class Unparsable(NamedTuple):
    raw_href: str


Classification = Union[External, NotExternal, Unparsable]

NOT_EXTERNAL = NotExternal()


def favicon_url(domain: str) -> str:
    """favicon 服务的图标地址。"""
    return config.FAVICON_SERVICE_URL.format(domain=domain)


def icon_attributes(domain: str) -> Dict[str, str]:
    """插入到链接开头的 <img> 属性。两种注入方式共用同一份属性。"""
    size = str(config.FAVICON_SIZE)
    return {
        'src': favicon_url(domain),
        'alt': '',
        'class': config.FAVICON_CLASS,
        'width': size,
        'height': size,
        'loading': 'lazy',
        'style': config.FAVICON_STYLE,
    }


def _normalize_host(hostname: str) -> Optional[str]:
    if hostname.startswith('[') and hostname.endswith(']'):
        return hostname.lower()
    hostname = unquote(hostname)
    if not hostname or FORBIDDEN_HOST_CHARS_RE.search(hostname):
        return None
    # ASCII 主机名不经过 idna 编码器：它按 IDNA2003 拒绝空标签和超长标签
    # (例如 a..b.com)，而浏览器接受这些主机名
    if hostname.isascii():
        return hostname.lower()
    try:
        return hostname.encode('idna').decode('ascii').lower()
    except UnicodeError:
        return None


def _split_authority(rest: str) -> Optional[str]:
    """从 scheme 之后的部分取出主机名；端口非法时返回 None。"""
    # http 是 special scheme：开头的斜杠可有可无，反斜杠等同斜杠
    rest = rest.lstrip('/\\')
    authority = AUTHORITY_END_RE.split(rest, 1)[0]
    host_port = authority.rpartition('@')[2]

    if host_port.startswith('['):
        end = host_port.find(']')
        if end == -1:
            return None
        hostname, port = host_port[:end + 1], host_port[end + 1:]
        if port and not port.startswith(':'):
            return None
        port = port[1:]
    else:
        hostname, _, port = host_port.partition(':')

    if port and (not port.isdigit() or int(port) > 65535):
        return None
    return hostname


def classify_href(href: Optional[str]) -> Classification:
    """
    判断链接是否为外链。
    - 空 href、相对路径、非 http(s) scheme -> NotExternal
    - 无法解析为带主机名的 URL -> Unparsable (由调用方记录日志)
    - http(s) 且有主机名 -> External
    """
    if not href:
        return NOT_EXTERNAL

    # 与浏览器一致：忽略首尾的空白和控制字符，删除内部的 tab 和换行
    value = TAB_OR_NEWLINE_RE.sub('', href.strip(C0_CONTROL_OR_SPACE))
    if not value:
        return NOT_EXTERNAL

    match = SCHEME_RE.match(value)
    if not match:
        # 相对引用合法，只是不是外链
        if '://' in value or CONTROL_CHARS_RE.search(value):
            return Unparsable(href)
        return NOT_EXTERNAL

    if match.group(1).lower() not in WEB_SCHEMES:
        return NOT_EXTERNAL

    # 路径和查询中的空格不影响主机名，只检查主机名
    hostname = _split_authority(value[match.end():])
    if hostname is None:
        return Unparsable(href)

    domain = _normalize_host(hostname)
    if not domain:
        return Unparsable(href)

    return External(domain, favicon_url(domain))


class LinkAdapter:
    """
    一种文档树表示的最小能力集。
    构建期 (ElementTree) 和运行期 (LivePage) 各自实现一个。
    """

    # 运行期会重复扫描，需要跳过已注入的链接
    skip_annotated = False

    def links(self) -> Iterable[Any]:
        raise NotImplementedError

    def get_href(self, link: Any) -> Optional[str]:
        raise NotImplementedError

    def is_annotated(self, link: Any) -> bool:
        raise NotImplementedError

    def insert_icon(self, link: Any, attributes: Dict[str, str]) -> None:
        raise NotImplementedError


def annotate_links(adapter: LinkAdapter) -> int:
    """对 adapter 提供的每个链接执行 分类 -> 注入。返回插入的图标数量。"""
    inserted = 0
    for link in adapter.links():
        href = adapter.get_href(link)
        if not href:
            continue
        if adapter.skip_annotated and adapter.is_annotated(link):
            continue

        result = classify_href(href)
        if isinstance(result, Unparsable):
            logger.warning("Failed to parse URL for favicon: %s", result.raw_href)
            continue
        if not isinstance(result, External):
            continue

        adapter.insert_icon(link, icon_attributes(result.domain))
        inserted += 1
    return inserted


def has_marker_class(class_value: Any) -> bool:
    """class 属性可能是字符串或列表 (BeautifulSoup 解析的多值属性)。"""
    if not class_value:
        return False
    if isinstance(class_value, str):
        class_value = class_value.split()
    return config.FAVICON_CLASS in class_value
