# markdown_favicon.py - 构建期：在 Markdown 渲染树中为外链插入 favicon

import html
import xml.etree.ElementTree as etree
from typing import Dict, List, Optional

from markdown import util
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

from favicon_links import LinkAdapter, annotate_links, has_marker_class


class TreeAdapter(LinkAdapter):
    """ElementTree 版本的链接访问器。每个文档构造一次，不跨文档共享状态。"""

    def __init__(self, root: etree.Element):
        self.root = root

    def links(self) -> List[etree.Element]:
        # 先收集再修改，避免边遍历边插入
        return [el for el in self.root.iter('a') if el.get('href')]

    def get_href(self, link: etree.Element) -> Optional[str]:
        href = link.get('href')
        # 自动邮件链接的 href 被编码成 AMP_SUBSTITUTE + 字符实体
        if href and util.AMP_SUBSTITUTE in href:
            href = html.unescape(href.replace(util.AMP_SUBSTITUTE, '&'))
        return href

    def is_annotated(self, link: etree.Element) -> bool:
        if link.text or len(link) == 0:
            return False
        return link[0].tag == 'img' and has_marker_class(link[0].get('class'))

    def insert_icon(self, link: etree.Element, attributes: Dict[str, str]) -> None:
        icon = etree.Element('img', attributes)
        # ElementTree 的首段文本挂在 link.text 上，移到图标的 tail 保持顺序
        icon.tail = link.text
        link.text = None
        link.insert(0, icon)


class FaviconLinkTreeprocessor(Treeprocessor):
    def run(self, root: etree.Element) -> None:
        annotate_links(TreeAdapter(root))


class FaviconLinkExtension(Extension):
    def extendMarkdown(self, md):
        # inline (20) 之后才会有 <a> 元素；prettify (10) 之前执行
        md.treeprocessors.register(FaviconLinkTreeprocessor(md), 'favicon_links', 15)


def makeExtension(**kwargs):
    return FaviconLinkExtension(**kwargs)
