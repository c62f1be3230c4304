# live_page.py - 运行期：可观察的 HTML 文档 + 外链 favicon 监听器
#
# LivePage 把一个已渲染的页面包装成 "活" 文档：有 ready_state、
# DOMContentLoaded 监听、以及按批次投递的结构变化通知 (childList)。
# RuntimeLinkAnnotator 在页面可交互后扫描一次，然后订阅 body 的变化，
# 每批新增节点中出现链接时做一次全量重扫。

import logging
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.element import PageElement

from favicon_links import LinkAdapter, annotate_links, has_marker_class

logger = logging.getLogger(__name__)

LOADING = 'loading'
INTERACTIVE = 'interactive'
DOM_CONTENT_LOADED = 'DOMContentLoaded'


def _is_same_or_descendant(node: PageElement, ancestor: Tag) -> bool:
    # bs4 的 == 是结构比较，这里必须按身份判断
    if node is ancestor:
        return True
    return any(parent is ancestor for parent in node.parents)


class MutationRecord:
    """一次 childList 变化。"""

    def __init__(self, target: Tag, added_nodes: Optional[List[PageElement]] = None,
                 removed_nodes: Optional[List[PageElement]] = None):
        self.type = 'childList'
        self.target = target
        self.added_nodes = list(added_nodes or [])
        self.removed_nodes = list(removed_nodes or [])

    def __repr__(self):
        return (f"<MutationRecord target={self.target.name!r} "
                f"added={len(self.added_nodes)} removed={len(self.removed_nodes)}>")


class MutationObserver:
    def __init__(self, page: 'LivePage', callback: Callable[[List[MutationRecord], 'MutationObserver'], Any]):
        self.page = page
        self.callback = callback
        self._target: Optional[Tag] = None
        self._subtree = False
        self._child_list = False
        self._records: List[MutationRecord] = []

    def observe(self, target: Tag, child_list: bool = True, subtree: bool = False) -> None:
        if not child_list:
            raise ValueError("MutationObserver only supports childList observation")
        self._target = target
        self._child_list = child_list
        self._subtree = subtree
        self.page._register(self)

    def disconnect(self) -> None:
        self._records = []
        self._target = None
        self.page._unregister(self)

    def take_records(self) -> List[MutationRecord]:
        records, self._records = self._records, []
        return records

    def _wants(self, record: MutationRecord) -> bool:
        if self._target is None or not self._child_list:
            return False
        if self._subtree:
            return _is_same_or_descendant(record.target, self._target)
        return record.target is self._target

    def _enqueue(self, record: MutationRecord) -> None:
        if self._wants(record):
            self._records.append(record)


class LivePage:
    """BeautifulSoup 文档 + 加载状态 + 结构变化通知。"""

    def __init__(self, html: str):
        self.soup = BeautifulSoup(html, 'html.parser')
        self.ready_state = LOADING
        self._listeners: Dict[str, List[Callable[[], Any]]] = defaultdict(list)
        self._observers: List[MutationObserver] = []
        self._batch_depth = 0
        self._delivering = False

    @property
    def body(self) -> Optional[Tag]:
        return self.soup.body

    def __str__(self):
        return str(self.soup)

    # --- 事件 ---

    def add_event_listener(self, event: str, listener: Callable[[], Any]) -> None:
        self._listeners[event].append(listener)

    def finish_loading(self) -> None:
        """loading -> interactive，并触发 DOMContentLoaded。"""
        if self.ready_state != LOADING:
            return
        self.ready_state = INTERACTIVE
        for listener in list(self._listeners.pop(DOM_CONTENT_LOADED, [])):
            listener()
        self.deliver_mutations()

    # --- 结构变化 ---

    def create_element(self, name: str, attrs: Optional[Dict[str, str]] = None) -> Tag:
        return self.soup.new_tag(name, attrs=dict(attrs or {}))

    def insert_before(self, parent: Tag, node: PageElement, reference: Optional[PageElement] = None) -> PageElement:
        if reference is None:
            parent.append(node)
        else:
            if reference.parent is not parent:
                raise ValueError("reference node is not a child of parent")
            reference.insert_before(node)
        self._queue(MutationRecord(parent, added_nodes=[node]))
        return node

    def append_child(self, parent: Tag, node: PageElement) -> PageElement:
        return self.insert_before(parent, node, None)

    def insert_html(self, parent: Tag, markup: str) -> List[PageElement]:
        """解析 markup 并追加到 parent 末尾，产生一条变化记录。"""
        fragment = BeautifulSoup(markup, 'html.parser')
        nodes = [node.extract() for node in list(fragment.contents)]
        for node in nodes:
            parent.append(node)
        if nodes:
            self._queue(MutationRecord(parent, added_nodes=nodes))
        return nodes

    def remove_child(self, node: PageElement) -> PageElement:
        parent = node.parent
        if parent is None:
            raise ValueError("node is not attached to the page")
        node.extract()
        self._queue(MutationRecord(parent, removed_nodes=[node]))
        return node

    @contextmanager
    def batch(self) -> Iterator['LivePage']:
        """块内的所有变化合并成一批投递。"""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
        if self._batch_depth == 0:
            self.deliver_mutations()

    def deliver_mutations(self) -> None:
        """
        把排队的记录投递给各个 observer。
        回调中产生的新变化在下一轮投递，不会重入。
        """
        if self._delivering:
            return
        self._delivering = True
        try:
            while True:
                pending = [(obs, obs.take_records()) for obs in list(self._observers)]
                pending = [(obs, records) for obs, records in pending if records]
                if not pending:
                    break
                for observer, records in pending:
                    observer.callback(records, observer)
        finally:
            self._delivering = False

    def _queue(self, record: MutationRecord) -> None:
        for observer in self._observers:
            observer._enqueue(record)
        if self._batch_depth == 0:
            self.deliver_mutations()

    def _register(self, observer: MutationObserver) -> None:
        if not any(obs is observer for obs in self._observers):
            self._observers.append(observer)

    def _unregister(self, observer: MutationObserver) -> None:
        self._observers = [obs for obs in self._observers if obs is not observer]


class DomAdapter(LinkAdapter):
    skip_annotated = True

    def __init__(self, page: LivePage):
        self.page = page

    def links(self) -> List[Tag]:
        return [a for a in self.page.soup.select('a[href]') if a.get('href')]

    def get_href(self, link: Tag) -> Optional[str]:
        return link.get('href')

    def is_annotated(self, link: Tag) -> bool:
        first = link.contents[0] if link.contents else None
        return isinstance(first, Tag) and has_marker_class(first.get('class'))

    def insert_icon(self, link: Tag, attributes: Dict[str, str]) -> None:
        icon = self.page.create_element('img', attributes)
        first = link.contents[0] if link.contents else None
        self.page.insert_before(link, icon, first)


def _adds_links(records: List[MutationRecord]) -> bool:
    for record in records:
        for node in record.added_nodes:
            if not isinstance(node, Tag):
                continue
            if node.name == 'a' or node.select_one('a[href]') is not None:
                return True
    return False


class RuntimeLinkAnnotator:
    """
    页面生命周期内的外链 favicon 监听器。

    uninitialized -> scanning (首次) -> listening
    listening -> scanning (某批新增节点含链接时全量重扫) -> listening
    """

    UNINITIALIZED = 'uninitialized'
    SCANNING = 'scanning'
    LISTENING = 'listening'
    DISPOSED = 'disposed'

    def __init__(self, page: LivePage):
        self.page = page
        self.adapter = DomAdapter(page)
        self.state = self.UNINITIALIZED
        self.scan_count = 0
        self.observer = MutationObserver(page, self._on_mutations)

    def start(self) -> 'RuntimeLinkAnnotator':
        if self.state != self.UNINITIALIZED:
            return self
        if self.page.ready_state == LOADING:
            self.page.add_event_listener(DOM_CONTENT_LOADED, self._initial_scan)
        else:
            self._initial_scan()
        return self

    def scan(self) -> int:
        if self.state == self.DISPOSED:
            return 0
        self.state = self.SCANNING
        try:
            # 插入图标本身也是变化，合并成一批在扫描结束后投递
            with self.page.batch():
                inserted = annotate_links(self.adapter)
        finally:
            self.state = self.LISTENING
        self.scan_count += 1
        return inserted

    def dispose(self) -> None:
        self.observer.disconnect()
        self.state = self.DISPOSED

    def _initial_scan(self) -> None:
        if self.state == self.DISPOSED:
            return
        self.scan()
        if self.page.body is not None:
            self.observer.observe(self.page.body, child_list=True, subtree=True)
        else:
            logger.debug("Page has no <body>; favicon links will not be watched")

    def _on_mutations(self, records: List[MutationRecord], observer: MutationObserver) -> None:
        # 一批只扫一次
        if _adds_links(records):
            self.scan()


def install_favicon_links(page: LivePage) -> RuntimeLinkAnnotator:
    return RuntimeLinkAnnotator(page).start()
