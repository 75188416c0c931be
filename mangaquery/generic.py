"""
通用查询解析器。

按 GenericQuery 在已解析文档上执行提取：
- 单值字段：回退链中第一个有命中的组，取第一个元素的属性或文本
- 多值字段：回退链中第一个有命中的组，按文档顺序收集全部元素
- 必需字段（标题、图片）缺失时抛出类型化错误，其余字段缺失返回空值
"""

import logging
import re
from functools import lru_cache
from typing import Any, List, Optional, Sequence, Tuple
from urllib.parse import quote, urljoin

from bs4 import Tag

from .errors import InvalidUrl, MissingField, MissingImages
from .models import Chapter, DocLoc, Manga, SearchResult
from .query import QUERY_PLACEHOLDER, GenericQuery, SearchQuery, Selector
from .selector import select_group, split_groups
from .util import node_attr, node_text, parse_date, parse_url, resolve_url

logger = logging.getLogger(__name__)

ONGOING_KEYWORD = "ongoing"


def fallback_chain(selector: Optional[Selector]) -> List[str]:
    """把字段选择器展开为有序回退链。"""
    if not selector:
        return []
    items = [selector] if isinstance(selector, str) else list(selector)
    chain: List[str] = []
    for item in items:
        chain.extend(split_groups(item))
    return chain


def select_fallback(node: Tag, selector: Optional[Selector]) -> List[Tag]:
    """返回回退链中第一个有命中的组的全部元素。"""
    for group in fallback_chain(selector):
        matched = select_group(node, group)
        if matched:
            return matched
    return []


def _value(node: Tag, attrs: Sequence[str]) -> Optional[str]:
    """有属性列表时取属性，否则取文本。"""
    if attrs:
        return node_attr(node, attrs)
    return node_text(node) or None


def select_value(node: Tag, selector: Optional[Selector], attrs: Sequence[str] = ()) -> Optional[str]:
    """单值字段取值。"""
    matched = select_fallback(node, selector)
    if not matched:
        return None
    return _value(matched[0], attrs)


def select_values(node: Tag, selector: Optional[Selector], attrs: Sequence[str] = ()) -> List[str]:
    """多值字段取值，保持文档顺序，不去重。"""
    values: List[str] = []
    for item in select_fallback(node, selector):
        value = _value(item, attrs)
        if value:
            values.append(value)
    return values


def _select_link(container: Tag, selector: Optional[Selector], attrs: Sequence[str]) -> Tuple[Optional[Tag], Optional[str]]:
    """在容器内定位链接元素；选择器为空时容器自身即链接。"""
    if selector is None:
        return container, _value(container, attrs)
    matched = select_fallback(container, selector)
    if not matched:
        return None, None
    return matched[0], _value(matched[0], attrs)


def optional_url(base_url: str, value: Optional[str]) -> Optional[str]:
    """解析可选链接，失败时返回 None。"""
    if not value:
        return None
    try:
        return resolve_url(base_url, value)
    except InvalidUrl:
        logger.debug("忽略无效链接：%s", value)
        return None


@lru_cache(maxsize=64)
def _label_pattern(label: str):
    """编译去除字段前缀（如 "Alternative :"）的正则，标签须为完整单词。"""
    return re.compile(rf"^\s*{re.escape(label)}(?:\(s\)|s)?\s*[:：]\s*", re.IGNORECASE)


def build_manga(source: Any, doc_loc: DocLoc) -> Manga:
    """用 source 的各字段能力组装 Manga；source 为解析器或适配器。"""
    title = source.title(doc_loc)
    if not title:
        raise MissingField("title")
    return Manga(
        title=title,
        url=doc_loc.url,
        description=source.description(doc_loc),
        cover=source.cover(doc_loc),
        is_ongoing=source.is_ongoing(doc_loc),
        genres=source.genres(doc_loc),
        alt_titles=source.alt_titles(doc_loc),
        authors=source.authors(doc_loc),
        chapters=source.chapters(doc_loc),
    )


class GenericQueryParser:
    def __init__(self, query: GenericQuery):
        """以固定的查询结构初始化解析器。"""
        self.query = query

    def title(self, doc_loc: DocLoc) -> Optional[str]:
        """标题文本。"""
        manga = self.query.manga
        return select_value(doc_loc.doc, manga.title, manga.title_attrs)

    def description(self, doc_loc: DocLoc) -> Optional[str]:
        """简介文本。"""
        manga = self.query.manga
        return select_value(doc_loc.doc, manga.description, manga.description_attrs)

    def cover(self, doc_loc: DocLoc) -> Optional[str]:
        """封面地址，解析为绝对 URL。"""
        manga = self.query.manga
        return optional_url(doc_loc.url, select_value(doc_loc.doc, manga.cover, manga.cover_attrs))

    def is_ongoing(self, doc_loc: DocLoc) -> Optional[bool]:
        """状态字段包含 ongoing 即视为连载中；未命中返回 None。"""
        text = select_value(doc_loc.doc, self.query.manga.is_ongoing)
        if text is None:
            return None
        return ONGOING_KEYWORD in text.lower()

    def genres(self, doc_loc: DocLoc) -> List[str]:
        """题材列表，保持文档顺序。"""
        return select_values(doc_loc.doc, self.query.manga.genres)

    def alt_titles(self, doc_loc: DocLoc) -> List[str]:
        """别名列表，可去除标签前缀并按分隔符拆分。"""
        manga = self.query.manga
        values = select_values(doc_loc.doc, manga.alt_titles)
        if manga.alt_titles_label:
            pattern = _label_pattern(manga.alt_titles_label)
            values = [pattern.sub("", value, count=1) for value in values]
        if manga.alt_titles_split:
            values = [part for value in values for part in value.split(manga.alt_titles_split)]
        return [value.strip() for value in values if value.strip()]

    def authors(self, doc_loc: DocLoc) -> List[str]:
        """作者列表，保持文档顺序。"""
        return select_values(doc_loc.doc, self.query.manga.authors)

    def chapters(self, doc_loc: DocLoc) -> List[Chapter]:
        """章节列表；缺少链接的容器跳过。"""
        chapter_query = self.query.manga.chapter
        if chapter_query is None:
            return []
        chapters: List[Chapter] = []
        for container in select_fallback(doc_loc.doc, chapter_query.base):
            link, href = _select_link(container, chapter_query.href, chapter_query.href_attrs)
            href = optional_url(doc_loc.url, href)
            if not href:
                continue
            title = select_value(container, chapter_query.title, chapter_query.title_attrs)
            if title is None and chapter_query.title is None:
                title = node_text(link) or None
            posted = select_value(container, chapter_query.posted, chapter_query.posted_attrs)
            chapters.append(Chapter(href=href, title=title, posted=parse_date(posted)))
        return chapters

    def extract_manga(self, doc_loc: DocLoc) -> Manga:
        """提取漫画详情，标题缺失抛出 MissingField。"""
        return build_manga(self, doc_loc)

    def extract_images(self, doc_loc: DocLoc) -> List[str]:
        """提取章节图片的绝对地址，一张都没有时抛出 MissingImages。"""
        images_query = self.query.images
        urls: List[str] = []
        for node in select_fallback(doc_loc.doc, images_query.image):
            value = node_attr(node, images_query.image_attrs)
            if not value or value.startswith("data:"):
                continue
            urls.append(resolve_url(doc_loc.url, value))
        if not urls:
            raise MissingImages(doc_loc.url)
        logger.debug("解析到 %d 张图片：%s", len(urls), doc_loc.url)
        return urls

    def _search_query(self) -> SearchQuery:
        """返回搜索查询，未配置时抛出 MissingField。"""
        if self.query.search is None:
            raise MissingField("search")
        return self.query.search

    def extract_search_results(self, doc_loc: DocLoc) -> List[SearchResult]:
        """逐个结果容器提取搜索结果，子字段相对容器匹配。"""
        search = self._search_query()
        results: List[SearchResult] = []
        for container in select_fallback(doc_loc.doc, search.base):
            link, href = _select_link(container, search.href, search.href_attrs)
            href = optional_url(doc_loc.url, href)
            if not href:
                logger.debug("搜索结果缺少链接，跳过")
                continue
            title = select_value(container, search.title, search.title_attrs)
            if title is None:
                title = node_text(link) or None
            results.append(
                SearchResult(
                    href=href,
                    title=title,
                    posted=parse_date(select_value(container, search.posted, search.posted_attrs)),
                    cover=optional_url(doc_loc.url, select_value(container, search.cover, search.cover_attrs)),
                )
            )
        return results

    def normalize_keywords(self, hostname: str, keywords: str) -> str:
        """默认不处理关键词。"""
        return keywords

    def build_search_url(self, hostname: str, keywords: str, path: str) -> str:
        """替换路径模板中的 [query] 并基于站点地址生成搜索 URL。"""
        search = self.query.search
        encode = search.encode if search is not None else True
        query = quote(keywords, safe="") if encode else keywords
        return parse_url(urljoin(f"https://{hostname}/", path.replace(QUERY_PLACEHOLDER, query)))
