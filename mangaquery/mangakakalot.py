"""
MangaKakalot / Manganato / MangaBat 系列站点适配器。

这些站点共用一套页面结构，但个别镜像有差异：
- mangabat.best：图片列表以逗号拼接在 #arraydata 中；搜索走 http 的 /search?q=；
  别名与作者区域的结构不可靠，直接返回空
- mangabat.com：搜索页在 h.mangabat.com 子域名下
"""

import logging
import re
from types import MappingProxyType
from typing import FrozenSet, List, Mapping, NamedTuple, Optional
from urllib.parse import urlsplit, urlunsplit

from .base import SiteAdapter
from .errors import MissingImages, ParseError
from .models import DocLoc
from .query import ChapterQuery, GenericQuery, ImagesQuery, MangaQuery, SearchQuery
from .selector import select_first
from .util import get_hostname, parse_url, resolve_url

logger = logging.getLogger(__name__)

SPECIAL_CHARACTERS = re.compile(r"\W")

IMAGE_LIST_SELECTOR = "#arraydata"
IMAGE_LIST_DELIMITER = ","

QUERY = GenericQuery(
    manga=MangaQuery(
        title="h1",
        description=(
            "#noidungm, #panel-story-info-description, #example2, "
            "div:has(> h2:icontains(sum)), div:has(> h3:icontains(desc))"
        ),
        cover=(
            'meta[property="og:image"], #primaryimage, '
            "div.manga-info-pic > img, span.info-image > img"
        ),
        cover_attrs=("content", "data-src", "src"),
        is_ongoing="li:icontains(status), td:icontains(status) + td",
        genres=(
            "li:icontains(genre) > a, td:icontains(genre) + td a, "
            "p.description-update span:icontains(genre) ~ a[href*=mangas]"
        ),
        alt_titles=(
            "h2:icontains(alt), h2.story-alternative, td:icontains(alt) + td, "
            "p.description-update"
        ),
        alt_titles_label="alternative",
        alt_titles_split=";",
        authors="li:icontains(author) > a, td:icontains(author) + td a",
        chapter=ChapterQuery(
            base="div.chapter-list div.row, div.chapter h4, ul.row-content-chapter li",
            href="span a, a",
            posted="span[title]",
            posted_attrs=("title",),
        ),
    ),
    images=ImagesQuery(image="div.container-chapter-reader img, div.vung-doc img"),
    search=SearchQuery(
        path="/search/story/[query]",
        base="div.story_item, div.list-story-item, div.mainpage-manga",
        href="h3 > a, div.media-body a",
        title="div.media-body a h4",
        posted="span:icontains(updated), div.hotup-list i",
        cover="a img",
        encode=False,
    ),
    hostnames=(
        "mangabat.com",
        "mangabat.best",
        "mangakakalot.com",
        "mangakakalot.tv",
        "manganelo.com",
        "manganato.com",
        "readmanganato.com",
    ),
)


class SearchOverride(NamedTuple):
    """单个镜像的搜索地址改写规则。"""

    path: str  # 替换查询结构中的路径模板
    scheme: Optional[str] = None  # 改写协议
    host: Optional[str] = None  # 改写主机


class MangaKakalot(SiteAdapter):
    # 图片以分隔符拼接在单个元素中的镜像
    delimited_image_hosts: FrozenSet[str] = frozenset({"mangabat.best"})
    search_overrides: Mapping[str, SearchOverride] = MappingProxyType(
        {
            "mangabat.best": SearchOverride(path="/search?q=[query]", scheme="http"),
            "mangabat.com": SearchOverride(path="/search/manga/[query]", host="h.mangabat.com"),
        }
    )
    # 字段结构不可靠、强制返回空结果的镜像
    suppressed_fields: Mapping[str, FrozenSet[str]] = MappingProxyType(
        {
            "mangabat.best": frozenset({"alt_titles", "authors"}),
        }
    )

    def __init__(self):
        """使用内置查询结构初始化。"""
        super().__init__(QUERY)

    def _suppressed(self, doc_loc: DocLoc, field: str) -> bool:
        """判断当前域名下该字段是否被屏蔽。"""
        hostname = self.hostname_of(doc_loc)
        if field in self.suppressed_fields.get(hostname, frozenset()):
            logger.debug("字段已屏蔽：%s %s", hostname, field)
            return True
        return False

    def normalize_keywords(self, hostname: str, keywords: str) -> str:
        """空格替换为下划线，并去除非单词字符。"""
        return SPECIAL_CHARACTERS.sub("", keywords.replace(" ", "_"))

    def extract_images(self, doc_loc: DocLoc) -> List[str]:
        """部分镜像从 #arraydata 的拼接文本中解析图片。"""
        hostname = get_hostname(doc_loc.url)
        if hostname not in self.delimited_image_hosts:
            return super().extract_images(doc_loc)

        element = select_first(doc_loc.doc, IMAGE_LIST_SELECTOR)
        if element is None:
            raise MissingImages(doc_loc.url)
        text = element.get_text()
        if not text.strip():
            raise MissingImages(doc_loc.url)
        urls: List[str] = []
        for segment in text.split(IMAGE_LIST_DELIMITER):
            try:
                urls.append(resolve_url(doc_loc.url, segment))
            except ParseError as exc:
                raise MissingImages(doc_loc.url) from exc
        return urls

    def build_search_url(self, hostname: str, keywords: str, path: str) -> str:
        """按镜像改写搜索路径、协议或主机。"""
        override = self.search_overrides.get(hostname)
        if override is not None:
            path = override.path
        url = super().build_search_url(hostname, self.normalize_keywords(hostname, keywords), path)
        if override is None:
            return url
        parts = urlsplit(url)
        if override.scheme:
            parts = parts._replace(scheme=override.scheme)
        if override.host:
            parts = parts._replace(netloc=override.host)
        return parse_url(urlunsplit(parts))

    def alt_titles(self, doc_loc: DocLoc) -> List[str]:
        """被屏蔽的镜像返回空列表。"""
        if self._suppressed(doc_loc, "alt_titles"):
            return []
        return super().alt_titles(doc_loc)

    def authors(self, doc_loc: DocLoc) -> List[str]:
        """被屏蔽的镜像返回空列表。"""
        if self._suppressed(doc_loc, "authors"):
            return []
        return super().authors(doc_loc)
