"""
站点适配器基类。

SiteAdapter 持有一个 GenericQuery 和由它构建的 GenericQueryParser，
对外提供与解析器相同的能力集合；每项能力默认委托给解析器，
子类只覆盖站点确有差异的步骤（关键词规则、搜索地址、图片列表、字段屏蔽等）。
覆盖实现必须保持相同的输入、返回类型与错误类型。
"""

import logging
from typing import List, Optional, Tuple

from .errors import InvalidUrl, MissingField
from .generic import GenericQueryParser, build_manga
from .models import Chapter, DocLoc, Manga, SearchResult
from .query import GenericQuery
from .util import get_hostname

logger = logging.getLogger(__name__)


class SiteAdapter:
    fetch_mode = "requests"  # 文档加载方式：requests / playwright

    def __init__(self, query: GenericQuery, fetch_mode: Optional[str] = None):
        """初始化适配器，域名列表取自查询结构。"""
        self.query = query
        self.parser = GenericQueryParser(query)
        self.hostnames: Tuple[str, ...] = tuple(host.lower() for host in query.hostnames)
        if fetch_mode:
            self.fetch_mode = fetch_mode

    @property
    def name(self) -> str:
        """适配器名称，用于日志与错误信息。"""
        return f"{type(self).__name__}({', '.join(self.hostnames)})"

    def hostname_of(self, doc_loc: DocLoc) -> str:
        """文档所在域名，无法解析时返回空字符串。"""
        try:
            return get_hostname(doc_loc.url)
        except InvalidUrl:
            return ""

    def title(self, doc_loc: DocLoc) -> Optional[str]:
        """标题。"""
        return self.parser.title(doc_loc)

    def description(self, doc_loc: DocLoc) -> Optional[str]:
        """简介。"""
        return self.parser.description(doc_loc)

    def cover(self, doc_loc: DocLoc) -> Optional[str]:
        """封面地址。"""
        return self.parser.cover(doc_loc)

    def is_ongoing(self, doc_loc: DocLoc) -> Optional[bool]:
        """是否连载中。"""
        return self.parser.is_ongoing(doc_loc)

    def genres(self, doc_loc: DocLoc) -> List[str]:
        """题材列表。"""
        return self.parser.genres(doc_loc)

    def alt_titles(self, doc_loc: DocLoc) -> List[str]:
        """别名列表。"""
        return self.parser.alt_titles(doc_loc)

    def authors(self, doc_loc: DocLoc) -> List[str]:
        """作者列表。"""
        return self.parser.authors(doc_loc)

    def chapters(self, doc_loc: DocLoc) -> List[Chapter]:
        """章节列表。"""
        return self.parser.chapters(doc_loc)

    def extract_manga(self, doc_loc: DocLoc) -> Manga:
        """用本适配器（可能被覆盖的）字段能力组装漫画详情。"""
        return build_manga(self, doc_loc)

    def extract_images(self, doc_loc: DocLoc) -> List[str]:
        """章节图片地址。"""
        return self.parser.extract_images(doc_loc)

    def extract_search_results(self, doc_loc: DocLoc) -> List[SearchResult]:
        """搜索结果列表。"""
        return self.parser.extract_search_results(doc_loc)

    def normalize_keywords(self, hostname: str, keywords: str) -> str:
        """按站点规则规范化关键词。"""
        return self.parser.normalize_keywords(hostname, keywords)

    def build_search_url(self, hostname: str, keywords: str, path: str) -> str:
        """生成搜索 URL。"""
        return self.parser.build_search_url(hostname, keywords, path)

    def search_url(self, hostname: str, keywords: str) -> str:
        """规范化关键词后按查询结构中的路径模板生成搜索 URL。"""
        if self.query.search is None:
            raise MissingField("search")
        keywords = self.normalize_keywords(hostname, keywords)
        url = self.build_search_url(hostname, keywords, self.query.search.path)
        logger.debug("搜索地址：%s -> %s", hostname, url)
        return url
