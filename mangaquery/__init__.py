"""
漫画站点提取模块对外导出。

提供：
- GenericQuery 等查询结构：声明式描述各字段的选择器
- GenericQueryParser：按查询结构提取漫画、图片与搜索结果
- SiteAdapter：默认委托解析器、可按站点覆盖的适配器
- MangaKakalot：内置的 MangaKakalot 系列站点适配器
- SiteRegistry / build_registry：按域名选择适配器
- load_document：获取页面并解析为 DocLoc
"""

from .base import SiteAdapter
from .errors import (
    DuplicateHostname,
    FetchError,
    InvalidUrl,
    MissingField,
    MissingImages,
    ParseError,
    UnknownHost,
)
from .generic import GenericQueryParser
from .loader import load_document, parse_document
from .mangakakalot import MangaKakalot
from .models import Chapter, DocLoc, Manga, SearchResult
from .query import ChapterQuery, GenericQuery, ImagesQuery, MangaQuery, SearchQuery, query_from_dict
from .registry import SiteRegistry, build_registry

__all__ = [
    "Chapter",
    "ChapterQuery",
    "DocLoc",
    "DuplicateHostname",
    "FetchError",
    "GenericQuery",
    "GenericQueryParser",
    "ImagesQuery",
    "InvalidUrl",
    "Manga",
    "MangaKakalot",
    "MangaQuery",
    "MissingField",
    "MissingImages",
    "ParseError",
    "SearchQuery",
    "SearchResult",
    "SiteAdapter",
    "SiteRegistry",
    "UnknownHost",
    "build_registry",
    "load_document",
    "parse_document",
    "query_from_dict",
]
