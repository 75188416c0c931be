"""
提取结果与输入的数据结构。

定义：
- DocLoc：已解析文档与其规范 URL
- Chapter：章节（链接、标题、发布时间）
- Manga：漫画详情
- SearchResult：搜索结果
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, NamedTuple, Optional

from bs4 import BeautifulSoup


class DocLoc(NamedTuple):
    """文档与加载它的规范 URL。"""

    doc: BeautifulSoup  # 已解析的文档
    url: str  # 重定向后的最终地址


@dataclass
class Chapter:
    """单个章节。"""

    href: str  # 章节绝对链接
    title: Optional[str] = None  # 章节标题
    posted: Optional[datetime] = None  # 发布时间（可为空）


@dataclass
class Manga:
    """漫画详情页解析结果。"""

    title: str
    url: str
    description: Optional[str] = None
    cover: Optional[str] = None
    is_ongoing: Optional[bool] = None
    genres: List[str] = field(default_factory=list)
    alt_titles: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    chapters: List[Chapter] = field(default_factory=list)


@dataclass
class SearchResult:
    """单条搜索结果。"""

    href: str  # 详情页链接
    title: Optional[str] = None  # 标题
    posted: Optional[datetime] = None  # 更新时间（可为空）
    cover: Optional[str] = None  # 封面地址
