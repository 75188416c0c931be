"""
声明式查询结构（纯数据，不含行为）。

字段取值形式：
- 单个选择器字符串（顶层逗号分隔的各组视为回退链，按顺序取第一个命中的组）
- 选择器字符串元组（同样是回退链）
- 选择器 + 属性列表（取匹配元素上第一个非空属性）
- 多值字段（genres / alt_titles / authors / base）：收集命中组内所有元素
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple, Union

from .selector import validate_selector

Selector = Union[str, Tuple[str, ...]]

QUERY_PLACEHOLDER = "[query]"


@dataclass(frozen=True)
class ChapterQuery:
    """章节列表查询。"""

    base: str  # 章节容器（多值）
    href: Optional[Selector] = "a"
    href_attrs: Tuple[str, ...] = ("href",)
    title: Optional[Selector] = None
    title_attrs: Tuple[str, ...] = ()
    posted: Optional[Selector] = None
    posted_attrs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MangaQuery:
    """漫画详情页查询。"""

    title: Selector = "h1"
    title_attrs: Tuple[str, ...] = ()
    description: Optional[Selector] = None
    description_attrs: Tuple[str, ...] = ()
    cover: Optional[Selector] = None
    cover_attrs: Tuple[str, ...] = ("content", "data-src", "src")
    is_ongoing: Optional[Selector] = None
    genres: Optional[Selector] = None
    alt_titles: Optional[Selector] = None
    alt_titles_label: Optional[str] = None  # 去除形如 "Alternative :" 的前缀
    alt_titles_split: Optional[str] = None  # 单个元素内多个别名的分隔符
    authors: Optional[Selector] = None
    chapter: Optional[ChapterQuery] = None


@dataclass(frozen=True)
class ImagesQuery:
    """章节阅读页图片查询。"""

    image: Selector
    image_attrs: Tuple[str, ...] = ("data-src", "data-original", "src")


@dataclass(frozen=True)
class SearchQuery:
    """搜索页查询与搜索 URL 模板。"""

    path: str  # 含 [query] 占位符的路径模板
    base: str  # 搜索结果容器（多值）
    href: Optional[Selector] = "a"
    href_attrs: Tuple[str, ...] = ("href",)
    title: Optional[Selector] = None
    title_attrs: Tuple[str, ...] = ()
    posted: Optional[Selector] = None
    posted_attrs: Tuple[str, ...] = ()
    cover: Optional[Selector] = None
    cover_attrs: Tuple[str, ...] = ("data-src", "src")
    encode: bool = True  # 是否对关键词做百分号编码


@dataclass(frozen=True)
class GenericQuery:
    """一个站点（或共用结构的一组站点）的完整查询。"""

    manga: MangaQuery
    images: ImagesQuery
    search: Optional[SearchQuery] = None
    hostnames: Tuple[str, ...] = ()


NON_SELECTOR_FIELDS = frozenset({"path", "alt_titles_label", "alt_titles_split", "encode", "chapter"})


def _freeze(key: str, value: Any) -> Any:
    """把 YAML 中的列表转换为元组；属性列表写成单个字符串时视为一项。"""
    if key.endswith("_attrs") and isinstance(value, str):
        value = [value]
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    return value


def _check_selectors(obj: Any, section: str) -> None:
    """加载配置时校验全部选择器，语法错误提前暴露。"""
    for item in fields(obj):
        if item.name in NON_SELECTOR_FIELDS or item.name.endswith("_attrs"):
            continue
        value = getattr(obj, item.name)
        if not value:
            continue
        for selector in [value] if isinstance(value, str) else value:
            try:
                validate_selector(selector)
            except ValueError as exc:
                raise ValueError(f"invalid selector in {section}.{item.name}: {exc}") from exc


def _build(cls, data: Optional[Dict[str, Any]], section: str):
    """按数据类字段构建对象，未知键视为配置错误。"""
    if not isinstance(data, dict):
        raise ValueError(f"query section {section!r} must be a mapping")
    known = {item.name for item in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown keys in {section!r}: {', '.join(unknown)}")
    obj = cls(**{key: _freeze(key, value) for key, value in data.items()})
    _check_selectors(obj, section)
    return obj


def query_from_dict(data: Dict[str, Any]) -> GenericQuery:
    """从配置字典（YAML）构建 GenericQuery。"""
    if not isinstance(data, dict):
        raise ValueError("site query must be a mapping")
    manga_data = dict(data.get("manga") or {})
    chapter_data = manga_data.pop("chapter", None)
    if chapter_data is not None:
        manga_data["chapter"] = _build(ChapterQuery, chapter_data, "manga.chapter")
    manga = _build(MangaQuery, manga_data, "manga")
    images = _build(ImagesQuery, data.get("images"), "images")
    search = None
    if data.get("search"):
        search = _build(SearchQuery, data["search"], "search")
        if QUERY_PLACEHOLDER not in search.path:
            raise ValueError(f"search path must contain {QUERY_PLACEHOLDER}: {search.path!r}")
    hostnames = data.get("hostnames") or []
    if isinstance(hostnames, str):
        hostnames = [hostnames]
    hostnames = tuple(str(item).strip().lower() for item in hostnames if str(item).strip())
    if not hostnames:
        raise ValueError("site query must declare at least one hostname")
    return GenericQuery(manga=manga, images=images, search=search, hostnames=hostnames)
