"""URL、文本与日期的通用工具函数。"""

import re
from datetime import datetime
from typing import Any, List, Optional
from urllib.parse import urljoin, urlsplit

from dateutil import parser as date_parser

from .errors import InvalidUrl

ALLOWED_SCHEMES = ("http", "https")

DATE_REGEXES = [
    re.compile(r"\d{4}[./-]\d{1,2}[./-]\d{1,2}(?:[ T]\d{1,2}:\d{2}(?::\d{2})?)?"),
    re.compile(r"\d{4}年\d{1,2}月\d{1,2}日"),
    re.compile(
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+\d{1,2},\s*\d{2,4}(?:\s+\d{1,2}:\d{2})?",
        re.IGNORECASE,
    ),
]


def get_hostname(url: str) -> str:
    """返回 URL 中的小写主机名（不含端口）。"""
    try:
        hostname = urlsplit(url).hostname
    except ValueError as exc:
        raise InvalidUrl(url) from exc
    if not hostname:
        raise InvalidUrl(url)
    return hostname


def parse_url(value: str) -> str:
    """校验绝对 URL，失败抛出 InvalidUrl。"""
    if not value or not isinstance(value, str):
        raise InvalidUrl(value)
    try:
        parts = urlsplit(value.strip())
        hostname = parts.hostname
    except ValueError as exc:
        raise InvalidUrl(value) from exc
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not hostname:
        raise InvalidUrl(value)
    return parts.geturl()


def resolve_url(base_url: str, href: str) -> str:
    """将相对链接解析为绝对 URL。"""
    if not href or not href.strip():
        raise InvalidUrl(href)
    return parse_url(urljoin(base_url, href.strip()))


def node_text(node: Any) -> str:
    """提取节点文本，兼容 meta 等标签。"""
    if node is None:
        return ""
    if getattr(node, "name", "") == "meta":
        return (node.get("content") or "").strip()
    return node.get_text(" ", strip=True)


def node_attr(node: Any, attrs) -> Optional[str]:
    """按顺序返回第一个非空属性值。"""
    for attr in attrs:
        value = node.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        if value and value.strip():
            return value.strip()
    return None


def _extract_dates(text: str) -> List[datetime]:
    """从文本中提取所有形如日期的片段并解析。"""
    dates: List[datetime] = []
    for regex in DATE_REGEXES:
        for match in regex.findall(text):
            # "Oct 18,24" 中紧贴的逗号会被当作小数点
            match = re.sub(r",\s*", ", ", match)
            try:
                dates.append(date_parser.parse(match, fuzzy=True))
            except (ValueError, OverflowError):
                continue
    return dates


def parse_date(text: Optional[str]) -> Optional[datetime]:
    """从文本中挑选最新的日期；没有日期片段（如 "2 hours ago"）时返回 None。"""
    if not text:
        return None
    dates = _extract_dates(text)
    if not dates:
        return None
    return max(dates)
