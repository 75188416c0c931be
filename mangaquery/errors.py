"""
解析与调度过程中使用的错误类型。

- ParseError：引擎层错误基类（MissingField / MissingImages / InvalidUrl / UnknownHost）
- DuplicateHostname：注册表构建时的配置错误
- FetchError：文档加载失败，与解析错误区分
"""

from typing import Optional


class ParseError(Exception):
    """提取引擎的错误基类，所有适配器共用同一套错误类型。"""


class MissingField(ParseError):
    def __init__(self, field: str):
        """必需字段没有任何选择器命中。"""
        super().__init__(f"missing required field: {field}")
        self.field = field


class MissingImages(ParseError):
    def __init__(self, url: Optional[str] = None):
        """章节页没有解析出任何图片。"""
        message = "no images found"
        if url:
            message = f"{message}: {url}"
        super().__init__(message)
        self.url = url


class InvalidUrl(ParseError):
    def __init__(self, value: str):
        """字符串无法解析为绝对 URL。"""
        super().__init__(f"invalid url: {value!r}")
        self.value = value


class UnknownHost(ParseError, LookupError):
    def __init__(self, host: str):
        """没有适配器声明该域名。"""
        super().__init__(f"no adapter registered for host: {host!r}")
        self.host = host


class DuplicateHostname(ValueError):
    def __init__(self, host: str, existing: str, incoming: str):
        """两个适配器声明了同一个域名。"""
        super().__init__(f"hostname {host!r} claimed by both {existing} and {incoming}")
        self.host = host


class FetchError(Exception):
    def __init__(self, url: str, reason: str):
        """页面获取失败（网络层错误，不在引擎内重试）。"""
        super().__init__(f"failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
