import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlsplit

from .base import SiteAdapter
from .errors import DuplicateHostname, InvalidUrl, UnknownHost
from .mangakakalot import MangaKakalot
from .query import query_from_dict

logger = logging.getLogger(__name__)

BUILTIN_ADAPTERS = (MangaKakalot,)


def host_of(url: str) -> str:
    """取 URL 的小写主机名；也接受不带协议的纯域名。"""
    if "://" not in url:
        url = f"//{url}"
    try:
        host = urlsplit(url).hostname
    except ValueError as exc:
        raise InvalidUrl(url) from exc
    if not host:
        raise InvalidUrl(url)
    return host


class SiteRegistry:
    def __init__(self, adapters: Iterable[SiteAdapter] = ()):
        """初始化适配器注册表。"""
        self._adapters: Dict[str, SiteAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: SiteAdapter) -> None:
        """注册适配器声明的全部域名，重复声明立即报错。"""
        for host in adapter.hostnames:
            existing = self._adapters.get(host)
            if existing is not None:
                raise DuplicateHostname(host, existing.name, adapter.name)
        for host in adapter.hostnames:
            self._adapters[host] = adapter
        logger.debug("已注册适配器：%s", adapter.name)

    def find(self, url: str) -> Optional[SiteAdapter]:
        """按 URL 主机精确匹配适配器，没有则返回 None。"""
        return self._adapters.get(host_of(url))

    def get(self, url: str) -> SiteAdapter:
        """按 URL 获取适配器，没有则抛出 UnknownHost。"""
        host = host_of(url)
        adapter = self._adapters.get(host)
        if adapter is None:
            raise UnknownHost(host)
        return adapter

    @property
    def hostnames(self) -> List[str]:
        """已注册的全部域名。"""
        return sorted(self._adapters)

    def __contains__(self, url: str) -> bool:
        return self.find(url) is not None

    def __len__(self) -> int:
        return len(self._adapters)


def build_registry(site_configs: Optional[Iterable[Dict[str, Any]]] = None) -> SiteRegistry:
    """注册内置适配器与配置文件中声明的站点。"""
    registry = SiteRegistry(adapter_cls() for adapter_cls in BUILTIN_ADAPTERS)
    for site in site_configs or []:
        site = dict(site)
        fetch_mode = site.pop("fetch_mode", None)
        registry.register(SiteAdapter(query_from_dict(site), fetch_mode=fetch_mode))
    logger.info("站点注册完成：%d 个域名", len(registry))
    return registry
