"""
文档加载：获取页面并解析为 DocLoc。

支持 requests 与 playwright 两种抓取方式；网络错误统一包装为 FetchError，
不在此处重试，也与解析错误区分。
"""

import logging

import requests
from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .errors import FetchError
from .models import DocLoc

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
FETCH_MODES = ("requests", "playwright")


def _apply_response_encoding(resp: requests.Response) -> None:
    """尽可能修正响应编码以便解析。"""
    encoding = (resp.encoding or "").lower()
    if not encoding or encoding in ("iso-8859-1", "latin-1"):
        apparent = getattr(resp, "apparent_encoding", None)
        if apparent:
            resp.encoding = apparent


def parse_document(html: str, url: str) -> DocLoc:
    """将 HTML 文本解析为 DocLoc。"""
    return DocLoc(BeautifulSoup(html, "html.parser"), url)


def _fetch_with_requests(url: str, timeout_seconds: int, user_agent: str) -> DocLoc:
    """通过 requests 获取页面，返回重定向后的地址。"""
    headers = {"User-Agent": user_agent}
    try:
        resp = requests.get(url, headers=headers, timeout=timeout_seconds)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(url, str(exc)) from exc
    _apply_response_encoding(resp)
    resp.encoding = resp.encoding or "utf-8"
    return parse_document(resp.text, resp.url or url)


def _fetch_with_playwright(url: str, timeout_seconds: int, user_agent: str) -> DocLoc:
    """通过 Playwright 渲染页面。"""
    timeout_ms = timeout_seconds * 1000
    try:
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(headless=True)
            try:
                page = browser.new_page(user_agent=user_agent)
                page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                page.wait_for_timeout(500)
                html = page.content()
                final_url = page.url or url
            finally:
                browser.close()
    except PlaywrightError as exc:
        raise FetchError(url, str(exc)) from exc
    return parse_document(html, final_url)


def load_document(
    url: str,  # 页面地址
    timeout_seconds: int = 30,  # 请求超时秒数
    user_agent: str = DEFAULT_USER_AGENT,  # HTTP User-Agent
    fetch_mode: str = "requests",  # 抓取方式
) -> DocLoc:
    """获取并解析页面。"""
    if fetch_mode not in FETCH_MODES:
        raise ValueError(f"unknown fetch_mode: {fetch_mode!r}")
    logger.info("获取页面：%s（%s）", url, fetch_mode)
    if fetch_mode == "playwright":
        return _fetch_with_playwright(url, timeout_seconds, user_agent)
    return _fetch_with_requests(url, timeout_seconds, user_agent)
