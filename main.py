"""
主程序入口与核心流程。

功能概要：
- 读取 YAML 配置，按内置适配器与配置中的站点构建域名注册表
- manga / images / search 子命令：获取单个页面并输出 JSON
- batch 子命令：读取 Excel 任务表，逐行提取漫画详情或执行搜索，
  结果写入 JSON，失败记录到 CSV
"""

import argparse
import csv
import json
import logging
import os
import sys
import traceback
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml

from mangaquery import FetchError, ParseError, SiteRegistry, build_registry, load_document
from mangaquery.loader import DEFAULT_USER_AGENT
from mangaquery.registry import host_of

DEFAULT_CONFIG: Dict[str, Any] = {
    "log_path": "logs/mangaquery.log",
    "request_timeout_seconds": 30,
    "user_agent": DEFAULT_USER_AGENT,
    "excel_path": "tasks.xlsx",
    "output_path": "output/results.json",
    "failures_path": "output/failures.csv",
    "sites": [],
}


def runtime_base_dir() -> str:
    """返回运行目录（源码/打包环境均可用）。"""
    if getattr(sys, "frozen", False):
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.abspath(__file__))


def ensure_playwright_env(base_dir: str) -> None:
    """若发布包内存在浏览器目录，设置环境变量供 Playwright 使用。"""
    browser_dir = os.path.join(base_dir, "ms-playwright_browsers")
    if os.path.isdir(browser_dir):
        os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", browser_dir)


def resolve_config_path(base_dir: str, path: str) -> str:
    """相对路径则相对于 base_dir 解析，绝对路径原样返回。"""
    if not path or not isinstance(path, str):
        return path
    path = path.strip()
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(base_dir, path))


def resolve_config_paths(config: Dict[str, Any], base_dir: str) -> None:
    """将 config 中的路径项解析为绝对路径（相对路径相对于 base_dir）。"""
    for key in ("excel_path", "log_path", "output_path", "failures_path"):
        if key in config and config[key]:
            config[key] = resolve_config_path(base_dir, config[key])


def load_config(path: Optional[str]) -> Dict[str, Any]:
    """读取 YAML 配置并补全默认值；文件不存在时使用默认配置。"""
    config = dict(DEFAULT_CONFIG)
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            config.update(yaml.safe_load(f) or {})
    return config


def setup_logging(log_path: str, verbose: bool = False) -> None:
    """初始化日志输出与日志文件目录。"""
    os.makedirs(os.path.dirname(log_path), exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


@dataclass
class RowItem:
    """Excel 中一行的解析结果。"""

    url: str  # 漫画详情页地址，或搜索时的站点地址
    keyword: Optional[str]  # 搜索关键词；为空时提取详情


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """统一 Excel 列名为：网址/关键词。"""
    url_col = None
    keyword_col = None
    for name in df.columns:
        label = str(name).strip().lower()
        if "网址" in label or "链接" in label or "url" in label:
            url_col = name
        if "关键词" in label or "keyword" in label:
            keyword_col = name
    if not url_col:
        raise ValueError("Excel缺少必要列：网址")
    columns = {url_col: "网址"}
    if keyword_col:
        columns[keyword_col] = "关键词"
    return df.rename(columns=columns)


def _cell_text(value: Any) -> str:
    """单元格转文本，空值返回空字符串。"""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def read_rows(excel_path: str) -> List[RowItem]:
    """读取 Excel 行并转换为 RowItem 列表。"""
    df = pd.read_excel(excel_path, engine="openpyxl")
    df = normalize_columns(df)
    rows: List[RowItem] = []
    for _, row in df.iterrows():
        url = _cell_text(row.get("网址"))
        if not url:
            logging.warning("跳过空行：%s", row.to_dict())
            continue
        rows.append(RowItem(url=url, keyword=_cell_text(row.get("关键词")) or None))
    return rows


def to_jsonable(value: Any) -> Any:
    """把提取结果转换为可 JSON 序列化的结构。"""
    if is_dataclass(value):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def save_results(path: str, results: List[Dict[str, Any]]) -> None:
    """保存提取结果到 JSON 文件。"""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(results, f, ensure_ascii=False, indent=2)


def append_csv(path: str, row: Dict[str, Any]) -> None:
    """向 CSV 追加一行（必要时写表头）。"""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    file_exists = os.path.exists(path)
    with open(path, "a", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(row.keys()))
        if not file_exists:
            writer.writeheader()
        writer.writerow(row)


class Extractor:
    def __init__(self, registry: SiteRegistry, timeout_seconds: int, user_agent: str):
        """绑定注册表与抓取参数。"""
        self.registry = registry
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    def _load(self, url: str, fetch_mode: str):
        """获取页面。"""
        return load_document(
            url,
            timeout_seconds=self.timeout_seconds,
            user_agent=self.user_agent,
            fetch_mode=fetch_mode,
        )

    def manga(self, url: str):
        """提取漫画详情。"""
        adapter = self.registry.get(url)
        manga = adapter.extract_manga(self._load(url, adapter.fetch_mode))
        logging.info("漫画详情：%s | 章节 %d | 作者 %s", manga.title, len(manga.chapters), ", ".join(manga.authors))
        return manga

    def images(self, url: str) -> List[str]:
        """提取章节图片地址。"""
        adapter = self.registry.get(url)
        images = adapter.extract_images(self._load(url, adapter.fetch_mode))
        logging.info("章节图片：%s | %d 张", url, len(images))
        return images

    def search(self, site: str, keywords: str):
        """在指定站点搜索，site 可以是域名或站点内任意地址。"""
        hostname = host_of(site)
        adapter = self.registry.get(hostname)
        search_url = adapter.search_url(hostname, keywords)
        results = adapter.extract_search_results(self._load(search_url, adapter.fetch_mode))
        logging.info("搜索到 %d 条结果：%s | %s", len(results), hostname, keywords)
        return results


def run_batch(config: Dict[str, Any], extractor: Extractor) -> List[Dict[str, Any]]:
    """执行批量任务：逐行提取或搜索，失败记录后继续。"""
    rows = read_rows(config["excel_path"])
    results: List[Dict[str, Any]] = []
    for row in rows:
        try:
            if row.keyword:
                data = extractor.search(row.url, row.keyword)
            else:
                data = extractor.manga(row.url)
        except (ParseError, FetchError) as exc:
            logging.error("提取失败：%s %s", row.url, exc)
            append_csv(
                config["failures_path"],
                {
                    "url": row.url,
                    "keyword": row.keyword or "",
                    "reason": f"{type(exc).__name__}: {exc}",
                    "time": datetime.now().isoformat(),
                },
            )
            continue
        results.append({"url": row.url, "keyword": row.keyword, "result": to_jsonable(data)})
    save_results(config["output_path"], results)
    logging.info("批量任务完成：成功 %d / 共 %d", len(results), len(rows))
    return results


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """解析命令行参数。"""
    parser = argparse.ArgumentParser(description="按站点规则提取漫画信息、章节图片与搜索结果")
    parser.add_argument(
        "--config",
        default=os.path.join(runtime_base_dir(), "config.yaml"),
        help="配置文件路径",
    )
    parser.add_argument("--verbose", action="store_true", help="输出调试日志")
    sub = parser.add_subparsers(dest="command", required=True)
    manga = sub.add_parser("manga", help="提取漫画详情")
    manga.add_argument("url")
    images = sub.add_parser("images", help="提取章节图片")
    images.add_argument("url")
    search = sub.add_parser("search", help="站内搜索")
    search.add_argument("hostname")
    search.add_argument("keywords")
    sub.add_parser("batch", help="按 Excel 任务表批量提取")
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> Any:
    """执行主流程。"""
    config = load_config(args.config)
    base_dir = runtime_base_dir()
    ensure_playwright_env(base_dir)
    resolve_config_paths(config, base_dir)
    setup_logging(config["log_path"], verbose=args.verbose)

    registry = build_registry(config.get("sites") or [])
    extractor = Extractor(
        registry,
        timeout_seconds=config["request_timeout_seconds"],
        user_agent=config["user_agent"],
    )
    if args.command == "batch":
        return run_batch(config, extractor)
    if args.command == "manga":
        data = extractor.manga(args.url)
    elif args.command == "images":
        data = extractor.images(args.url)
    else:
        data = extractor.search(args.hostname, args.keywords)
    print(json.dumps(to_jsonable(data), ensure_ascii=False, indent=2))
    return data


def main(argv: Optional[List[str]] = None) -> int:
    """命令行入口。"""
    args = parse_args(argv)
    try:
        run(args)
    except (ParseError, FetchError) as exc:
        logging.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception:
        traceback.print_exc()
        if getattr(sys, "frozen", False):
            try:
                input("\n程序异常退出，按回车键关闭窗口...")
            except EOFError:
                pass
        raise
