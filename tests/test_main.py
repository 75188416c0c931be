import json
from datetime import datetime

import pandas as pd
import pytest

import main
from mangaquery.errors import MissingField
from mangaquery.loader import parse_document
from mangaquery.models import Chapter, Manga, SearchResult
from mangaquery.registry import build_registry


def test_to_jsonable_handles_results() -> None:
    manga = Manga(
        title="One Piece",
        url="https://manganato.com/manga-aa1",
        chapters=[Chapter(href="https://manganato.com/c/1", posted=datetime(2024, 10, 18, 12, 0))],
    )

    data = main.to_jsonable(manga)

    assert data["title"] == "One Piece"
    assert data["chapters"][0]["posted"] == "2024-10-18T12:00:00"
    json.dumps(data)


def test_normalize_columns() -> None:
    df = pd.DataFrame({"漫画网址": ["https://manganato.com/manga-aa1"], "搜索关键词": ["one piece"]})

    renamed = main.normalize_columns(df)

    assert list(renamed.columns) == ["网址", "关键词"]


def test_normalize_columns_requires_url() -> None:
    with pytest.raises(ValueError):
        main.normalize_columns(pd.DataFrame({"名称": ["x"]}))


def test_read_rows(tmp_path) -> None:
    path = tmp_path / "tasks.xlsx"
    pd.DataFrame(
        {
            "URL": ["https://manganato.com/manga-aa1", None, "manganato.com"],
            "Keyword": [None, None, "one piece"],
        }
    ).to_excel(path, index=False, engine="openpyxl")

    rows = main.read_rows(str(path))

    assert rows == [
        main.RowItem(url="https://manganato.com/manga-aa1", keyword=None),
        main.RowItem(url="manganato.com", keyword="one piece"),
    ]


class FakeExtractor:
    def manga(self, url):
        if url.endswith("broken"):
            raise MissingField("title")
        return Manga(title="One Piece", url=url)

    def search(self, hostname, keywords):
        return [SearchResult(href=f"https://{hostname}/manga-aa1", title=keywords)]


def test_run_batch_records_results_and_failures(tmp_path, monkeypatch) -> None:
    rows = [
        main.RowItem(url="https://manganato.com/manga-aa1", keyword=None),
        main.RowItem(url="https://manganato.com/broken", keyword=None),
        main.RowItem(url="manganato.com", keyword="one piece"),
    ]
    monkeypatch.setattr(main, "read_rows", lambda path: rows)
    config = {
        "excel_path": str(tmp_path / "tasks.xlsx"),
        "output_path": str(tmp_path / "out" / "results.json"),
        "failures_path": str(tmp_path / "out" / "failures.csv"),
    }

    results = main.run_batch(config, FakeExtractor())

    assert [item["url"] for item in results] == ["https://manganato.com/manga-aa1", "manganato.com"]
    saved = json.loads((tmp_path / "out" / "results.json").read_text(encoding="utf-8"))
    assert saved[1]["result"][0]["title"] == "one piece"
    failures = (tmp_path / "out" / "failures.csv").read_text(encoding="utf-8")
    assert "https://manganato.com/broken" in failures
    assert "MissingField" in failures


def test_load_config_defaults_when_missing(tmp_path) -> None:
    config = main.load_config(str(tmp_path / "absent.yaml"))

    assert config["request_timeout_seconds"] == 30
    assert config["sites"] == []


def test_extractor_search_dispatches_by_host(monkeypatch) -> None:
    loaded = []

    def fake_load(url, timeout_seconds, user_agent, fetch_mode):
        loaded.append((url, fetch_mode))
        return parse_document(
            "<div class='story_item'><h3><a href='/manga-aa1'>One Piece</a></h3></div>",
            url,
        )

    monkeypatch.setattr(main, "load_document", fake_load)
    extractor = main.Extractor(build_registry(), timeout_seconds=5, user_agent="test-agent")

    results = extractor.search("https://manganato.com/manga-zz9", "One Piece")

    assert loaded == [("https://manganato.com/search/story/One_Piece", "requests")]
    assert results == [SearchResult(href="https://manganato.com/manga-aa1", title="One Piece")]
