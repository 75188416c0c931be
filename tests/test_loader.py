import pytest
import requests

from mangaquery import loader
from mangaquery.errors import FetchError
from mangaquery.models import DocLoc


class FakeResponse:
    def __init__(self, text: str, url: str, encoding="utf-8", status_code: int = 200):
        self.text = text
        self.url = url
        self.encoding = encoding
        self.apparent_encoding = "utf-8"
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_load_document_returns_final_url(monkeypatch) -> None:
    calls = {}

    def fake_get(url, headers=None, timeout=None):
        calls["url"] = url
        calls["headers"] = headers
        calls["timeout"] = timeout
        return FakeResponse("<h1>One Piece</h1>", "https://manganato.com/manga-aa1")

    monkeypatch.setattr(loader.requests, "get", fake_get)

    doc_loc = loader.load_document("http://manganato.com/manga-aa1", timeout_seconds=5, user_agent="test-agent")

    assert isinstance(doc_loc, DocLoc)
    assert doc_loc.url == "https://manganato.com/manga-aa1"
    assert doc_loc.doc.select_one("h1").get_text() == "One Piece"
    assert calls["headers"] == {"User-Agent": "test-agent"}
    assert calls["timeout"] == 5


def test_load_document_wraps_http_errors(monkeypatch) -> None:
    monkeypatch.setattr(
        loader.requests,
        "get",
        lambda url, headers=None, timeout=None: FakeResponse("", url, status_code=503),
    )

    with pytest.raises(FetchError) as excinfo:
        loader.load_document("https://manganato.com/manga-aa1")

    assert excinfo.value.url == "https://manganato.com/manga-aa1"


def test_load_document_wraps_connection_errors(monkeypatch) -> None:
    def fake_get(url, headers=None, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(loader.requests, "get", fake_get)

    with pytest.raises(FetchError, match="refused"):
        loader.load_document("https://manganato.com/manga-aa1")


def test_latin1_response_uses_apparent_encoding() -> None:
    resp = FakeResponse("", "https://example.com", encoding="ISO-8859-1")

    loader._apply_response_encoding(resp)

    assert resp.encoding == "utf-8"


def test_unknown_fetch_mode() -> None:
    with pytest.raises(ValueError):
        loader.load_document("https://example.com", fetch_mode="curl")
