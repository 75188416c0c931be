import pytest

from mangaquery.loader import parse_document


@pytest.fixture
def make_doc_loc():
    def _make(html: str, url: str = "https://example.com/manga/one-piece"):
        return parse_document(html, url)

    return _make
