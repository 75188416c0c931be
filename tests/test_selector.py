import pytest
from bs4 import BeautifulSoup

from mangaquery.selector import (
    parse_group,
    select,
    select_first,
    select_group,
    split_groups,
    validate_selector,
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


INFO_HTML = """
<ul>
  <li>Author(s) : <a href="/a/oda">Oda</a></li>
  <li>GENRES : <a href="/g/action">Action</a><a href="/g/comedy">Comedy</a></li>
</ul>
<table>
  <tr><td>Status :</td><td>Ongoing</td></tr>
</table>
"""


def test_icontains_child_combinator_is_case_insensitive() -> None:
    soup = _soup(INFO_HTML)

    names = [node.get_text() for node in select(soup, "li:icontains(genre) > a")]
    upper = [node.get_text() for node in select(soup, "li:icontains(GENRE) > a")]

    assert names == ["Action", "Comedy"]
    assert upper == names


def test_icontains_adjacent_sibling() -> None:
    soup = _soup(INFO_HTML)

    matched = select(soup, "td:icontains(status) + td")

    assert [node.get_text() for node in matched] == ["Ongoing"]


def test_icontains_general_sibling_with_attribute_selector() -> None:
    soup = _soup(
        "<p class='description-update'><span>Genres:</span>"
        "<a href='/mangas/1'>A</a><a href='/other'>B</a><a href='/mangas/2'>C</a></p>"
    )

    matched = select(soup, "p.description-update span:icontains(genre) ~ a[href*=mangas]")

    assert [node.get_text() for node in matched] == ["A", "C"]


def test_icontains_inside_has() -> None:
    soup = _soup(
        "<div id='a'><h2>Summary</h2><p>text</p></div>"
        "<div id='b'><h3>Other</h3></div>"
        "<div id='c'><section><h2>Summary</h2></section></div>"
    )

    matched = select(soup, "div:has(> h2:icontains(sum))")

    assert [node["id"] for node in matched] == ["a"]


def test_union_of_groups_in_document_order() -> None:
    soup = _soup("<p>alpha</p><p>beta</p>")

    matched = select(soup, "p:icontains(beta), p:icontains(alpha)")

    assert [node.get_text() for node in matched] == ["alpha", "beta"]


def test_plain_selector_uses_soupsieve() -> None:
    soup = _soup("<div class='x'><span>1</span><span>2</span></div>")

    assert [node.get_text() for node in select_group(soup, "div.x span")] == ["1", "2"]
    assert select_first(soup, "div.missing") is None


def test_select_relative_to_container() -> None:
    soup = _soup("<div class='item'><b>Updated : today</b></div><b>Updated : never</b>")
    container = soup.select_one("div.item")

    matched = select(container, "b:icontains(updated)")

    assert [node.get_text() for node in matched] == ["Updated : today"]


def test_split_groups_ignores_nested_commas() -> None:
    groups = split_groups("a, b:has(c, d), [title='x,y'], ")

    assert groups == ("a", "b:has(c, d)", "[title='x,y']")


def test_parse_group_allows_leading_combinator() -> None:
    steps = parse_group("> h2:icontains(sum)")

    assert len(steps) == 1
    assert steps[0].combinator == ">"
    assert steps[0].compound.css == "h2"
    assert steps[0].compound.words == ("sum",)


def test_icontains_inside_not_is_rejected() -> None:
    with pytest.raises(ValueError):
        parse_group("li:not(:icontains(ad))")
    with pytest.raises(ValueError):
        validate_selector("a, p:is(:icontains(x))")


def test_validate_selector_accepts_has_with_icontains() -> None:
    validate_selector("div:has(> h2:icontains(sum)), li:not(.ad)")
