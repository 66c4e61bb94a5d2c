"""Tests for listing, home page and player link extraction."""

from bs4 import BeautifulSoup

import scraper
from conftest import card
from scraper import (
    LISTING_SHAPES,
    extract_item,
    extract_slug,
    make_absolute,
    parse_background_image,
    parse_categories,
    parse_listing,
    parse_player_link,
)

BASE = "https://www.visioncine-1.com.br"


def _element(html):
    return BeautifulSoup(html, "html.parser").select_one(".item")


def test_extract_item_reads_all_fields():
    item = extract_item(_element(card()), BASE)
    assert item.title == "Matrix"
    assert item.image == "https://img.example/matrix.jpg"
    assert item.duration == "2h 16m"
    assert item.year == "1999"
    assert item.imdb == "8.7"
    assert item.link == f"{BASE}/watch/matrix-1999"
    assert item.slug == "matrix-1999"


def test_extract_item_missing_image_and_tags_gives_empty_strings():
    item = extract_item(_element(card(image="", tags=())), BASE)
    assert item.image == ""
    assert item.duration == ""
    assert item.year == ""
    assert item.imdb == ""
    assert item.title == "Matrix"


def test_extract_item_without_link_is_still_emitted():
    item = extract_item(_element(card(href=None)), BASE)
    assert item.link == ""
    assert item.slug == ""
    assert item.title == "Matrix"


def test_extract_item_ignores_non_watch_links():
    item = extract_item(_element(card(href="/profile/someone")), BASE)
    assert item.link == ""
    assert item.slug == ""


def test_tags_are_positional():
    item = extract_item(_element(card(tags=("1h 30m",))), BASE)
    assert item.duration == "1h 30m"
    assert item.year == ""
    assert item.imdb == ""


def test_bare_container_degrades_to_empty_record():
    item = extract_item(_element('<div class="item poster"></div>'), BASE)
    assert item.model_dump() == {
        "title": "", "image": "", "duration": "", "year": "", "imdb": "", "link": "", "slug": "",
    }


def test_extract_slug():
    assert extract_slug(f"{BASE}/watch/abc-123") == "abc-123"
    assert extract_slug("/watch/abc-123") == "abc-123"
    assert extract_slug(None) == ""
    assert extract_slug("") == ""
    assert extract_slug("/movies") == ""


def test_parse_background_image_variants():
    assert parse_background_image("background-image: url('https://a/b.jpg')") == "https://a/b.jpg"
    assert parse_background_image('background-image:url("https://a/b.jpg"); color: red') == "https://a/b.jpg"
    assert parse_background_image("background-image: url(https://a/b.jpg)") == "https://a/b.jpg"
    assert parse_background_image("color: red") == ""
    assert parse_background_image(None) == ""


def test_make_absolute():
    assert make_absolute("/watch/x", BASE) == f"{BASE}/watch/x"
    assert make_absolute("watch/x", BASE) == f"{BASE}/watch/x"
    assert make_absolute("//cdn.example/x", BASE) == "https://cdn.example/x"
    assert make_absolute("https://other.example/watch/x", BASE) == "https://other.example/watch/x"
    assert make_absolute("", BASE) == ""


def test_parse_listing_no_matches_returns_empty_list():
    html = "<html><body><p>Nothing here</p></body></html>"
    assert parse_listing(html, LISTING_SHAPES["movies"], BASE) == []


def test_parse_listing_keeps_document_order():
    html = card(title="One", href="/watch/one") + card(title="Two", href="/watch/two")
    items = parse_listing(html, LISTING_SHAPES["series"], BASE)
    assert [i.slug for i in items] == ["one", "two"]


def test_parse_categories_drops_empty_sections():
    html = (
        '<section class="front"><h5>Lançamentos</h5>'
        + card(title="A", href="/watch/a", extra_class="swiper-slide item")
        + '</section>'
        '<section class="front"><h5>Vazio</h5></section>'
        '<section class="front">'
        + card(title="B", href="/watch/b", extra_class="swiper-slide item")
        + '</section>'
    )
    categories = parse_categories(html, BASE)
    assert [c.name for c in categories] == ["Lançamentos"]
    assert [i.slug for i in categories[0].items] == ["a"]


def test_parse_categories_ignores_items_outside_sections():
    html = card(extra_class="swiper-slide item")
    assert parse_categories(html, BASE) == []


def test_player_anchor_beats_iframe():
    html = (
        '<iframe src="https://embed.example/1"></iframe>'
        '<a href="https://playcnvs.stream/v/1">Play</a>'
    )
    assert parse_player_link(html) == "https://playcnvs.stream/v/1"


def test_player_priority_order():
    html = (
        '<a href="https://host.example/ASSISTIR/1">Watch</a>'
        '<a href="https://playcnvs.stream/v/2">Play</a>'
    )
    assert parse_player_link(html) == "https://playcnvs.stream/v/2"
    assert parse_player_link('<iframe src="x"></iframe><a href="/ASSISTIR/9">w</a>') == "/ASSISTIR/9"


def test_player_falls_back_to_first_iframe():
    html = '<iframe src="https://embed.example/1"></iframe><iframe src="https://embed.example/2"></iframe>'
    assert parse_player_link(html) == "https://embed.example/1"


def test_player_not_found():
    assert parse_player_link("<a href='/home'>home</a><iframe></iframe>") is None
    assert parse_player_link("") is None


def test_broken_item_does_not_abort_the_batch(monkeypatch):
    real_extract_item = scraper.extract_item

    def extract_or_fail(element, base_url):
        if "Quebrado" in element.get_text():
            raise ValueError("malformed card")
        return real_extract_item(element, base_url)

    monkeypatch.setattr(scraper, "extract_item", extract_or_fail)
    html = (
        card(title="Antes", href="/watch/antes")
        + card(title="Quebrado", href="/watch/quebrado")
        + card(title="Depois", href="/watch/depois")
    )
    items = parse_listing(html, LISTING_SHAPES["movies"], BASE)
    assert [i.slug for i in items] == ["antes", "depois"]


def test_broken_item_does_not_drop_its_home_section(monkeypatch):
    real_extract_item = scraper.extract_item

    def extract_or_fail(element, base_url):
        if "Quebrado" in element.get_text():
            raise ValueError("malformed card")
        return real_extract_item(element, base_url)

    monkeypatch.setattr(scraper, "extract_item", extract_or_fail)
    html = (
        '<div class="front"><h5>Séries</h5>'
        + card(title="Quebrado", href="/watch/quebrado", extra_class="swiper-slide item")
        + card(title="Boa", href="/watch/boa", extra_class="swiper-slide item")
        + '</div>'
    )
    categories = parse_categories(html, BASE)
    assert [c.name for c in categories] == ["Séries"]
    assert [i.slug for i in categories[0].items] == ["boa"]
