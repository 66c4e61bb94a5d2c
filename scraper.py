# scraper.py
"""
Scraper for visioncine (https://www.visioncine-1.com.br).

This module parses listing cards, home page sections and watch page player
links out of the upstream HTML, and provides async helpers that fetch a page
through a Fetcher and parse it:
- Home page categories
- Movies, series and animes listings
- Search results
- Player link for a watch page

Extraction is best-effort: missing fields become empty strings and a broken
card is skipped without failing the whole page.
"""
from bs4 import BeautifulSoup, Tag
from dataclasses import dataclass
from urllib.parse import quote
import logging
import re
from typing import Dict, List, Optional

import config
from fetcher import Fetcher
from models import Category, ListingItem

logger = logging.getLogger(__name__)

WATCH_MARKER = "/watch/"
IMDB_PREFIX = "IMDb"

# Card tags are read by position, not by label. The upstream renders them in this order.
TAG_ROLES = ("duration", "year", "imdb")

# Home page layout
HOME_SECTION_SELECTOR = ".front"
HOME_HEADING_SELECTOR = "h5"
HOME_ITEM_SELECTOR = ".swiper-slide.item"

# Player link candidates, in priority order
PLAYER_ANCHOR_SELECTORS = ('a[href*="playcnvs.stream"]', 'a[href*="ASSISTIR"]')

# Characters encodeURIComponent leaves unescaped
SEARCH_QUOTE_SAFE = "'!()*-._~"

@dataclass(frozen=True)
class ListingShape:
    name: str
    item_selector: str
    path: str

LISTING_SHAPES: Dict[str, ListingShape] = {
    "movies": ListingShape("movies", ".item.poster", "/movies"),
    "series": ListingShape("series", ".item.poster", "/tvseries"),
    "animes": ListingShape("animes", ".item.poster", "/animes"),
    "search": ListingShape("search", ".item.poster", "/search.php?q="),
}

# Helper function to make a URL absolute against the upstream base
def make_absolute(url: str, base_url: str = config.BASE_URL) -> str:
    if not url:
        return ""
    if url.startswith('//'):
        return 'https:' + url
    if url.startswith(('http://', 'https://')):
        return url
    return base_url.rstrip('/') + '/' + url.lstrip('/')

def extract_slug(href: Optional[str]) -> str:
    """
    Return the path segment after /watch/ in a watch link.
    Examples:
        /watch/abc-123 -> abc-123
        https://www.visioncine-1.com.br/watch/abc-123 -> abc-123
        None -> ''
    """
    if not href or WATCH_MARKER not in href:
        return ""
    return href.split(WATCH_MARKER)[1]

_BACKGROUND_IMAGE_RE = re.compile(r'background-image\s*:\s*([^;]+)', re.IGNORECASE)
_URL_OPEN_RE = re.compile(r'url\([\'"]?')
_URL_CLOSE_RE = re.compile(r'[\'"]?\)')

def parse_background_image(style: Optional[str]) -> str:
    """Pull the URL out of an inline style's background-image declaration."""
    if not style:
        return ""
    match = _BACKGROUND_IMAGE_RE.search(style)
    if not match:
        return ""
    value = match.group(1).strip()
    value = _URL_OPEN_RE.sub('', value, count=1)
    value = _URL_CLOSE_RE.sub('', value, count=1)
    return value.strip()

def _text(element: Optional[Tag], selector: str) -> str:
    if element is None:
        return ""
    return "".join(node.get_text() for node in element.select(selector)).strip()

def extract_item(element: Tag, base_url: str = config.BASE_URL) -> ListingItem:
    info = element.select_one('.info')

    content = element.select_one('.content')
    image = parse_background_image(content.get('style')) if content else ""

    tags = [span.get_text().strip() for span in info.select('.tags span')] if info else []
    fields = dict.fromkeys(TAG_ROLES, "")
    for role, value in zip(TAG_ROLES, tags):
        fields[role] = value
    fields["imdb"] = fields["imdb"].replace(IMDB_PREFIX, "", 1).strip()

    anchor = info.select_one(f'a[href*="{WATCH_MARKER}"]') if info else None
    href = anchor.get('href') if anchor else None

    return ListingItem(
        title=_text(info, 'h6'),
        image=image,
        link=make_absolute(href, base_url) if href else "",
        slug=extract_slug(href),
        **fields
    )

def _extract_items(elements: List[Tag], base_url: str) -> List[ListingItem]:
    items = []
    for element in elements:
        try:
            items.append(extract_item(element, base_url))
        except Exception as e:
            logger.error(f"Failed to parse listing item: {e}", exc_info=True)
            continue
    return items

def parse_listing(html: str, shape: ListingShape, base_url: str = config.BASE_URL) -> List[ListingItem]:
    soup = BeautifulSoup(html or "", 'html.parser')
    elements = soup.select(shape.item_selector)
    if not elements:
        logger.warning(f"No '{shape.item_selector}' items found for {shape.name}")
    return _extract_items(elements, base_url)

def parse_categories(html: str, base_url: str = config.BASE_URL) -> List[Category]:
    soup = BeautifulSoup(html or "", 'html.parser')
    categories = []
    for section in soup.select(HOME_SECTION_SELECTOR):
        name = _text(section, HOME_HEADING_SELECTOR)
        items = _extract_items(section.select(HOME_ITEM_SELECTOR), base_url)
        if not name or not items:
            logger.debug(f"Skipping home section (name={name!r}, items={len(items)})")
            continue
        categories.append(Category(name=name, items=items))
    return categories

def parse_player_link(html: str) -> Optional[str]:
    """Return the player URL of a watch page, or None when the page has none."""
    soup = BeautifulSoup(html or "", 'html.parser')
    for selector in PLAYER_ANCHOR_SELECTORS:
        anchor = soup.select_one(selector)
        if anchor and anchor.get('href'):
            return anchor['href']
    iframe = soup.find('iframe')
    if iframe and iframe.get('src'):
        return iframe['src']
    return None

async def scrape_home(fetcher: Fetcher, base_url: str = config.BASE_URL) -> List[Category]:
    logger.info(f"Scraping home page: {base_url}")
    html = await fetcher.fetch(base_url)
    categories = parse_categories(html, base_url)
    logger.info(f"Scraped {len(categories)} categories from the home page")
    return categories

async def scrape_listing(name: str, fetcher: Fetcher, base_url: str = config.BASE_URL) -> List[ListingItem]:
    shape = LISTING_SHAPES[name]
    url = f"{base_url}{shape.path}"
    html = await fetcher.fetch(url)
    items = parse_listing(html, shape, base_url)
    logger.info(f"Scraped {len(items)} {name} from {url}")
    return items

async def scrape_search(query: str, fetcher: Fetcher, base_url: str = config.BASE_URL) -> List[ListingItem]:
    shape = LISTING_SHAPES["search"]
    url = f"{base_url}{shape.path}{quote(query, safe=SEARCH_QUOTE_SAFE)}"
    html = await fetcher.fetch(url)
    results = parse_listing(html, shape, base_url)
    logger.info(f"Scraped {len(results)} results for search term: {query}")
    return results

async def scrape_player_link(slug: str, fetcher: Fetcher, base_url: str = config.BASE_URL) -> Optional[str]:
    url = f"{base_url}{WATCH_MARKER}{slug}"
    html = await fetcher.fetch(url)
    player_link = parse_player_link(html)
    if player_link:
        logger.info(f"Player link found for {slug}")
    else:
        logger.warning(f"No player link found on {url}")
    return player_link

async def check_upstream(fetcher: Fetcher, base_url: str = config.BASE_URL) -> None:
    """Fetch the home page once; raises FetchError when the upstream cannot be reached."""
    await fetcher.fetch(base_url)
