"""Scraper for Troll & Toad product and collection pages."""

import asyncio
import logging
import re
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from merchant_app.core.config import get_settings
from merchant_app.core.exceptions import ScrapeError

logger = logging.getLogger(__name__)

BASE_URL = "https://www.trollandtoad.com"
LAST_PAGE_PATTERN = re.compile(r'data-page="(\d+)"')


@dataclass
class TrollToadItem:
    link: str
    name: str
    price: str
    image: str
    collection: str
    variant: str
    quantity: str
    card_type: str = ""
    ship_weight: str = ""
    description: str = ""
    barcode: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _element_children(tag):
    return [child for child in tag.children if getattr(child, "name", None)] if tag else []


def _parse_price(text: Optional[str]) -> float:
    if not text:
        return 0.0
    match = re.search(r"\d+(?:\.\d+)?", text.replace(",", ""))
    return float(match.group(0)) if match else 0.0


def parse_item_page(
    html: str,
    url: str,
    quantity: int = 1,
    price: float = 0.0,
    condition: str = "standard",
) -> TrollToadItem:
    """Extract a product from a Troll & Toad item page.

    An entered ``price`` above zero wins over the scraped sale price.
    """
    soup = BeautifulSoup(html, "html.parser")

    name_el = soup.select_one(".product-name")
    name = name_el.get_text().replace("(Pokemon)", "").strip() if name_el else ""

    sale_price_el = soup.select_one("#sale-price")
    scraped_price = _parse_price(sale_price_el.get_text() if sale_price_el else None)

    image = ""
    image_children = _element_children(soup.select_one("#main-prod-img"))
    if image_children:
        image = (image_children[0].get("src") or "").replace("/small/", "/pictures/")

    collection = ""
    crumbs = _element_children(soup.select_one(".font-small.font-md-default"))
    if crumbs:
        inner = _element_children(crumbs[0])
        collection = (inner[0] if inner else crumbs[0]).get_text().strip()

    details: Dict[str, str] = {}
    for row in soup.select("tbody tr"):
        cells = row.find_all("td")
        if len(cells) >= 2:
            details[cells[0].get_text().strip()] = cells[1].get_text().strip()

    effective_price = price if price and price > 0 else scraped_price

    return TrollToadItem(
        link=url,
        name=name,
        price=str(effective_price),
        image=image,
        collection=collection,
        variant=condition,
        quantity=str(quantity),
        card_type=details.get("Card Type", ""),
        ship_weight=details.get("Ship Weight", ""),
        description=details.get("Description", ""),
        barcode=details.get("Barcode", ""),
    )


def parse_last_page(html: str) -> int:
    soup = BeautifulSoup(html, "html.parser")
    last_page = soup.select_one(".pagination .lastPage")
    if last_page is None:
        return 1
    value = last_page.get("data-page")
    if value is None:
        match = LAST_PAGE_PATTERN.search(str(last_page))
        value = match.group(1) if match else None
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return 1


def parse_collection_links(html: str) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for anchor in soup.select(".card-text"):
        href = anchor.get("href")
        if href:
            links.append(f"{BASE_URL}{href}" if href.startswith("/") else href)
    return links


class TrollToadScraper:
    def __init__(self, timeout: float = 10.0, retries: int = 3, retry_delay: float = 1.0):
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self.headers = {"User-Agent": get_settings().SCRAPER_USER_AGENT}

    async def fetch(self, url: str) -> str:
        """GET ``url``, retrying network failures ``retries`` times."""
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=self.headers)
                response.raise_for_status()
                return response.text
            except httpx.HTTPError as exc:
                last_error = exc
                logger.warning("Fetch %s failed (attempt %s/%s): %s", url, attempt + 1, self.retries + 1, exc)
                if attempt < self.retries:
                    await asyncio.sleep(self.retry_delay)
        raise ScrapeError(f"Could not fetch {url}: {last_error}")

    async def scrape_item(self, url: str, quantity: int = 1, price: float = 0.0, condition: str = "standard") -> TrollToadItem:
        html = await self.fetch(url)
        item = parse_item_page(html, url, quantity=quantity, price=price, condition=condition)
        if not item.name:
            logger.error("No product name found at %s. HTML snippet: %s", url, html[:1000])
            raise ScrapeError(f"No product name found at {url}")
        return item

    async def scrape_collection(self, url: str) -> List[TrollToadItem]:
        """Scrape every item on every page of a collection (quantity 0 each)."""
        first_page = await self.fetch(url)
        last_page = parse_last_page(first_page)
        logger.info("Collection %s has %s page(s)", url, last_page)

        items: List[TrollToadItem] = []
        for page in range(1, last_page + 1):
            html = await self.fetch(f"{url}?page-no={page}")
            for link in parse_collection_links(html):
                try:
                    items.append(await self.scrape_item(link, quantity=0))
                except ScrapeError as exc:
                    logger.error("Skipping %s: %s", link, exc)
        return items
