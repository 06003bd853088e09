"""
PSA certificate lookups through a remote headless browser.

psacard.com sits behind a bot challenge, so the page is loaded in a Selenium
Remote session with a clearance cookie set first. The cookie name and value
come from settings (PSA_BYPASS_COOKIE_NAME / PSA_BYPASS_COOKIE_VALUE) and are
rotated by ops when the challenge starts failing again.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bs4 import BeautifulSoup
from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from merchant_app.core.config import Settings, get_settings
from merchant_app.core.exceptions import ScrapeError
from merchant_app.core.templates import render_product_description

logger = logging.getLogger(__name__)

PSA_BASE_URL = "https://www.psacard.com"
CERT_URL = PSA_BASE_URL + "/cert/{cert}/psa"
READY_SELECTOR = ".text-subtitle1"
IMAGE_SELECTOR = "div.flex.w-full.justify-center.gap-6.align-middle img"
ITEM_INFO_SELECTOR = "h3.mb-3.text-subtitle2 + dl > div"
# Older certs have no scans on the cert page
MIN_CERT_WITH_IMAGES = 7000000
GRADE_PATTERN = re.compile(r"\d*\.?\d+$")


@dataclass
class PSACard:
    cert_number: str
    grade: str = "UNKNOWN"
    player: str = ""
    variety: str = ""
    year: str = ""
    brand: str = ""
    card_number: str = ""
    card_type: str = ""
    images: List[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        return " ".join(part for part in ["PSA", self.grade.strip(), self.player, self.variety] if part)

    def description_html(self) -> str:
        rows = [
            ("Certification Number", self.cert_number),
            ("Year", self.year),
            ("Brand", self.brand),
            ("Card Number", self.card_number),
            ("Player", self.player),
            ("Variety/Pedigree", self.variety),
            ("Grade", self.grade),
        ]
        return render_product_description("psa_description.html", rows=rows)


def extract_grade(details: Dict[str, str]) -> str:
    raw = details.get("Item Grade") or details.get("Grade")
    if raw:
        match = GRADE_PATTERN.search(raw.strip())
        return match.group(0) if match else "UNKNOWN"
    if "Autograph Grade" in details:
        return "AUTHENTIC"
    return "UNKNOWN"


def parse_cert_page(html: str, cert_number: str) -> PSACard:
    soup = BeautifulSoup(html, "html.parser")

    details: Dict[str, str] = {}
    for div in soup.select(ITEM_INFO_SELECTOR):
        dt = div.find("dt")
        dd = div.find("dd")
        key = dt.get_text().strip() if dt else ""
        if key:
            details[key] = dd.get_text().strip() if dd else ""

    images: List[str] = []
    try:
        include_images = int(cert_number) >= MIN_CERT_WITH_IMAGES
    except (TypeError, ValueError):
        include_images = True
    if include_images:
        for img in soup.select(IMAGE_SELECTOR):
            src = img.get("src")
            if src and src not in images:
                images.append(src)

    return PSACard(
        cert_number=details.get("Certification Number") or details.get("Cert Number") or str(cert_number),
        grade=extract_grade(details),
        player=details.get("Player", ""),
        variety=details.get("Variety/Pedigree", ""),
        year=details.get("Year", ""),
        brand=details.get("Brand", ""),
        card_number=details.get("Card Number", ""),
        card_type=details.get("Card Type", ""),
        images=images,
    )


class PSACertScraper:
    def __init__(self, settings: Optional[Settings] = None, wait_seconds: int = 20):
        self.settings = settings or get_settings()
        self.wait_seconds = wait_seconds

    async def scrape(self, cert_number: str) -> PSACard:
        return await asyncio.to_thread(self._scrape_sync, str(cert_number))

    def _build_options(self):
        options = webdriver.ChromeOptions()
        options.add_argument("--headless=new")
        options.add_argument("--disable-gpu")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--window-size=1280,1024")
        options.add_argument(f"--user-agent={self.settings.SCRAPER_USER_AGENT}")
        return options

    def _scrape_sync(self, cert_number: str) -> PSACard:
        grid_url = (self.settings.SELENIUM_GRID_URL or "").strip()
        if not grid_url:
            raise ScrapeError("SELENIUM_GRID_URL is not configured")

        driver = None
        try:
            driver = webdriver.Remote(command_executor=grid_url, options=self._build_options())

            if self.settings.PSA_BYPASS_COOKIE_VALUE:
                # Cookies can only be set for the domain currently loaded
                driver.get(PSA_BASE_URL)
                driver.add_cookie({
                    "name": self.settings.PSA_BYPASS_COOKIE_NAME,
                    "value": self.settings.PSA_BYPASS_COOKIE_VALUE,
                    "domain": self.settings.PSA_BYPASS_COOKIE_DOMAIN,
                    "path": "/",
                })
            else:
                logger.warning("PSA_BYPASS_COOKIE_VALUE is empty; the cert page may be challenged")

            url = CERT_URL.format(cert=cert_number)
            logger.info("Loading PSA cert page %s", url)
            driver.get(url)

            try:
                WebDriverWait(driver, self.wait_seconds).until(
                    EC.presence_of_element_located((By.CSS_SELECTOR, READY_SELECTOR))
                )
            except TimeoutException:
                snippet = (driver.page_source or "")[:1000]
                logger.error("Timed out waiting for cert %s. HTML snippet: %s", cert_number, snippet)
                raise ScrapeError(f"Timed out loading PSA cert {cert_number}")

            card = parse_cert_page(driver.page_source, cert_number)
            logger.info("Scraped PSA cert %s: %s (%s image(s))", cert_number, card.title, len(card.images))
            return card
        except WebDriverException as exc:
            logger.error("Browser session failed for cert %s: %s", cert_number, exc)
            raise ScrapeError(f"Browser session failed for cert {cert_number}: {exc}") from exc
        finally:
            if driver is not None:
                try:
                    driver.quit()
                except Exception as exc:
                    logger.warning("Failed to quit browser for cert %s: %s", cert_number, exc)
