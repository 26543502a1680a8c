# core/availability.py
from typing import Iterable

from bs4 import BeautifulSoup
from bs4.element import Tag

from .logger import get_logger
from .models import IN_STOCK, OUT_OF_STOCK

logger = get_logger(__name__)

PURCHASE_SELECTORS = ("#add-to-cart-button", "#buy-now-button")
AVAILABILITY_SELECTOR = "#availability"
UNAVAILABLE_PHRASES = ("currently unavailable", "out of stock")
NON_VISIBLE_SELECTOR = "script, style, noscript, template, [hidden], [aria-hidden='true']"


def _select_first(root: Tag | BeautifulSoup, selectors: Iterable[str]) -> Tag | None:
    """Select the first tag that matches any of the given CSS selectors."""
    for sel in selectors:
        found = root.select_one(sel)
        if found is not None:
            return found
    return None


def looks_like_captcha_or_block(html: str) -> bool:
    """Heuristically detect Robot Check / CAPTCHA / blocked pages."""
    lower = html.lower()
    if "robot check" in lower:
        return True
    if "enter the characters you see below" in lower:
        return True
    if "/errors/validatecaptcha" in lower:
        return True
    if "to discuss automated access to amazon data" in lower:
        return True
    if "type the characters you see in this image" in lower:
        return True
    return False


def availability_text(soup: BeautifulSoup) -> str:
    """Visible text of the availability block; script, style and hidden nodes are dropped."""
    block = soup.select_one(AVAILABILITY_SELECTOR)
    if block is None:
        return ""
    for node in block.select(NON_VISIBLE_SELECTOR):
        node.decompose()
    return block.get_text(" ", strip=True)


def classify_html(html: str) -> str:
    """
    Classify a rendered product page as IN_STOCK or OUT_OF_STOCK.

    A purchase button (add to cart / buy now) means available, unless the
    availability block says "currently unavailable" or "out of stock".
    A page with neither signal is treated as unavailable.
    """
    soup = BeautifulSoup(html, "html.parser")

    purchase_el = _select_first(soup, PURCHASE_SELECTORS)
    available = purchase_el is not None

    text = availability_text(soup).lower()
    if text and any(phrase in text for phrase in UNAVAILABLE_PHRASES):
        if available:
            logger.debug(
                "Purchase button present but availability text says %r; treating as unavailable.",
                text,
            )
        available = False

    return IN_STOCK if available else OUT_OF_STOCK
