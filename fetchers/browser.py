# fetchers/browser.py
import datetime
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from playwright.sync_api import Browser, ElementHandle, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PWTimeoutError

from core.availability import classify_html, looks_like_captcha_or_block
from core.logger import get_logger
from core.models import ERROR, Item

logger = get_logger(__name__)

DEBUG_DIR = Path(os.getenv("DEBUG_DIR", "/data/debug_dumps"))
HEADLESS = os.getenv("HEADLESS", "true").lower() == "true"
NAV_TIMEOUT_MS = int(os.getenv("NAV_TIMEOUT_MS", "60000"))
INTERSTITIAL_NAV_TIMEOUT_MS = 30000
TITLE_TIMEOUT_MS = 10000

VIEWPORT = {"width": 1366, "height": 768}
USER_AGENT = os.getenv(
    "BROWSER_USER_AGENT",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)
LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

INTERSTITIAL_CANDIDATES = "button, input[type='submit'], a"
INTERSTITIAL_PHRASE = "continue shopping"


def _sanitize(name: str) -> str:
    """Normalize arbitrary item names to be filesystem-safe."""
    return "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in name)


def _dump_html(item_name: str, html: str) -> None:
    """Write HTML to a timestamped file when DEBUG logging is enabled."""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d_%H%M%S")
    path = DEBUG_DIR / f"product_{_sanitize(item_name or 'unknown')}_{timestamp}.html"
    try:
        DEBUG_DIR.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        logger.debug("Dumped product HTML to %s", path)
    except OSError as exc:
        logger.debug("Failed to dump product HTML to %s: %s", path, exc)


@contextmanager
def open_browser() -> Iterator[Browser]:
    """One headless Chromium session, closed on exit."""
    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=HEADLESS, args=LAUNCH_ARGS)
        try:
            yield browser
        finally:
            browser.close()


def _element_text(el: ElementHandle) -> str:
    try:
        return el.inner_text() or ""
    except PlaywrightError:
        return ""


def _element_alt(el: ElementHandle) -> str:
    try:
        return el.get_attribute("alt") or ""
    except PlaywrightError:
        return ""


def find_interstitial_button(page: Page) -> ElementHandle | None:
    for el in page.query_selector_all(INTERSTITIAL_CANDIDATES):
        text = _element_text(el).lower()
        alt = _element_alt(el).lower()
        if INTERSTITIAL_PHRASE in text or INTERSTITIAL_PHRASE in alt:
            return el
    return None


def dismiss_interstitial(page: Page) -> bool:
    """Click through a "Continue shopping" page if one is shown."""
    try:
        button = find_interstitial_button(page)
        if button is None:
            return False

        logger.info("Found 'Continue shopping' interstitial. Clicking...")
        try:
            with page.expect_navigation(
                wait_until="networkidle", timeout=INTERSTITIAL_NAV_TIMEOUT_MS
            ):
                button.click()
        except PWTimeoutError as e:
            logger.info("Navigation wait warning: %s", e)
        return True
    except PlaywrightError as e:
        logger.warning("Error handling interstitial: %s", e)
        return False


def wait_for_product(page: Page) -> None:
    try:
        page.wait_for_selector("#productTitle", timeout=TITLE_TIMEOUT_MS)
    except PlaywrightError as exc:
        if isinstance(exc, PWTimeoutError):
            reason = "Timeout waiting for #productTitle"
        else:
            reason = f"Error waiting for #productTitle ({exc})"
        try:
            title = page.title()
            blocked = looks_like_captcha_or_block(page.content())
        except PlaywrightError as e:
            logger.warning(
                "%s. Could not get page title (possibly detached): %s",
                reason,
                e,
            )
            return
        logger.warning(
            "%s. Page title: %r.%s",
            reason,
            title,
            " Page looks like a CAPTCHA/robot check." if blocked else " Page might have failed to load.",
        )


def check_item(browser: Browser, item: Item) -> str:
    """
    Load the product page in a fresh tab and classify it.
    Any failure is reported as ERROR rather than raised.
    """
    page = None
    try:
        page = browser.new_page(viewport=VIEWPORT, user_agent=USER_AGENT)
        logger.info("Checking stock for: %s", item.name)
        page.goto(item.url, wait_until="networkidle", timeout=NAV_TIMEOUT_MS)

        dismiss_interstitial(page)
        wait_for_product(page)

        html = page.content()
        _dump_html(item.name, html)
        return classify_html(html)
    except Exception as e:
        logger.error("Error checking %s: %s", item.name, e)
        return ERROR
    finally:
        if page is not None:
            try:
                page.close()
            except PlaywrightError as e:
                logger.debug("Failed to close page for %s: %s", item.name, e)
