from contextlib import contextmanager

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PWTimeoutError

from fetchers import browser
from core.models import ERROR, IN_STOCK, OUT_OF_STOCK

IN_STOCK_HTML = "<span id='productTitle'>W</span><input id='add-to-cart-button'>"
OUT_OF_STOCK_HTML = "<span id='productTitle'>W</span><div id='availability'>Currently unavailable.</div>"


class FakeElement:
    def __init__(self, text="", alt=None, on_click=None, broken=False):
        self.text = text
        self.alt = alt
        self.on_click = on_click
        self.broken = broken
        self.clicked = False

    def inner_text(self):
        if self.broken:
            raise PlaywrightError("detached")
        return self.text

    def get_attribute(self, name):
        if self.broken:
            raise PlaywrightError("detached")
        return self.alt if name == "alt" else None

    def click(self):
        self.clicked = True
        if self.on_click:
            self.on_click()


class FakePage:
    def __init__(self, html, elements=(), title_appears=True, goto_error=None, nav_times_out=False,
                 selector_error=None):
        self.html = html
        self.elements = list(elements)
        self.title_appears = title_appears
        self.goto_error = goto_error
        self.nav_times_out = nav_times_out
        self.selector_error = selector_error
        self.visited = []
        self.closed = False

    def goto(self, url, wait_until=None, timeout=None):
        self.visited.append((url, wait_until, timeout))
        if self.goto_error:
            raise self.goto_error

    def query_selector_all(self, selector):
        return self.elements

    @contextmanager
    def expect_navigation(self, wait_until=None, timeout=None):
        yield
        if self.nav_times_out:
            raise PWTimeoutError("Timeout 30000ms exceeded.")

    def wait_for_selector(self, selector, timeout=None):
        if self.selector_error:
            raise self.selector_error
        if not self.title_appears:
            raise PWTimeoutError("Timeout 10000ms exceeded.")

    def title(self):
        return "Robot Check"

    def content(self):
        return self.html

    def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.page_kwargs = None

    def new_page(self, **kwargs):
        self.page_kwargs = kwargs
        return self.page


def test_check_item_classifies_in_stock(item):
    page = FakePage(IN_STOCK_HTML)
    fake = FakeBrowser(page)

    assert browser.check_item(fake, item) == IN_STOCK
    assert page.visited == [(item.url, "networkidle", browser.NAV_TIMEOUT_MS)]
    assert fake.page_kwargs["viewport"] == {"width": 1366, "height": 768}
    assert "Chrome" in fake.page_kwargs["user_agent"]
    assert page.closed


def test_check_item_classifies_out_of_stock(item):
    assert browser.check_item(FakeBrowser(FakePage(OUT_OF_STOCK_HTML)), item) == OUT_OF_STOCK


def test_navigation_failure_is_error_and_page_closed(item):
    page = FakePage(IN_STOCK_HTML, goto_error=PWTimeoutError("Timeout 60000ms exceeded."))
    assert browser.check_item(FakeBrowser(page), item) == ERROR
    assert page.closed


def test_missing_product_title_still_classifies(item):
    page = FakePage(OUT_OF_STOCK_HTML, title_appears=False)
    assert browser.check_item(FakeBrowser(page), item) == OUT_OF_STOCK


def test_interstitial_is_clicked_before_classifying(item):
    page = FakePage("<p>Click the button below to continue shopping</p>")
    button = FakeElement(
        text="Continue shopping",
        on_click=lambda: setattr(page, "html", IN_STOCK_HTML),
    )
    page.elements = [FakeElement(text="Conditions of Use"), button]

    assert browser.check_item(FakeBrowser(page), item) == IN_STOCK
    assert button.clicked


def test_interstitial_matches_alt_attribute():
    target = FakeElement(text="", alt="Continue shopping")
    page = FakePage("", elements=[FakeElement(broken=True), target])

    assert browser.find_interstitial_button(page) is target


def test_interstitial_navigation_timeout_is_tolerated():
    button = FakeElement(text="Continue Shopping")
    page = FakePage("", elements=[button], nav_times_out=True)

    assert browser.dismiss_interstitial(page) is True
    assert button.clicked


def test_no_interstitial():
    page = FakePage("", elements=[FakeElement(text="Add to Cart")])
    assert browser.dismiss_interstitial(page) is False


def test_product_title_wait_error_still_classifies(item):
    page = FakePage(
        IN_STOCK_HTML,
        selector_error=PlaywrightError("Execution context was destroyed"),
    )
    assert browser.check_item(FakeBrowser(page), item) == IN_STOCK
    assert page.closed
