from core.models import Item, OUT_OF_STOCK
from core.report_html import build_html_report, build_plaintext_report, build_subject


def test_subject_names_item(item):
    assert build_subject(item) == "In Stock: Test Widget"


def test_html_report_links_product(item):
    item.last_status = OUT_OF_STOCK
    html = build_html_report(item, "2026-01-01T00:00:00+00:00", theme="light")

    assert "Item Back in Stock!" in html
    assert "<strong>Test Widget</strong> is now available." in html
    assert f'href="{item.url}"' in html
    assert "Buy Now on Amazon" in html
    assert "out of stock" in html
    assert "2026-01-01T00:00:00+00:00" in html


def test_html_report_escapes_names():
    item = Item(url="https://www.amazon.com/dp/X", name="<b>Cups & Mugs</b>")
    html = build_html_report(item, "now")
    assert "&lt;b&gt;Cups &amp; Mugs&lt;/b&gt;" in html


def test_plaintext_report(item):
    text = build_plaintext_report(item, "now")
    assert "Test Widget is now available." in text
    assert item.url in text
    assert "Previous status: unknown" in text
