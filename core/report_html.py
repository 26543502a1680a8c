# core/report_html.py
import os
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.models import Item

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

EMAIL_THEME = os.getenv("EMAIL_THEME", "dark").strip().lower()
if EMAIL_THEME not in ("light", "dark"):
    EMAIL_THEME = "dark"

THEMES = {
    "light": {
        "page_bg": "#f5f5f5",
        "card_bg": "#ffffff",
        "card_border": "#e0e0e0",
        "text_primary": "#202124",
        "text_secondary": "#555",
        "text_muted": "#999",
        "in_stock": "#2e7d32",
        "link_color": "#1a73e8",
    },
    "dark": {
        "page_bg": "#121212",
        "card_bg": "#1E1E1E",
        "card_border": "#333333",
        "text_primary": "#F1F1F1",
        "text_secondary": "#BBBBBB",
        "text_muted": "#777777",
        "in_stock": "#4CAF50",
        "link_color": "#8AB4F8",
    },
}


def build_subject(item: Item) -> str:
    return f"In Stock: {item.name}"


def _context(item: Item, detected_at: str) -> dict:
    return {
        "name": item.name,
        "url": item.url,
        "previous_status": (item.last_status or "unknown").replace("_", " "),
        "detected_at": detected_at,
    }


def build_plaintext_report(item: Item, detected_at: str) -> str:
    template = env.get_template("email_text.txt")
    return template.render(**_context(item, detected_at))


def build_html_report(item: Item, detected_at: str, theme: str | None = None) -> str:
    theme = theme if theme in THEMES else EMAIL_THEME
    template = env.get_template("email.html")
    ctx = _context(item, detected_at)
    ctx["title"] = build_subject(item)
    ctx["colors"] = THEMES[theme]
    return template.render(**ctx)
