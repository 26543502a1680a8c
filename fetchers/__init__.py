# fetchers/__init__.py
from .browser import check_item, open_browser

__all__ = ["check_item", "open_browser"]
