# core/models.py
from dataclasses import dataclass, field
from typing import List, Optional

IN_STOCK = "in_stock"
OUT_OF_STOCK = "out_of_stock"
ERROR = "error"

STATUSES = (IN_STOCK, OUT_OF_STOCK, ERROR)


@dataclass
class Item:
    """
    A tracked product page. Identity is the URL.
    last_status is seeded from the status file and updated after each
    successful check.
    """
    url: str
    name: str
    last_status: Optional[str] = None
    enabled: bool = True


@dataclass
class EmailSettings:
    email_from: str = ""
    recipients: List[str] = field(default_factory=list)
    resend_api_key: str = ""


@dataclass
class Config:
    check_interval_seconds: int
    email: EmailSettings
    items: List[Item]
