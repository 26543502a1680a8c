import os

# Keep test runs off /data and quiet
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "INFO")

import pytest

from core.models import EmailSettings, Item


@pytest.fixture
def email_settings():
    return EmailSettings(
        email_from="alerts@example.com",
        recipients=["me@example.com"],
        resend_api_key="re_test",
    )


@pytest.fixture
def item():
    return Item(url="https://www.amazon.com/dp/B000TEST01", name="Test Widget")
