# core/emailer.py
import os
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from .logger import get_logger
from .models import EmailSettings

logger = get_logger(__name__)

RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")

SMTP_HOST = os.getenv("SMTP_HOST", "").strip()
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "").strip()
SMTP_PASS = os.getenv("SMTP_PASS", "").strip()
SMTP_USE_SSL = os.getenv("SMTP_USE_SSL", "false").lower() == "true"


class EmailError(Exception):
    """Raised when the mail provider rejects a message."""


def parse_recipients(raw) -> list[str]:
    """Accept a list of addresses or a comma/semicolon separated string."""
    if not raw:
        return []
    if isinstance(raw, str):
        parts = raw.replace(";", ",").split(",")
    elif isinstance(raw, (list, tuple)):
        parts = [p for p in raw if isinstance(p, str)]
    else:
        return []
    cleaned = [p.strip() for p in parts]
    return [p for p in cleaned if p]


def default_settings() -> EmailSettings:
    """Email settings from the environment, used where the config file is silent."""
    return EmailSettings(
        email_from=os.getenv("EMAIL_FROM", "").strip(),
        recipients=parse_recipients(os.getenv("EMAIL_TO", "")),
        resend_api_key=os.getenv("RESEND_API_KEY", "").strip(),
    )


@retry(
    retry=retry_if_exception_type(requests.ConnectionError),
    wait=wait_exponential_jitter(initial=1, max=10),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _post_resend(api_key: str, payload: dict) -> dict:
    r = requests.post(
        RESEND_API_URL,
        json=payload,
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=30,
    )
    if r.status_code >= 400:
        raise EmailError(f"Resend returned {r.status_code}: {r.text}")
    return r.json()


def _send_resend(settings: EmailSettings, subject: str, html_body: str, text_body: str) -> None:
    payload = {
        "from": settings.email_from,
        "to": settings.recipients,
        "subject": subject,
        "html": html_body,
        "text": text_body,
    }
    data = _post_resend(settings.resend_api_key, payload)
    logger.info("Email sent via Resend to %s: %s (%s)", settings.recipients, subject, data.get("id"))


def _send_smtp(settings: EmailSettings, subject: str, html_body: str, text_body: str) -> None:
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.email_from
    msg["To"] = ", ".join(settings.recipients)
    msg["Subject"] = subject

    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    if SMTP_USE_SSL:
        server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=30)
    else:
        server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30)

    try:
        if not SMTP_USE_SSL:
            server.starttls()
        if SMTP_USER:
            server.login(SMTP_USER, SMTP_PASS)
        server.sendmail(settings.email_from, settings.recipients, msg.as_string())
        logger.info("Email sent via SMTP to %s: %s", settings.recipients, subject)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            pass


def send_email(
    settings: EmailSettings,
    subject: str,
    html_body: str,
    text_body: str | None = None,
) -> bool:
    """
    Send one message. Resend is used when an API key is configured,
    otherwise SMTP. Returns False when email is not configured.
    Provider failures propagate to the caller.
    """
    if not settings.recipients:
        logger.warning("No recipients provided for email '%s'; skipping send.", subject)
        return False

    if not settings.email_from:
        logger.warning("EMAIL_FROM not configured; skipping email: %s", subject)
        return False

    if not text_body:
        text_body = "HTML capable email client required to view this message."

    if settings.resend_api_key:
        _send_resend(settings, subject, html_body, text_body)
        return True

    if SMTP_HOST:
        _send_smtp(settings, subject, html_body, text_body)
        return True

    logger.warning(
        "No email transport configured (resendApiKey/SMTP_HOST); skipping email: %s",
        subject,
    )
    return False
