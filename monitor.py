import os
import json
import time
from typing import Any, Dict, List, Optional

from core.logger import get_logger
from core.emailer import default_settings, parse_recipients, send_email
from core.models import ERROR, Config, EmailSettings, Item
from core.report_html import build_html_report, build_plaintext_report, build_subject
from core.storage import StatusStore, now_utc_iso
from core.transitions import decide_transition
from fetchers import check_item, open_browser

logger = get_logger(__name__)

MODE = os.getenv("MODE", "daemon").lower()  # "daemon" or "once"
CONFIG_PATH = os.getenv("CONFIG_PATH", "/data/config.json")
DEFAULT_CHECK_INTERVAL = 300
ITEM_DELAY_SECONDS = float(os.getenv("ITEM_DELAY_SECONDS", "5"))


class ConfigError(Exception):
    """Config file exists but cannot be used."""


def _parse_items(raw_items: Any) -> List[Item]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ConfigError("config.json 'items' must be a non-empty list.")

    items: List[Item] = []
    seen: set[str] = set()
    for raw in raw_items:
        if not isinstance(raw, dict):
            logger.error("Invalid item entry: %s", raw)
            continue
        url = str(raw.get("url") or "").strip()
        name = str(raw.get("name") or "").strip()
        if not url:
            logger.error("Invalid item entry (missing url): %s", raw)
            continue
        if url in seen:
            logger.warning("Duplicate item url %s; keeping the first entry.", url)
            continue
        seen.add(url)
        items.append(Item(url=url, name=name or url, enabled=bool(raw.get("enabled", True))))

    if not items:
        raise ConfigError("config.json 'items' has no valid entries.")
    return items


def _parse_email(cfg: Dict[str, Any]) -> EmailSettings:
    env = default_settings()
    recipients = parse_recipients(cfg.get("emailTo"))
    return EmailSettings(
        email_from=str(cfg.get("emailFrom") or "").strip() or env.email_from,
        recipients=recipients or env.recipients,
        resend_api_key=str(cfg.get("resendApiKey") or "").strip() or env.resend_api_key,
    )


def load_config(path: str = CONFIG_PATH) -> Config:
    if not os.path.exists(path):
        logger.error("Config file not found at %s", path)
        raise SystemExit(1)
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to load config.json at {path}: {e}") from e

    if not isinstance(cfg, dict) or "items" not in cfg:
        raise ConfigError("config.json must be an object with an 'items' key.")

    interval_val = cfg.get("checkIntervalSeconds")
    try:
        interval = int(interval_val) if interval_val else DEFAULT_CHECK_INTERVAL
    except (TypeError, ValueError):
        logger.warning(
            "Invalid checkIntervalSeconds %r; using %d.", interval_val, DEFAULT_CHECK_INTERVAL
        )
        interval = DEFAULT_CHECK_INTERVAL

    return Config(
        check_interval_seconds=max(1, interval),
        email=_parse_email(cfg),
        items=_parse_items(cfg["items"]),
    )


def reload_config(previous: Config, path: str = CONFIG_PATH) -> Config:
    """Load config for a new cycle, falling back to the last good one."""
    try:
        return load_config(path)
    except (ConfigError, SystemExit) as e:
        logger.error("Failed to reload config, using previous config: %s", e)
        return previous


def notify_in_stock(settings: EmailSettings, item: Item) -> bool:
    detected_at = now_utc_iso()
    subject = build_subject(item)
    html_body = build_html_report(item, detected_at)
    text_body = build_plaintext_report(item, detected_at)
    return send_email(settings, subject, html_body, text_body)


def process_item(browser, item: Item, store: StatusStore, settings: EmailSettings) -> str:
    status = check_item(browser, item)
    logger.info("Status for %s: %s", item.name, status)

    item.last_status = store.get(item.url)
    transition = decide_transition(item.last_status, status)

    if status == ERROR:
        logger.info("Skipping status update for %s due to error.", item.name)
        return status

    if transition.notify:
        logger.info("!!! %s IS IN STOCK !!! Sending notification...", item.name)
        try:
            notify_in_stock(settings, item)
        except Exception as e:
            logger.exception("Exception sending email for %s: %s", item.name, e)

    if transition.persist:
        store.set(item.url, status)
    item.last_status = status
    return status


def run_cycle(config: Config, store: StatusStore, item_delay: Optional[float] = None) -> Dict[str, str]:
    """Check every enabled item once in a single browser session."""
    delay = ITEM_DELAY_SECONDS if item_delay is None else item_delay
    results: Dict[str, str] = {}

    with open_browser() as browser:
        for item in config.items:
            if not item.enabled:
                logger.info("Item '%s' is disabled; skipping.", item.name)
                continue
            try:
                results[item.url] = process_item(browser, item, store, config.email)
            except Exception as e:
                logger.exception("Error processing %s: %s", item.name, e)
                results[item.url] = ERROR

            if delay > 0:
                time.sleep(delay)

    return results


def run_once(path: str = CONFIG_PATH) -> int:
    config = load_config(path)
    store = StatusStore.load()
    run_cycle(config, store)
    return 0


def run_daemon(path: str = CONFIG_PATH) -> None:
    config = load_config(path)
    store = StatusStore.load()

    logger.info("Starting Amazon Item Tracker...")
    logger.info(
        "Tracking %d items. Check interval: %ds",
        len(config.items), config.check_interval_seconds,
    )

    while True:
        config = reload_config(config, path)
        try:
            run_cycle(config, store)
        except Exception as e:
            logger.exception("Unhandled error in monitor cycle: %s", e)

        logger.info("Cycle complete. Waiting %d seconds...", config.check_interval_seconds)
        time.sleep(config.check_interval_seconds)


if __name__ == "__main__":
    try:
        if MODE == "once":
            raise SystemExit(run_once())
        else:
            run_daemon()
    except ConfigError as e:
        logger.error("%s", e)
        raise SystemExit(1)
    except Exception as e:
        logger.exception("Fatal monitor error: %s", e)
        raise SystemExit(2)
