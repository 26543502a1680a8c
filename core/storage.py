# core/storage.py
import datetime
import json
import os
import stat
import tempfile
from typing import Dict, Optional

import pytz

from .logger import get_logger
from .models import ERROR, STATUSES

logger = get_logger(__name__)

STATUS_PATH = os.getenv("STATUS_PATH", "/data/status.json")


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


class StatusStore:
    """
    Flat JSON mapping of item URL -> last observed status.
    Read once at startup; written after every change.
    """

    def __init__(self, path: str, statuses: Optional[Dict[str, str]] = None):
        self.path = path
        self.statuses: Dict[str, str] = dict(statuses or {})

    @classmethod
    def load(cls, path: str | None = None) -> "StatusStore":
        path = path or STATUS_PATH
        if not os.path.exists(path):
            logger.info("No status file at %s; starting with empty statuses.", path)
            return cls(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load status file %s: %s", path, e)
            return cls(path)

        if not isinstance(raw, dict):
            logger.error("Status file %s is not a JSON object; ignoring it.", path)
            return cls(path)

        statuses: Dict[str, str] = {}
        for url, status in raw.items():
            if status in STATUSES and status != ERROR:
                statuses[str(url)] = status
            else:
                logger.warning("Ignoring unknown stored status %r for %s", status, url)

        logger.info("Loaded previous statuses: %s", statuses)
        return cls(path, statuses)

    def get(self, url: str) -> Optional[str]:
        return self.statuses.get(url)

    def set(self, url: str, status: str) -> bool:
        """Record status for url; persist and return True only if it changed."""
        if status == ERROR:
            raise ValueError("error is not a storable status")
        if self.statuses.get(url) == status:
            return False
        self.statuses[url] = status
        self.save()
        return True

    def _file_mode(self) -> int:
        """Mode of the existing status file, or 0644 for a new one."""
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            return 0o644

    def save(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".status-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.statuses, f, indent=2)
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Saved %d statuses to %s", len(self.statuses), self.path)
