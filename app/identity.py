# app/identity.py
import json
import logging
import os
import threading
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from models import CompletionRecord

logger = logging.getLogger(__name__)

USER_ID_KEY = "user_id"
USER_ID_TTL = timedelta(days=365)

COMPLETION_KEY = "completed_day"
COMPLETION_TTL = timedelta(days=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CookieJar:
    """
    Client-side key/value store with per-key expiry, kept in one JSON file:
    {key: {"value": str, "expires_at": iso}}.
    """

    def __init__(self, path: str, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.path = path
        self.clock = clock or _utc_now
        self._lock = threading.Lock()

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Corrupted cookie file %s: %s. Resetting.", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_file(self, data: dict) -> None:
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def _live(self, data: dict) -> dict:
        now = self.clock()
        out = {}
        for key, item in data.items():
            try:
                expires = datetime.fromisoformat(item["expires_at"])
            except (KeyError, TypeError, ValueError):
                continue
            if expires.tzinfo is None:
                logger.warning("Dropping cookie %s with naive expiry %s", key, item["expires_at"])
                continue
            if expires > now:
                out[key] = item
        return out

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._live(self._load()).get(key)
        return item["value"] if item else None

    def set(self, key: str, value: str, ttl: timedelta) -> None:
        with self._lock:
            data = self._live(self._load())
            data[key] = {
                "value": value,
                "expires_at": (self.clock() + ttl).isoformat(),
            }
            self._save_file(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._live(self._load())
            if data.pop(key, None) is not None:
                self._save_file(data)


def get_or_create_identity(jar: CookieJar) -> str:
    """Stable pseudonymous id, created on first visit and never rotated."""
    user_id = jar.get(USER_ID_KEY)
    if not user_id:
        user_id = str(uuid.uuid4())
        jar.set(USER_ID_KEY, user_id, USER_ID_TTL)
        logger.info("created identity %s", user_id)
    return user_id


def remember_completion(jar: CookieJar, record: CompletionRecord) -> None:
    jar.set(COMPLETION_KEY, record.encode(), COMPLETION_TTL)


def recall_completion(jar: CookieJar, today: date) -> Optional[CompletionRecord]:
    """The completion cookie for `today`, if there is one."""
    raw = jar.get(COMPLETION_KEY)
    if not raw:
        return None
    try:
        record = CompletionRecord.decode(raw)
    except ValueError as e:
        logger.warning("Ignoring malformed completion cookie %r: %s", raw, e)
        return None
    return record if record.day == today else None
