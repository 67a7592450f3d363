"""
Local client persistence.

A small key-value store holding the check-in collection and the per-client
user id under fixed keys.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from gympulse.config import Config
from gympulse.feature_engineering import HOUR_MS, now_ms
from gympulse.models import CheckIn

logger = logging.getLogger(__name__)

CHECK_INS_KEY = "gympulse_checkins"
USER_ID_KEY = "gympulse_user_id"


class KeyValueStorage:
    """Interface for local persistence."""

    def load(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> None:
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    """Storage kept in a dict, for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(initial or {})

    def load(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def save(self, key: str, value: Any) -> None:
        self.data[key] = value


class JsonFileStorage(KeyValueStorage):
    """Storage persisted as a single JSON document on disk."""

    def __init__(self, path: str = Config.STORAGE_PATH):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def save(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.path)


def load_check_ins(storage: KeyValueStorage, now: Optional[int] = None) -> List[CheckIn]:
    """
    Load persisted check-ins, dropping entries older than the retention window.

    Args:
        storage: Local storage
        now: Reference time in epoch ms (defaults to wall clock)

    Returns:
        Check-ins in stored order
    """
    if now is None:
        now = now_ms()

    raw = storage.load(CHECK_INS_KEY) or []
    retention_ms = Config.RETENTION_HOURS * HOUR_MS

    check_ins = []
    for item in raw:
        try:
            check_in = CheckIn.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed stored check-in {item!r}: {e}")
            continue
        if now - check_in.timestamp <= retention_ms:
            check_ins.append(check_in)

    dropped = len(raw) - len(check_ins)
    if dropped:
        logger.info(f"Dropped {dropped} stored check-ins older than {Config.RETENTION_HOURS}h")
    return check_ins


def save_check_ins(storage: KeyValueStorage, check_ins: List[CheckIn]) -> None:
    storage.save(CHECK_INS_KEY, [c.to_dict() for c in check_ins])


def get_or_create_user_id(storage: KeyValueStorage) -> str:
    """Return the stable per-client user id, generating it on first use."""
    user_id = storage.load(USER_ID_KEY)
    if not user_id:
        user_id = f"user_{uuid.uuid4().hex[:12]}"
        storage.save(USER_ID_KEY, user_id)
        logger.info(f"Generated new client user id {user_id}")
    return user_id
