# smartwings/session.py
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .consts import SESSION_USER_KEY
from .models import User

logger = logging.getLogger("SmartWings-Session")


class SessionStore:
    """
    One named slot ("currentUser") in a small JSON file.

    Only the signed-in user lives here; booking state is never persisted.
    """

    def __init__(self, path: str, key: str = SESSION_USER_KEY):
        self.path = Path(path)
        self.key = key
        self._current: Optional[User] = None

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading session file: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> bool:
        try:
            self.path.write_text(json.dumps(data), encoding="utf-8")
            return True
        except OSError as e:
            logger.error(f"Error saving session file: {e}")
            return False

    def set_current_user(self, user: User) -> bool:
        self._current = user
        data = self._read_all()
        data[self.key] = user.model_dump(mode="json")
        return self._write_all(data)

    def get_current_user(self) -> Optional[User]:
        if self._current is None:
            raw = self._read_all().get(self.key)
            if raw is None:
                return None
            try:
                self._current = User(**raw)
            except (TypeError, ValidationError) as e:
                logger.error(f"Stored user is unreadable: {e}")
                return None
        return self._current

    def logout(self) -> None:
        self._current = None
        data = self._read_all()
        if data.pop(self.key, None) is not None:
            self._write_all(data)
        logger.info("User logged out")
