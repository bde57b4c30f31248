# smartwings/config.py
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    search_delay: float = 2.0
    payment_delay: float = 3.0
    session_file: str = ".smartwings_session.json"
    log_level: str = "INFO"
    code_attempts: int = 10

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            search_delay=_float_env("SMARTWINGS_SEARCH_DELAY", cls.search_delay),
            payment_delay=_float_env("SMARTWINGS_PAYMENT_DELAY", cls.payment_delay),
            session_file=os.getenv("SMARTWINGS_SESSION_FILE", cls.session_file),
            log_level=os.getenv("SMARTWINGS_LOG_LEVEL", cls.log_level).upper(),
            code_attempts=int(os.getenv("SMARTWINGS_CODE_ATTEMPTS", str(cls.code_attempts))),
        )


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
