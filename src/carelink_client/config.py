from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env if present
load_dotenv()


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    carelink_username: str = os.getenv("CARELINK_USERNAME", "")
    carelink_password: str = os.getenv("CARELINK_PASSWORD", "")
    # "EU" selects the SSO login flow
    mmconnect_server: str = os.getenv("MMCONNECT_SERVER", "")
    carelink_server: str = os.getenv("CARELINK_SERVER", "")
    max_retry_duration: float = float(os.getenv("CARELINK_MAX_RETRY_DURATION", "512"))
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "45"))
    verbose: bool = _flag(os.getenv("CARELINK_VERBOSE", ""))


settings = Settings()
