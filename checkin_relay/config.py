# checkin_relay/config.py
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import find_dotenv, load_dotenv

DEFAULT_PROXY_URL = "http://localhost:8000"
DEFAULT_TIMEOUT_SECONDS = 30.0

_TRUTHY = {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}")


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, read once at startup and handed to the app,
    the relay and the submitter. Nothing mutates it afterwards.
    """
    upstream_url: Optional[str] = None
    upstream_timeout: float = DEFAULT_TIMEOUT_SECONDS
    proxy_url: str = DEFAULT_PROXY_URL
    submit_timeout: float = DEFAULT_TIMEOUT_SECONDS
    require_credential: bool = False
    cors_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        load_dotenv(env_file or find_dotenv(usecwd=True))

        origins = os.getenv("CHECKIN_CORS_ORIGINS") or "*"
        return cls(
            upstream_url=(os.getenv("COAMO_API_URL") or "").strip() or None,
            upstream_timeout=_env_float("COAMO_API_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            proxy_url=(os.getenv("CHECKIN_PROXY_URL") or DEFAULT_PROXY_URL).rstrip("/"),
            submit_timeout=_env_float("CHECKIN_SUBMIT_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            require_credential=_env_flag("CHECKIN_REQUIRE_TOKEN"),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
