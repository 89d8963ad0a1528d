"""Configuration loader.

Reads environment variables and `.env` to configure the service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List, Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _split_csv(raw: Optional[str]) -> List[str]:
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


# ---- Fulfillment endpoint ----------------------------------------------------

# Retailer host. Should not include a trailing slash.
BASE_URL: str = _get_env("BASE_URL", "https://www.apple.com")

# Country whose catalog is queried. "US" maps to the root locale.
DEFAULT_COUNTRY = "US"

# Store used as the centre of the "searchNearby" query.
DEFAULT_STORE_NUMBER = "R032"

# Request timeout for the fulfillment call (seconds).
FETCH_TIMEOUT: float = _parse_float(_get_env("FETCH_TIMEOUT"), 15.0)

# ---- Polling -----------------------------------------------------------------

POLL_INTERVAL_SECONDS: int = _parse_int(_get_env("POLL_INTERVAL_SECONDS"), 60)

# Send a notification even when nothing is available.
NOTIFY_ON_EMPTY: bool = _parse_bool(_get_env("NOTIFY_ON_EMPTY"), False)

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")

# ---- Notification sinks ------------------------------------------------------

NOTIFY_DESKTOP: bool = _parse_bool(_get_env("NOTIFY_DESKTOP"), True)

# Discord webhook URL. Optional; Discord notifications are skipped when unset.
DISCORD_WEBHOOK_URL: Optional[str] = _get_env("DISCORD_WEBHOOK_URL")

EMAIL_ENABLED: bool = _parse_bool(_get_env("EMAIL_ENABLED", "false"), False)
EMAIL_SMTP_HOST: str = _get_env("EMAIL_SMTP_HOST", "smtp.gmail.com")
EMAIL_SMTP_PORT: int = _parse_int(_get_env("EMAIL_SMTP_PORT"), 587)  # 587 (TLS) or 465 (SSL)
EMAIL_USE_TLS: bool = _parse_bool(_get_env("EMAIL_USE_TLS", "true"), True)
EMAIL_USERNAME: str | None = _get_env("EMAIL_USERNAME")
EMAIL_PASSWORD: str | None = _get_env("EMAIL_PASSWORD")  # app password if using Gmail
EMAIL_FROM: str | None = _get_env("EMAIL_FROM")
EMAIL_TO: list[str] = _split_csv(_get_env("EMAIL_TO"))
EMAIL_SUBJECT_PREFIX: str = _get_env("EMAIL_SUBJECT_PREFIX", "[InventoryWatch]")


# ---- User preferences --------------------------------------------------------

@dataclass(frozen=True)
class Preferences:
    preferred_country: str = DEFAULT_COUNTRY
    preferred_store_number: str = DEFAULT_STORE_NUMBER
    preferred_skus: FrozenSet[str] = frozenset()


def parse_sku_list(raw: Optional[str]) -> FrozenSet[str]:
    """Split a comma-delimited SKU string into a set. Blank entries are dropped."""
    return frozenset(_split_csv(raw))


def load_preferences(env: Optional[Mapping[str, str]] = None) -> Preferences:
    """Build a Preferences object from a key-value source (defaults to os.environ)."""
    source = os.environ if env is None else env
    country = (source.get("PREFERRED_COUNTRY") or "").strip().upper() or DEFAULT_COUNTRY
    store = (source.get("PREFERRED_STORE_NUMBER") or "").strip() or DEFAULT_STORE_NUMBER
    return Preferences(
        preferred_country=country,
        preferred_store_number=store,
        preferred_skus=parse_sku_list(source.get("PREFERRED_SKUS")),
    )


# ---- Validation --------------------------------------------------------------

def validate() -> None:
    """Validate configuration parameters."""
    parsed = urlparse(BASE_URL or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise RuntimeError(f"BASE_URL must be an absolute http(s) URL, got {BASE_URL!r}")
    if POLL_INTERVAL_SECONDS <= 0:
        raise RuntimeError("POLL_INTERVAL_SECONDS must be a positive integer.")
    if FETCH_TIMEOUT <= 0:
        raise RuntimeError("FETCH_TIMEOUT must be positive.")


__all__ = [
    # Endpoint
    "BASE_URL",
    "DEFAULT_COUNTRY",
    "DEFAULT_STORE_NUMBER",
    "FETCH_TIMEOUT",
    # Polling
    "POLL_INTERVAL_SECONDS",
    "NOTIFY_ON_EMPTY",
    "LOG_LEVEL",
    # Sinks
    "NOTIFY_DESKTOP",
    "DISCORD_WEBHOOK_URL",
    "EMAIL_ENABLED",
    "EMAIL_SMTP_HOST",
    "EMAIL_SMTP_PORT",
    "EMAIL_USE_TLS",
    "EMAIL_USERNAME",
    "EMAIL_PASSWORD",
    "EMAIL_FROM",
    "EMAIL_TO",
    "EMAIL_SUBJECT_PREFIX",
    # Preferences
    "Preferences",
    "parse_sku_list",
    "load_preferences",
    "validate",
]
