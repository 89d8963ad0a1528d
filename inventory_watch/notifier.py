"""Notification composition and delivery.

`compose_notification` turns an availability result into a title and a
one-line summary. Sinks are plain callables taking `(title, body)`;
`build_sink` fans a notification out to every sink enabled in config.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import AbstractSet, Callable, Iterable, List, Optional

import requests
from plyer import notification

from . import config
from . import emailer
from .catalog import SkuData
from .config import Preferences
from .scraper import AvailabilityResult
from .utils import get_http_session, post_json

logger = logging.getLogger(__name__)

PREFERRED_TITLE = "Preferred Model Found"
GENERIC_TITLE = "Apple Store Inventory Found"

Sink = Callable[[str, str], None]


@dataclass(frozen=True)
class Notification:
    title: str
    body: str
    preferred: bool = False


def has_preferred_model(result: AvailabilityResult, preferred_skus: AbstractSet[str]) -> bool:
    if not preferred_skus:
        return False
    return any(
        part.part_number in preferred_skus
        for _, parts in result
        for part in parts
    )


def generate_notification_text(result: AvailabilityResult, sku_data: SkuData) -> str:
    """Summarise how many stores have each part, e.g. "14\" MacBook Pro ...: 2 found"."""
    tally: Counter[str] = Counter()
    for _, parts in result:
        tally.update({part.part_number for part in parts})

    entries: List[str] = []
    for sku, count in tally.items():
        name = sku_data.product_name(sku) or sku
        entries.append(f"{name}: {count} found")
    return ", ".join(entries)


def compose_notification(
    result: AvailabilityResult,
    preferences: Preferences,
    sku_data: SkuData,
) -> Notification:
    preferred = has_preferred_model(result, preferences.preferred_skus)
    return Notification(
        title=PREFERRED_TITLE if preferred else GENERIC_TITLE,
        body=generate_notification_text(result, sku_data),
        preferred=preferred,
    )


# ---------------------------
# Sinks
# ---------------------------

def log_sink(title: str, body: str) -> None:
    logger.info("%s: %s", title, body or "(nothing found)")


def desktop_sink(title: str, body: str) -> None:
    notification.notify(title=title, message=body, app_name="InventoryWatch", timeout=10)


def _build_embed(title: str, body: str) -> dict:
    embed = {"title": title, "description": body or "Nothing available right now."}
    if title == PREFERRED_TITLE:
        embed["color"] = 0x2ECC71
    return embed


def send_discord(
    title: str,
    body: str,
    webhook_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> None:
    if webhook_url is None:
        webhook_url = config.DISCORD_WEBHOOK_URL
    if not webhook_url:
        logger.error("Discord webhook URL is not configured. Cannot send notification.")
        return

    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        logger.info("Sending Discord notification: %s", title)
        post_json(session, webhook_url, {"embeds": [_build_embed(title, body)]})
    finally:
        if close_session:
            session.close()


def fan_out(sinks: Iterable[Sink]) -> Sink:
    """Combine sinks into one. A failing sink is logged and the rest still run."""
    targets = list(sinks)

    def dispatch(title: str, body: str) -> None:
        for sink in targets:
            try:
                sink(title, body)
            except Exception:
                logger.exception("Notification sink %s failed", getattr(sink, "__name__", sink))

    return dispatch


def build_sink() -> Sink:
    """Return a sink delivering to everything enabled in config."""
    sinks: List[Sink] = [log_sink]
    if config.NOTIFY_DESKTOP:
        sinks.append(desktop_sink)
    if config.DISCORD_WEBHOOK_URL:
        sinks.append(send_discord)
    if config.EMAIL_ENABLED:
        sinks.append(emailer.send_notification)
    return fan_out(sinks)


__all__ = [
    "PREFERRED_TITLE",
    "GENERIC_TITLE",
    "Notification",
    "Sink",
    "has_preferred_model",
    "generate_notification_text",
    "compose_notification",
    "log_sink",
    "desktop_sink",
    "send_discord",
    "fan_out",
    "build_sink",
]
