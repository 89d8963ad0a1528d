"""HTTP helpers.

Sessions for the fulfillment endpoint and for webhook sinks, and the
retry policy for webhook posts. The fulfillment GET itself is never
retried; a failed cycle is simply polled again later.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from tenacity import (after_log, retry, retry_if_exception,
                      stop_after_attempt, wait_exponential)


logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; InventoryWatch/1.0)"

# Statuses worth another attempt: rate limiting and transient server errors.
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


def get_http_session(*, referer: Optional[str] = None) -> requests.Session:
    """Return a new session that asks for JSON. Caller closes it."""
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept": "application/json, text/javascript, */*; q=0.01",
        }
    )
    if referer:
        session.headers["Referer"] = referer
    return session


def get_fulfillment_session(base_url: str, locale: str = "") -> requests.Session:
    """Session for fulfillment queries, presenting the locale's store page as referer.

    `locale` is the path segment in front of "shop/" ("" or e.g. "CA/").
    """
    return get_http_session(referer=f"{base_url.rstrip('/')}/{locale}shop")


class WebhookError(Exception):
    """A webhook post was answered with an error status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Webhook returned status {status_code}: {body[:200]}")
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code in RETRYABLE_STATUSES


def _should_retry(exc: BaseException) -> bool:
    if isinstance(exc, WebhookError):
        return exc.retryable
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


@retry(
    reraise=True,
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception(_should_retry),
    after=after_log(logger, logging.WARNING),
)
def post_json(session: requests.Session, url: str, payload: Any, *, timeout: float = 20) -> requests.Response:
    """POST `payload` as JSON.

    Connection errors, timeouts and 429/5xx answers are retried up to 3
    attempts; other 4xx answers raise WebhookError straight away.
    """
    response = session.post(url, json=payload, timeout=timeout)
    if response.status_code >= 400:
        raise WebhookError(response.status_code, response.text or "")
    return response


__all__ = [
    "USER_AGENT",
    "RETRYABLE_STATUSES",
    "get_http_session",
    "get_fulfillment_session",
    "WebhookError",
    "post_json",
]
