"""Fulfillment endpoint client.

Builds the `shop/fulfillment-messages` query for a country's SKU catalog,
fetches it, and turns the loosely structured JSON reply into `Store` and
`PartAvailability` records. The parser is strict about the envelope
(`body.content.pickupMessage.stores`) and lenient about individual records:
a store or part entry that is missing a field is dropped, the rest survive.
"""

from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode, urlparse

import requests

from .catalog import SkuData
from .config import BASE_URL, DEFAULT_COUNTRY, FETCH_TIMEOUT, Preferences
from .utils import get_http_session

logger = logging.getLogger(__name__)

FULFILLMENT_PATH = "shop/fulfillment-messages"

_LOCALE_RE = re.compile(r"[A-Za-z0-9_-]+(/[A-Za-z0-9_-]+)*")


# ---------------------------
# Errors
# ---------------------------

class InventoryError(Exception):
    """Base class for failures that end a poll cycle."""


class QueryConstructionError(InventoryError):
    """The fulfillment URL could not be assembled."""


class FetchError(InventoryError):
    """The HTTP request failed (connection, timeout or bad status)."""


class EmptyResponseError(InventoryError):
    """No response body was received."""


class MalformedJSONError(InventoryError):
    """The response body is not a JSON object."""


class UnexpectedShapeError(InventoryError):
    """The JSON object lacks body.content.pickupMessage.stores."""


# ---------------------------
# Domain records
# ---------------------------

class PickupAvailability(str, enum.Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    INELIGIBLE = "ineligible"


@dataclass(frozen=True)
class PartAvailability:
    part_number: str
    availability: PickupAvailability

    @property
    def id(self) -> str:
        return self.part_number


@dataclass(frozen=True)
class Store:
    store_name: str
    store_number: str
    city: str
    state: str
    parts_availability: Tuple[PartAvailability, ...] = ()

    @property
    def location_description(self) -> str:
        return ", ".join([self.city, self.state])


AvailabilityResult = List[Tuple[Store, Tuple[PartAvailability, ...]]]


# ---------------------------
# Query building
# ---------------------------

def country_path_element(country: str) -> str:
    """Locale path segment: empty for the default country, else "<country>/"."""
    country = (country or "").upper()
    if country == DEFAULT_COUNTRY:
        return ""
    return country + "/"


def generate_query_string(skus: Sequence[str], store_number: str) -> str:
    params: List[Tuple[str, str]] = [(f"parts.{i}", sku) for i, sku in enumerate(skus)]
    params.append(("searchNearby", "true"))
    params.append(("store", store_number))
    # quote_plus with safe="" escapes "/" in part numbers as %2F
    return urlencode(params)


def _build_fulfillment_endpoint(base_url: str, country: str) -> str:
    return f"{base_url.rstrip('/')}/{country_path_element(country)}{FULFILLMENT_PATH}"


def build_fulfillment_url(
    sku_data: SkuData,
    preferences: Preferences,
    base_url: str = BASE_URL,
) -> str:
    """Return the full fulfillment URL or raise QueryConstructionError."""
    parsed = urlparse(base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise QueryConstructionError(f"Base URL is not an absolute http(s) URL: {base_url!r}")

    country = preferences.preferred_country
    if country_path_element(country) and not _LOCALE_RE.fullmatch(country or ""):
        raise QueryConstructionError(f"Country code cannot be used as a path segment: {country!r}")

    url = _build_fulfillment_endpoint(base_url, country) + "?" + generate_query_string(
        sku_data.ordered_skus, preferences.preferred_store_number
    )
    if any(ch.isspace() for ch in url):
        raise QueryConstructionError(f"URL contains whitespace: {url!r}")

    try:
        requests.Request("GET", url).prepare()
    except (requests.RequestException, ValueError) as e:
        raise QueryConstructionError(str(e)) from e
    return url


# ---------------------------
# Fetching
# ---------------------------

def fetch_fulfillment(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = FETCH_TIMEOUT,
) -> bytes:
    """GET the fulfillment URL once and return the raw body.

    No retry: a failed request ends the poll cycle and the next cycle
    tries again.
    """
    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        logger.debug("Fetching %s", url)
        resp = session.get(url, timeout=timeout)
        resp.raise_for_status()
        return resp.content
    except requests.RequestException as e:
        raise FetchError(str(e)) from e
    finally:
        if close_session:
            session.close()


# ---------------------------
# Response parsing
# ---------------------------

def _dig(obj: Mapping[str, Any], *keys: str) -> Any:
    current: Any = obj
    for key in keys:
        if not isinstance(current, Mapping) or key not in current:
            raise UnexpectedShapeError("Response is missing " + ".".join(keys))
        current = current[key]
    return current


def _parse_part(raw: Any) -> Optional[PartAvailability]:
    if not isinstance(raw, Mapping):
        return None
    part_number = raw.get("partNumber")
    display = raw.get("pickupDisplay")
    if not isinstance(part_number, str) or not isinstance(display, str):
        return None
    try:
        availability = PickupAvailability(display)
    except ValueError:
        return None
    return PartAvailability(part_number=part_number, availability=availability)


def _parse_store(raw: Any) -> Optional[Store]:
    if not isinstance(raw, Mapping):
        return None
    name = raw.get("storeName")
    number = raw.get("storeNumber")
    state = raw.get("state")
    city = raw.get("city")
    if not all(isinstance(v, str) for v in (name, number, state, city)):
        return None

    parts_raw = raw.get("partsAvailability")
    if not isinstance(parts_raw, Mapping):
        return None

    parts = tuple(p for p in (_parse_part(v) for v in parts_raw.values()) if p is not None)
    return Store(store_name=name, store_number=number, city=city, state=state, parts_availability=parts)


def parse_store_response(data: Union[bytes, str, None]) -> List[Store]:
    """Decode a fulfillment response into stores.

    Raises EmptyResponseError, MalformedJSONError or UnexpectedShapeError
    when the envelope is unusable. Store and part entries with missing
    or invalid fields are skipped.
    """
    if data is None:
        raise EmptyResponseError("No response data")

    try:
        payload = json.loads(data)
    except (TypeError, ValueError) as e:
        raise MalformedJSONError(f"Response is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedJSONError(f"Expected a JSON object, got {type(payload).__name__}")

    store_list = _dig(payload, "body", "content", "pickupMessage", "stores")
    if not isinstance(store_list, list):
        raise UnexpectedShapeError(f"'stores' is {type(store_list).__name__}, expected a list")

    stores: List[Store] = []
    for obj in store_list:
        store = _parse_store(obj)
        if store is None:
            logger.debug("Skipping malformed store entry: %.200r", obj)
            continue
        stores.append(store)
    return stores


# ---------------------------
# Availability filtering
# ---------------------------

def filter_available(stores: Iterable[Store]) -> AvailabilityResult:
    """Keep only parts available for pickup; drop stores left with none."""
    result: AvailabilityResult = []
    for store in stores:
        parts = tuple(p for p in store.parts_availability if p.availability is PickupAvailability.AVAILABLE)
        if parts:
            result.append((store, parts))
    return result


# ---------------------------
# Sample data (previews and tests)
# ---------------------------

SAMPLE_PARTS: Tuple[PartAvailability, ...] = (
    PartAvailability(part_number="MKGT3LL/A", availability=PickupAvailability.AVAILABLE),
    PartAvailability(part_number="MKGQ3LL/A", availability=PickupAvailability.AVAILABLE),
    PartAvailability(part_number="MMQX3LL/A", availability=PickupAvailability.AVAILABLE),
)

SAMPLE_STORES: Tuple[Store, ...] = (
    Store("Twenty Ninth St", "R452", "Boulder", "CO", SAMPLE_PARTS),
    Store("Flatirons Crossing", "R462", "Louisville", "CO", SAMPLE_PARTS),
    Store("Cherry Creek", "R552", "Denver", "CO", SAMPLE_PARTS),
)


__all__ = [
    "InventoryError",
    "QueryConstructionError",
    "FetchError",
    "EmptyResponseError",
    "MalformedJSONError",
    "UnexpectedShapeError",
    "PickupAvailability",
    "PartAvailability",
    "Store",
    "AvailabilityResult",
    "country_path_element",
    "generate_query_string",
    "build_fulfillment_url",
    "fetch_fulfillment",
    "parse_store_response",
    "filter_available",
    "SAMPLE_PARTS",
    "SAMPLE_STORES",
]
