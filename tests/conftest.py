# tests/conftest.py
import json
from typing import Any, Callable, List, Optional

import pytest
import requests

from inventory_watch.catalog import SkuData
from inventory_watch.config import Preferences


def make_payload(stores: List[dict]) -> bytes:
    return json.dumps({"body": {"content": {"pickupMessage": {"stores": stores}}}}).encode("utf-8")


def boulder_store(**overrides: Any) -> dict:
    store = {
        "storeName": "Twenty Ninth St",
        "storeNumber": "R452",
        "city": "Boulder",
        "state": "CO",
        "partsAvailability": {
            "0": {"partNumber": "MKGT3LL/A", "pickupDisplay": "available"},
            "1": {"partNumber": "MKGQ3LL/A", "pickupDisplay": "unavailable"},
        },
    }
    store.update(overrides)
    return store


def make_response(body: Optional[bytes], status: int = 200, url: str = "") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body
    resp.url = url
    return resp


class FakeSession:
    """Stands in for requests.Session; records GETs and replays a body or raises."""

    def __init__(self, body: Optional[bytes] = None, *, status: int = 200, error: Optional[Exception] = None):
        self.body = body
        self.status = status
        self.error = error
        self.calls: List[str] = []
        self.closed = False
        self.on_get: Optional[Callable[[str], None]] = None

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append(url)
        if self.on_get is not None:
            self.on_get(url)
        if self.error is not None:
            raise self.error
        return make_response(self.body, self.status, url)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def sku_data() -> SkuData:
    return SkuData(
        country="US",
        ordered_skus=("MKGT3LL/A", "MKGQ3LL/A", "MMQX3LL/A"),
        names={
            "MKGT3LL/A": "14\" MacBook Pro Silver 1TB",
            "MKGQ3LL/A": "14\" MacBook Pro Space Gray 1TB",
        },
    )


@pytest.fixture
def preferences() -> Preferences:
    return Preferences(preferred_country="US", preferred_store_number="R452")


@pytest.fixture
def boulder_payload() -> bytes:
    return make_payload([boulder_store()])


class RecordingSink:
    def __init__(self) -> None:
        self.messages: List[tuple] = []

    def __call__(self, title: str, body: str) -> None:
        self.messages.append((title, body))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
