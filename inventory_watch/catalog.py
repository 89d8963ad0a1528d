"""Bundled reference data.

`data/catalog.json` maps a country code to the ordered SKU list queried for
that country and the display name of each SKU. `data/stores.json` lists the
stores a user can pick as their preferred store. Both files are read once per
process and never mutated.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .config import DEFAULT_COUNTRY

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
CATALOG_FILE = DATA_DIR / "catalog.json"
STORES_FILE = DATA_DIR / "stores.json"


@dataclass(frozen=True)
class JsonStore:
    store_name: str
    store_number: str
    city: str


@dataclass(frozen=True)
class SkuData:
    country: str
    ordered_skus: Tuple[str, ...]
    names: Mapping[str, str] = field(default_factory=dict)

    def product_name(self, sku: str) -> Optional[str]:
        return self.names.get(sku)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Failed to read bundled data file %s", path)
        return None


@lru_cache(maxsize=None)
def _load_catalog() -> Dict[str, SkuData]:
    raw = _read_json(CATALOG_FILE)
    if not isinstance(raw, dict):
        return {}

    countries: Dict[str, SkuData] = {}
    for country, entry in raw.items():
        pairs = entry.get("skus") if isinstance(entry, dict) else None
        if not isinstance(pairs, list):
            logger.warning("Catalog entry for %s has no SKU list; skipping", country)
            continue
        skus: List[str] = []
        names: Dict[str, str] = {}
        for pair in pairs:
            if not (isinstance(pair, list) and len(pair) == 2):
                continue
            sku, name = str(pair[0]), str(pair[1])
            if sku in names:
                continue
            skus.append(sku)
            names[sku] = name
        countries[country.upper()] = SkuData(country=country.upper(), ordered_skus=tuple(skus), names=names)
    logger.debug("Loaded catalog for %d countries", len(countries))
    return countries


def available_countries() -> List[str]:
    return sorted(_load_catalog())


def sku_data_for_country(country: str) -> SkuData:
    """Return the catalog slice for `country`, falling back to the US catalog."""
    catalog = _load_catalog()
    data = catalog.get((country or "").upper())
    if data is not None:
        return data
    logger.info("No catalog for country %r; using %s", country, DEFAULT_COUNTRY)
    return catalog.get(DEFAULT_COUNTRY) or SkuData(country=DEFAULT_COUNTRY, ordered_skus=())


@lru_cache(maxsize=None)
def all_stores() -> Tuple[JsonStore, ...]:
    raw = _read_json(STORES_FILE)
    if not isinstance(raw, list):
        return ()

    stores: List[JsonStore] = []
    for obj in raw:
        if not isinstance(obj, dict):
            continue
        try:
            stores.append(
                JsonStore(
                    store_name=str(obj["storeName"]),
                    store_number=str(obj["storeNumber"]),
                    city=str(obj["city"]),
                )
            )
        except KeyError:
            continue
    return tuple(stores)


def find_store(store_number: str) -> Optional[JsonStore]:
    for store in all_stores():
        if store.store_number == store_number:
            return store
    return None


__all__ = [
    "JsonStore",
    "SkuData",
    "available_countries",
    "sku_data_for_country",
    "all_stores",
    "find_store",
]
