"""Deterministic supplier catalog for tests and offline runs."""

from __future__ import annotations

import re

from fieldplan.adapters.route.mock import haversine
from fieldplan.domain.models import Coordinates
from fieldplan.tools.interfaces import (
    ItemAvailability,
    StoreLocation,
    SupplierQuery,
    SupplierResult,
)

KM_TO_MILES = 0.621371

SUPPLIER_STORES: dict[str, list[dict]] = {
    "home_depot": [
        {
            "store_id": "HD_SF_001",
            "store_name": "The Home Depot #4512",
            "address": "1965 Ocean Ave, San Francisco, CA 94127",
            "coordinates": (37.7249, -122.4564),
        },
        {
            "store_id": "HD_SF_002",
            "store_name": "The Home Depot #4518",
            "address": "2525 Bayshore Blvd, San Francisco, CA 94134",
            "coordinates": (37.7403, -122.3892),
        },
    ],
    "lowes": [
        {
            "store_id": "LWS_SF_001",
            "store_name": "Lowe's Home Improvement #2584",
            "address": "1200 Harrison St, San Francisco, CA 94103",
            "coordinates": (37.7749, -122.4114),
        },
    ],
    "grainger": [
        {
            "store_id": "GR_SF_001",
            "store_name": "Grainger Branch #9A549",
            "address": "1230 Howard St, San Francisco, CA 94103",
            "coordinates": (37.7749, -122.4194),
        },
    ],
    "ferguson": [
        {
            "store_id": "FRG_SF_001",
            "store_name": "Ferguson Enterprises #1420",
            "address": "1001 16th St, San Francisco, CA 94107",
            "coordinates": (37.7658, -122.4002),
        },
    ],
}

# key -> (unit price, units on the shelf)
CATALOG: dict[str, tuple[float, int]] = {
    "pipe_fitting": (3.50, 30),
    "pipe_sealant": (8.99, 12),
    "pipe_wrench": (45.99, 7),
    "electrical_outlet": (2.89, 50),
    "wire_nuts": (12.99, 20),
    "pvc_pipe": (4.25, 40),
    "ball_valve": (15.99, 16),
    "air_filter": (18.99, 26),
}

_KEYWORDS = {
    "fitting": "pipe_fitting",
    "sealant": "pipe_sealant",
    "wrench": "pipe_wrench",
    "outlet": "electrical_outlet",
    "wire": "wire_nuts",
    "valve": "ball_valve",
    "filter": "air_filter",
    "pipe": "pvc_pipe",
}


def catalog_key(item_name: str) -> str | None:
    """Map a free-text item name onto a catalog key, or None if not carried."""
    normalized = re.sub(r"[^a-z0-9]", "", item_name.lower())
    for key in CATALOG:
        if key.replace("_", "") in normalized:
            return key
    for keyword, key in _KEYWORDS.items():
        if keyword in normalized:
            return key
    return None


class MockSupplierLookup:
    async def lookup(self, query: SupplierQuery) -> SupplierResult:
        stores_raw = SUPPLIER_STORES.get(query.supplier)
        if stores_raw is None:
            return SupplierResult(
                supplier=query.supplier,
                success=False,
                message=f"Supplier '{query.supplier}' not supported",
            )

        stores = []
        for raw in stores_raw:
            lat, lon = raw["coordinates"]
            miles = haversine(query.location.latitude, query.location.longitude, lat, lon) * KM_TO_MILES
            if miles > query.radius_miles:
                continue
            stores.append(
                StoreLocation(
                    store_id=raw["store_id"],
                    store_name=raw["store_name"],
                    address=raw["address"],
                    coordinates=Coordinates(latitude=lat, longitude=lon),
                    distance_miles=round(miles, 2),
                )
            )
        stores.sort(key=lambda s: s.distance_miles)

        items = []
        for wanted in query.items:
            key = catalog_key(wanted.name)
            if key is None:
                items.append(ItemAvailability(item_name=wanted.name, price=0.0, stock_quantity=0, in_stock=False))
                continue
            price, shelf = CATALOG[key]
            items.append(
                ItemAvailability(
                    item_name=wanted.name,
                    price=price,
                    stock_quantity=shelf,
                    in_stock=shelf >= wanted.quantity,
                )
            )

        in_stock = sum(1 for item in items if item.in_stock)
        return SupplierResult(
            supplier=query.supplier,
            success=True,
            stores=stores[:3],
            items=items,
            message=f"Found {in_stock}/{len(items)} items in stock",
        )


__all__ = ["CATALOG", "MockSupplierLookup", "SUPPLIER_STORES", "catalog_key"]
