from __future__ import annotations

import asyncio

import httpx
import pytest

from fieldplan.adapters.supplier.http import HttpSupplierLookup
from fieldplan.adapters.supplier.mock import MockSupplierLookup, catalog_key
from fieldplan.domain.models import Coordinates
from fieldplan.shared.exceptions import ToolError
from fieldplan.tools.interfaces import SupplierQuery, SupplierQueryItem

_SF = Coordinates(latitude=37.7749, longitude=-122.4194)


def _query(supplier: str = "home_depot", radius: float = 15.0) -> SupplierQuery:
    return SupplierQuery(
        supplier=supplier,
        items=[SupplierQueryItem(name="3/4 in Ball Valve", quantity=2), SupplierQueryItem(name="Unobtainium")],
        location=_SF,
        radius_miles=radius,
    )


@pytest.mark.parametrize(
    "name, key",
    [("PVC pipe 10ft", "pvc_pipe"), ("GFCI electrical outlet", "electrical_outlet"), ("Teflon sealant", "pipe_sealant"),
     ("Widget", None)],
)
def test_catalog_key(name, key):
    assert catalog_key(name) == key


def test_mock_supplier_sorts_stores_and_prices_items():
    result = asyncio.run(MockSupplierLookup().lookup(_query()))
    assert result.success
    assert [s.store_id for s in result.stores] == ["HD_SF_002", "HD_SF_001"]
    valve, unknown = result.items
    assert valve.in_stock and valve.price == 15.99
    assert not unknown.in_stock


def test_mock_supplier_radius_filters_stores():
    result = asyncio.run(MockSupplierLookup().lookup(_query(radius=0.5)))
    assert result.success
    assert result.stores == []


def test_mock_supplier_unknown_supplier_fails_softly():
    result = asyncio.run(MockSupplierLookup().lookup(_query(supplier="acme")))
    assert not result.success
    assert "acme" in result.message


def test_http_supplier_validates_response():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/lookup"
        return httpx.Response(
            200,
            json={
                "supplier": "lowes",
                "success": True,
                "stores": [
                    {
                        "store_id": "L1",
                        "store_name": "Lowe's",
                        "coordinates": {"latitude": 37.77, "longitude": -122.41},
                    }
                ],
                "items": [{"item_name": "3/4 in Ball Valve", "price": 14.5, "in_stock": True}],
            },
        )

    lookup = HttpSupplierLookup("http://supplier.test", transport=httpx.MockTransport(handler))
    result = asyncio.run(lookup.lookup(_query("lowes")))
    assert result.stores[0].store_name == "Lowe's"
    assert result.items[0].price == 14.5


def test_http_supplier_malformed_response_is_tool_error():
    lookup = HttpSupplierLookup(
        "http://supplier.test",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"stores": "nope"})),
    )
    with pytest.raises(ToolError):
        asyncio.run(lookup.lookup(_query()))


def test_http_supplier_requires_url():
    with pytest.raises(ToolError):
        HttpSupplierLookup("")
