"""Supplier lookup over an HTTP JSON endpoint."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from fieldplan.infrastructure.http_client import AsyncJsonClient
from fieldplan.shared.exceptions import ToolError
from fieldplan.tools.interfaces import SupplierQuery, SupplierResult

_logger = logging.getLogger("fieldplan.supplier")


class HttpSupplierLookup:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ToolError("supplier", "SUPPLIER_API_URL is not configured")
        self._client = AsyncJsonClient(base_url, timeout=timeout, tool_name="supplier", transport=transport)

    async def lookup(self, query: SupplierQuery) -> SupplierResult:
        data = await self._client.post("lookup", query.model_dump(mode="json"))
        try:
            return SupplierResult.model_validate(data)
        except ValidationError as exc:
            _logger.warning("supplier response rejected: %s", exc.error_count())
            raise ToolError("supplier", "malformed supplier response") from None


__all__ = ["HttpSupplierLookup"]
