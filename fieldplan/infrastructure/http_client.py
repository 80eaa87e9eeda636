"""Async HTTP client: the single exit point for outbound capability calls.

Transport errors are wrapped in ToolError with secrets redacted. A request
that runs out of time raises asyncio.TimeoutError instead. There is no retry
here: stage retries are driven by the workflow.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from fieldplan.infrastructure.redact import redact_sensitive
from fieldplan.shared.exceptions import ToolError


class AsyncJsonClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        tool_name: str = "http",
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._tool_name = tool_name
        self._headers = dict(headers or {})
        self._transport = transport

    async def post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}" if path else self._base_url
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            raise ToolError(
                self._tool_name,
                f"HTTP {e.response.status_code}: {redact_sensitive(str(e))}",
            ) from None
        except httpx.TimeoutException:
            raise asyncio.TimeoutError(f"[{self._tool_name}] request timed out after {self._timeout}s") from None
        except httpx.HTTPError as e:
            raise ToolError(self._tool_name, f"request failed: {redact_sensitive(str(e))}") from None
        except ValueError as e:
            raise ToolError(self._tool_name, f"invalid JSON response: {e}") from None


__all__ = ["AsyncJsonClient"]
