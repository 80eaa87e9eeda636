"""Inventory stage: parts manifest, shopping list and supplier pricing.

Supplier trouble degrades the output with alerts; it never fails the stage.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from fieldplan.domain.constants import HARDWARE_STORE_JOB_TYPE
from fieldplan.domain.enums import AlertType, JobClassification
from fieldplan.domain.models import (
    HardwareStoreJob,
    InventoryAlert,
    InventoryOutput,
    Job,
    ShoppingItem,
    StockItem,
    UserPreferences,
)
from fieldplan.domain.planning.inventory import (
    build_manifest,
    compute_shopping_list,
    stock_alerts,
    store_visit_minutes,
)
from fieldplan.infrastructure.logging import StructuredLogger, get_logger
from fieldplan.tools.interfaces import SupplierLookup, SupplierQuery, SupplierQueryItem, SupplierResult


def _unavailable(shopping: list[ShoppingItem], reason: str) -> list[InventoryAlert]:
    return [
        InventoryAlert(
            item_name=item.item_name,
            alert_type=AlertType.SUPPLIER_UNAVAILABLE,
            message=f"Could not check supplier for {item.item_name}: {reason}",
        )
        for item in shopping
    ]


def apply_supplier_result(
    shopping: list[ShoppingItem],
    result: SupplierResult,
) -> tuple[list[ShoppingItem], Optional[HardwareStoreJob], list[InventoryAlert]]:
    """Price items the nearest store stocks; flag the rest as not stocked."""
    store = result.stores[0]
    availability = {item.item_name.strip().lower(): item for item in result.items}
    priced: list[ShoppingItem] = []
    alerts: list[InventoryAlert] = []
    for item in shopping:
        found = availability.get(item.item_name.strip().lower())
        if found is None or not found.in_stock:
            alerts.append(
                InventoryAlert(
                    item_name=item.item_name,
                    alert_type=AlertType.NOT_STOCKED,
                    message=f"{item.item_name} is not stocked at {store.store_name}",
                )
            )
            priced.append(item)
            continue
        priced.append(
            item.model_copy(
                update={
                    "supplier": store.store_name,
                    "unit_price": found.price,
                    "estimated_cost": round(found.price * item.quantity, 2),
                }
            )
        )

    supplied = [item for item in priced if item.supplier]
    if not supplied:
        return priced, None, alerts
    store_job = HardwareStoreJob(
        job_id=f"{HARDWARE_STORE_JOB_TYPE}-{store.store_id}",
        title=f"Supply run: {store.store_name}",
        store_name=store.store_name,
        address=store.address,
        coordinates=store.coordinates,
        duration_minutes=store_visit_minutes(len(supplied)),
        items=[item.item_name for item in supplied],
        total_estimated_cost=round(sum(item.estimated_cost or 0.0 for item in supplied), 2),
    )
    return priced, store_job, alerts


def _inventory_reasoning(output: InventoryOutput) -> str:
    if not output.shopping_list:
        text = "All required parts are on hand."
    else:
        text = f"{len(output.shopping_list)} item(s) to buy."
        if output.hardware_store_job:
            store_job = output.hardware_store_job
            text += (
                f" Supply run to {store_job.store_name} (~{store_job.duration_minutes} min, "
                f"${store_job.total_estimated_cost:.2f})."
            )
    if output.alerts:
        text += f" {len(output.alerts)} alert(s) need attention."
    return text


class InventoryStage:
    def __init__(
        self,
        supplier: SupplierLookup,
        *,
        timeout_seconds: float = 15.0,
        logger: Optional[StructuredLogger] = None,
    ):
        self._supplier = supplier
        self._timeout = timeout_seconds
        self._logger = logger or get_logger()

    async def _lookup(self, shopping: list[ShoppingItem], preferences: UserPreferences) -> tuple[Optional[SupplierResult], str]:
        query = SupplierQuery(
            supplier=preferences.primary_supplier,
            items=[SupplierQueryItem(name=i.item_name, category=i.category, quantity=i.quantity) for i in shopping],
            location=preferences.home_base,
            radius_miles=preferences.supplier_search_radius_miles,
        )
        self._logger.tool_call("supplier", supplier=query.supplier, items=len(query.items))
        try:
            result = await asyncio.wait_for(self._supplier.lookup(query), self._timeout)
        except asyncio.TimeoutError:
            return None, f"timed out after {self._timeout}s"
        except Exception as exc:
            # Supplier failure is non-fatal; the caller records alerts.
            return None, f"{type(exc).__name__}: {exc}"
        if not result.success:
            return None, result.message or "supplier reported failure"
        if not result.stores:
            return None, "no stores within search radius"
        return result, ""

    async def run(
        self,
        jobs: list[Job],
        classifications: dict[str, JobClassification],
        stock: list[StockItem],
        preferences: UserPreferences,
    ) -> InventoryOutput:
        manifest = build_manifest(jobs, stock)
        shopping = compute_shopping_list(manifest, classifications)
        alerts = stock_alerts(stock, preferences.low_stock_threshold)
        store_job: Optional[HardwareStoreJob] = None

        if shopping:
            result, reason = await self._lookup(shopping, preferences)
            if result is None:
                self._logger.warning("inventory", f"supplier unavailable: {reason}")
                alerts = _unavailable(shopping, reason) + alerts
            else:
                shopping, store_job, supplier_alerts = apply_supplier_result(shopping, result)
                alerts = supplier_alerts + alerts

        output = InventoryOutput(
            parts_manifest=manifest,
            shopping_list=shopping,
            hardware_store_job=store_job,
            alerts=alerts,
        )
        output.reasoning = _inventory_reasoning(output)
        return output


__all__ = ["InventoryStage", "apply_supplier_result"]
