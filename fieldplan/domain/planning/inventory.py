"""Parts reconciliation: manifest, shortfall shopping list, stock alerts."""

from __future__ import annotations

from dataclasses import dataclass, field

from fieldplan.domain.constants import (
    MAX_STORE_VISIT_MINUTES,
    MIN_STORE_VISIT_MINUTES,
    SHOPPING_MINUTES_PER_ITEM,
)
from fieldplan.domain.enums import AlertType, JobClassification, ShoppingPriority
from fieldplan.domain.models import (
    InventoryAlert,
    Job,
    JobPartsManifest,
    ManifestLine,
    RequiredPart,
    ShoppingItem,
    StockItem,
)

_PRIORITY_BY_CLASSIFICATION = {
    JobClassification.EMERGENCY: ShoppingPriority.HIGH,
    JobClassification.DEMAND: ShoppingPriority.MEDIUM,
    JobClassification.MAINTENANCE: ShoppingPriority.LOW,
}
_PRIORITY_ORDER = [ShoppingPriority.HIGH, ShoppingPriority.MEDIUM, ShoppingPriority.LOW]


class StockIndex:
    """Look up on-hand stock by item id first, then by case-insensitive name."""

    def __init__(self, stock: list[StockItem]) -> None:
        self._by_id = {item.id: item for item in stock}
        self._by_name = {item.name.strip().lower(): item for item in stock}

    def find(self, part: RequiredPart) -> StockItem | None:
        if part.inventory_item_id and part.inventory_item_id in self._by_id:
            return self._by_id[part.inventory_item_id]
        return self._by_name.get(part.item_name.strip().lower())


def item_key(line: ManifestLine) -> str:
    return line.inventory_item_id or line.item_name.strip().lower()


def build_manifest(jobs: list[Job], stock: list[StockItem]) -> list[JobPartsManifest]:
    index = StockIndex(stock)
    manifest: list[JobPartsManifest] = []
    for job in jobs:
        lines = []
        for part in job.required_parts:
            found = index.find(part)
            lines.append(
                ManifestLine(
                    item_name=part.item_name,
                    inventory_item_id=found.id if found else part.inventory_item_id,
                    quantity_needed=part.quantity,
                    quantity_available=found.quantity if found else 0,
                    unit=part.unit,
                    category=part.category,
                )
            )
        manifest.append(JobPartsManifest(job_id=job.id, lines=lines))
    return manifest


@dataclass
class _Shortfall:
    line: ManifestLine
    needed: int = 0
    job_ids: list[str] = field(default_factory=list)


def compute_shopping_list(
    manifest: list[JobPartsManifest],
    classifications: dict[str, JobClassification],
) -> list[ShoppingItem]:
    """One entry per distinct item whose total need exceeds on-hand stock."""
    totals: dict[str, _Shortfall] = {}
    for entry in manifest:
        for line in entry.lines:
            bucket = totals.setdefault(item_key(line), _Shortfall(line=line))
            bucket.needed += line.quantity_needed
            bucket.job_ids.append(entry.job_id)

    shopping: list[ShoppingItem] = []
    for bucket in totals.values():
        shortfall = max(bucket.needed - bucket.line.quantity_available, 0)
        if shortfall <= 0:
            continue
        shopping.append(
            ShoppingItem(
                item_name=bucket.line.item_name,
                quantity=shortfall,
                unit=bucket.line.unit,
                category=bucket.line.category,
                priority=_shopping_priority(bucket.job_ids, classifications),
            )
        )
    return shopping


def _shopping_priority(job_ids: list[str], classifications: dict[str, JobClassification]) -> ShoppingPriority:
    found = {
        _PRIORITY_BY_CLASSIFICATION[classifications[job_id]]
        for job_id in job_ids
        if job_id in classifications
    }
    for level in _PRIORITY_ORDER:
        if level in found:
            return level
    return ShoppingPriority.LOW


def stock_alerts(stock: list[StockItem], low_stock_threshold: int) -> list[InventoryAlert]:
    alerts: list[InventoryAlert] = []
    for item in stock:
        if item.quantity == 0:
            alerts.append(
                InventoryAlert(
                    item_name=item.name,
                    alert_type=AlertType.OUT_OF_STOCK,
                    message=f"{item.name} is out of stock",
                )
            )
        elif item.quantity <= low_stock_threshold:
            alerts.append(
                InventoryAlert(
                    item_name=item.name,
                    alert_type=AlertType.LOW_STOCK,
                    message=f"{item.name} is running low ({item.quantity} remaining)",
                )
            )
    return alerts


def store_visit_minutes(item_count: int) -> int:
    return max(MIN_STORE_VISIT_MINUTES, min(MAX_STORE_VISIT_MINUTES, item_count * SHOPPING_MINUTES_PER_ITEM))


__all__ = [
    "StockIndex",
    "build_manifest",
    "compute_shopping_list",
    "stock_alerts",
    "store_visit_minutes",
]
