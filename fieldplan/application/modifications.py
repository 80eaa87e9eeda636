"""Merge user edits and derive the effective inputs of each stage.

Stored stage outputs are never rewritten here; every function returns new
objects built from the output plus the accumulated changes.
"""

from __future__ import annotations

from fieldplan.domain.exceptions import InvalidModification
from fieldplan.domain.models import (
    DailyPlan,
    DispatchChanges,
    DispatchOutput,
    ExecutionSummary,
    HardwareStoreJob,
    InventoryChanges,
    InventoryOutput,
    ModificationEntry,
    ModificationPatch,
    RouteChanges,
    RouteOutput,
    ScheduledJob,
    ShoppingItem,
    UserModifications,
)


def _extend_unique(current: list[str], extra: list[str]) -> list[str]:
    out = list(current)
    for value in extra:
        if value not in out:
            out.append(value)
    return out


def validate_patch(plan: DailyPlan, patch: ModificationPatch) -> None:
    known = set(plan.job_ids)
    referenced: list[str] = []
    if patch.dispatch_changes is not None:
        dc = patch.dispatch_changes
        referenced += list(dc.order or []) + list(dc.rank_overrides) + list(dc.removed_job_ids)
        bad_ranks = [job_id for job_id, rank in dc.rank_overrides.items() if rank < 1]
        if bad_ranks:
            raise InvalidModification(f"rank overrides must be >= 1: {', '.join(bad_ranks)}")
        if dc.order is not None and len(set(dc.order)) != len(dc.order):
            raise InvalidModification("order lists a job more than once")
    if patch.route_changes is not None:
        rc = patch.route_changes
        referenced += list(rc.removed_job_ids) + list(rc.sequence_overrides)
        bad_positions = [job_id for job_id, position in rc.sequence_overrides.items() if position < 1]
        if bad_positions:
            raise InvalidModification(f"sequence overrides must be >= 1: {', '.join(bad_positions)}")
    unknown = sorted({job_id for job_id in referenced if job_id not in known})
    if unknown:
        raise InvalidModification(f"job(s) not in this plan: {', '.join(unknown)}")
    if patch.inventory_changes is not None:
        negative = [k for k, v in patch.inventory_changes.quantity_overrides.items() if v < 0]
        if negative:
            raise InvalidModification(f"quantity overrides must be >= 0: {', '.join(negative)}")


def merge_modifications(current: UserModifications, patch: ModificationPatch) -> UserModifications:
    """Fold ``patch`` into ``current``: lists extend, maps update, ``order`` replaces."""
    merged = current.model_copy(deep=True)

    if patch.dispatch_changes is not None:
        dc = patch.dispatch_changes
        target = merged.dispatch_changes
        if dc.order is not None:
            target.order = list(dc.order)
        target.rank_overrides.update(dc.rank_overrides)
        target.removed_job_ids = _extend_unique(target.removed_job_ids, dc.removed_job_ids)

    if patch.route_changes is not None:
        rc = patch.route_changes
        merged.route_changes.removed_job_ids = _extend_unique(merged.route_changes.removed_job_ids, rc.removed_job_ids)
        merged.route_changes.sequence_overrides.update(rc.sequence_overrides)

    if patch.inventory_changes is not None:
        ic = patch.inventory_changes
        target_inv = merged.inventory_changes
        target_inv.quantity_overrides.update(ic.quantity_overrides)
        target_inv.removed_items = _extend_unique(target_inv.removed_items, ic.removed_items)
        if ic.include_hardware_store_job is not None:
            target_inv.include_hardware_store_job = ic.include_hardware_store_job

    merged.history.append(ModificationEntry(patch=patch.model_dump(mode="json", exclude_none=True)))
    return merged


def _apply_positions(items: list, key, positions: dict[str, int]) -> list:
    """Move each keyed item to its 1-based position, lowest position first."""
    items = list(items)
    for item_id, position in sorted(positions.items(), key=lambda kv: kv[1]):
        idx = next((i for i, item in enumerate(items) if key(item) == item_id), None)
        if idx is None:
            continue
        moved = items.pop(idx)
        items.insert(min(position, len(items) + 1) - 1, moved)
    return items


def effective_dispatch(output: DispatchOutput, changes: DispatchChanges) -> list[ScheduledJob]:
    """Dispatch order after removals, explicit order and rank overrides; ranks renumbered 1..N."""
    removed = set(changes.removed_job_ids)
    jobs = [item for item in sorted(output.prioritized_jobs, key=lambda j: j.priority_rank) if item.job_id not in removed]

    if changes.order:
        by_id = {item.job_id: item for item in jobs}
        head = [by_id[job_id] for job_id in changes.order if job_id in by_id]
        head_ids = {item.job_id for item in head}
        jobs = head + [item for item in jobs if item.job_id not in head_ids]

    jobs = _apply_positions(jobs, lambda item: item.job_id, changes.rank_overrides)
    return [item.model_copy(update={"priority_rank": rank}) for rank, item in enumerate(jobs, start=1)]


def effective_route_order(output: RouteOutput, changes: RouteChanges) -> list[str]:
    """Solver order minus removed stops, then sequence overrides."""
    removed = set(changes.removed_job_ids)
    order = [job_id for job_id in output.job_ids() if job_id not in removed]
    return _apply_positions(order, lambda job_id: job_id, changes.sequence_overrides)


def _item_key(name: str) -> str:
    return name.strip().lower()


def effective_shopping_list(output: InventoryOutput, changes: InventoryChanges) -> list[ShoppingItem]:
    removed = {_item_key(name) for name in changes.removed_items}
    overrides = {_item_key(name): qty for name, qty in changes.quantity_overrides.items()}
    items: list[ShoppingItem] = []
    for item in output.shopping_list:
        key = _item_key(item.item_name)
        if key in removed:
            continue
        quantity = overrides.get(key, item.quantity)
        if quantity <= 0:
            continue
        cost = round(item.unit_price * quantity, 2) if item.unit_price is not None else None
        items.append(item.model_copy(update={"quantity": quantity, "estimated_cost": cost}))
    return items


def effective_hardware_store_job(
    output: InventoryOutput,
    changes: InventoryChanges,
    shopping_list: list[ShoppingItem],
) -> HardwareStoreJob | None:
    store_job = output.hardware_store_job
    if store_job is None or changes.include_hardware_store_job is False:
        return None
    remaining = {_item_key(item.item_name): item for item in shopping_list if item.supplier}
    items = [name for name in store_job.items if _item_key(name) in remaining]
    if not items:
        return None
    total = round(sum(remaining[_item_key(name)].estimated_cost or 0.0 for name in items), 2)
    return store_job.model_copy(update={"items": items, "total_estimated_cost": total})


def build_execution_summary(plan: DailyPlan) -> ExecutionSummary:
    """Final merge written once when the plan is approved."""
    mods = plan.user_modifications
    shopping = effective_shopping_list(plan.inventory_output, mods.inventory_changes)
    return ExecutionSummary(
        job_order=effective_route_order(plan.route_output, mods.route_changes),
        shopping_list=shopping,
        hardware_store_job=effective_hardware_store_job(plan.inventory_output, mods.inventory_changes, shopping),
    )


__all__ = [
    "build_execution_summary",
    "effective_dispatch",
    "effective_hardware_store_job",
    "effective_route_order",
    "effective_shopping_list",
    "merge_modifications",
    "validate_patch",
]
