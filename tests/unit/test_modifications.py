from __future__ import annotations

import datetime as dt

from fieldplan.adapters.sources.sample import sample_jobs, sample_preferences
from fieldplan.application.modifications import (
    effective_dispatch,
    effective_hardware_store_job,
    effective_route_order,
    effective_shopping_list,
    merge_modifications,
)
from fieldplan.domain.enums import ShoppingPriority
from fieldplan.domain.models import (
    Coordinates,
    DispatchChanges,
    HardwareStoreJob,
    InventoryChanges,
    InventoryOutput,
    ModificationPatch,
    RouteChanges,
    RouteOutput,
    ShoppingItem,
    UserModifications,
    Waypoint,
)
from fieldplan.domain.planning.dispatch import build_dispatch


def _dispatch():
    return build_dispatch(sample_jobs(), sample_preferences(), dt.date(2026, 3, 2))


def test_effective_dispatch_removes_and_renumbers():
    output = _dispatch()
    scheduled = effective_dispatch(output, DispatchChanges(removed_job_ids=["job-outlets"]))
    assert [(s.job_id, s.priority_rank) for s in scheduled] == [("job-leak", 1), ("job-boiler", 2)]
    # The stored output is untouched.
    assert output.job_ids() == ["job-leak", "job-outlets", "job-boiler"]
    assert output.prioritized_jobs[2].priority_rank == 3


def test_effective_dispatch_explicit_order_then_rest():
    scheduled = effective_dispatch(_dispatch(), DispatchChanges(order=["job-boiler"]))
    assert [s.job_id for s in scheduled] == ["job-boiler", "job-leak", "job-outlets"]
    assert [s.priority_rank for s in scheduled] == [1, 2, 3]


def test_effective_dispatch_rank_override():
    scheduled = effective_dispatch(_dispatch(), DispatchChanges(rank_overrides={"job-leak": 3}))
    assert [s.job_id for s in scheduled] == ["job-outlets", "job-boiler", "job-leak"]


def _route(*job_ids: str) -> RouteOutput:
    here = Coordinates(latitude=37.77, longitude=-122.42)
    at = dt.datetime(2026, 3, 2, 9)
    return RouteOutput(
        waypoints=[
            Waypoint(job_id=job_id, sequence=seq, coordinates=here, arrival=at, departure=at)
            for seq, job_id in enumerate(job_ids, start=1)
        ]
    )


def test_effective_route_order_applies_removals_then_sequence():
    route = _route("a", "b", "c", "d")
    changes = RouteChanges(removed_job_ids=["b"], sequence_overrides={"d": 1, "a": 9})
    assert effective_route_order(route, changes) == ["d", "c", "a"]
    assert route.job_ids() == ["a", "b", "c", "d"]


def test_sequence_override_for_a_removed_stop_is_ignored():
    changes = RouteChanges(removed_job_ids=["c"], sequence_overrides={"c": 1})
    assert effective_route_order(_route("a", "b", "c"), changes) == ["a", "b"]


def test_merge_extends_updates_and_records_history():
    mods = UserModifications()
    mods = merge_modifications(
        mods,
        ModificationPatch(
            dispatch_changes=DispatchChanges(removed_job_ids=["a"], rank_overrides={"b": 1}),
            inventory_changes=InventoryChanges(quantity_overrides={"Tape": 2}),
        ),
    )
    mods = merge_modifications(
        mods,
        ModificationPatch(
            dispatch_changes=DispatchChanges(removed_job_ids=["a", "c"], order=["b"]),
            route_changes=RouteChanges(removed_job_ids=["d"], sequence_overrides={"e": 2}),
            inventory_changes=InventoryChanges(quantity_overrides={"Tape": 5}, include_hardware_store_job=False),
        ),
    )
    assert mods.dispatch_changes.removed_job_ids == ["a", "c"]
    assert mods.dispatch_changes.rank_overrides == {"b": 1}
    assert mods.dispatch_changes.order == ["b"]
    assert mods.route_changes.removed_job_ids == ["d"]
    assert mods.route_changes.sequence_overrides == {"e": 2}
    assert mods.inventory_changes.quantity_overrides == {"Tape": 5}
    assert mods.inventory_changes.include_hardware_store_job is False
    assert len(mods.history) == 2
    assert "route_changes" not in mods.history[0].patch


def _inventory() -> InventoryOutput:
    return InventoryOutput(
        shopping_list=[
            ShoppingItem(item_name="Tape", quantity=1, supplier="Store", unit_price=2.5, estimated_cost=2.5),
            ShoppingItem(item_name="Valve", quantity=2, supplier="Store", unit_price=10.0, estimated_cost=20.0,
                         priority=ShoppingPriority.HIGH),
            ShoppingItem(item_name="Gizmo", quantity=1),
        ],
        hardware_store_job=HardwareStoreJob(
            job_id="hardware_store-1",
            title="Supply run: Store",
            store_name="Store",
            duration_minutes=20,
            items=["Tape", "Valve"],
            total_estimated_cost=22.5,
        ),
    )


def test_effective_shopping_list_applies_overrides_and_removals():
    changes = InventoryChanges(quantity_overrides={"tape": 4}, removed_items=["Gizmo"])
    items = {i.item_name: i for i in effective_shopping_list(_inventory(), changes)}
    assert set(items) == {"Tape", "Valve"}
    assert items["Tape"].quantity == 4
    assert items["Tape"].estimated_cost == 10.0


def test_zero_override_drops_item_and_store_job_follows():
    output = _inventory()
    changes = InventoryChanges(quantity_overrides={"Valve": 0})
    shopping = effective_shopping_list(output, changes)
    store_job = effective_hardware_store_job(output, changes, shopping)
    assert store_job is not None
    assert store_job.items == ["Tape"]
    assert store_job.total_estimated_cost == 2.5
    assert output.hardware_store_job.items == ["Tape", "Valve"]


def test_hardware_store_job_can_be_declined():
    output = _inventory()
    changes = InventoryChanges(include_hardware_store_job=False)
    assert effective_hardware_store_job(output, changes, effective_shopping_list(output, changes)) is None
