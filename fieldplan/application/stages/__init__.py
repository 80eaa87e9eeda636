from fieldplan.application.stages.dispatch import DispatchStage
from fieldplan.application.stages.inventory import InventoryStage
from fieldplan.application.stages.route import RouteStage

__all__ = ["DispatchStage", "InventoryStage", "RouteStage"]
