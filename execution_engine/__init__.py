from .models import (
    AddOwnerWithThreshold,
    ChangeThreshold,
    Operation,
    OperationKind,
    ReconciliationPlan,
    RemoveOwnerWithThreshold,
    SwapOwner,
)
from .owners import apply_operation, predecessor_of, replay
from .planner import OwnerReconciliationPlanner, PlanValidationError, validate_plan

__all__ = [
    "AddOwnerWithThreshold",
    "ChangeThreshold",
    "Operation",
    "OperationKind",
    "OwnerReconciliationPlanner",
    "PlanValidationError",
    "ReconciliationPlan",
    "RemoveOwnerWithThreshold",
    "SwapOwner",
    "apply_operation",
    "predecessor_of",
    "replay",
    "validate_plan",
]
