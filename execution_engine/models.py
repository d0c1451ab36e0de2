"""Domain models for owner-set reconciliation plans."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple, Union

from core.models import Account


class OperationKind(Enum):
    SWAP = "SWAP"
    ADD = "ADD"
    REMOVE = "REMOVE"
    CHANGE_THRESHOLD = "CHANGE_THRESHOLD"


@dataclass(frozen=True)
class SwapOwner:
    predecessor: str
    old_owner: str
    new_owner: str

    @property
    def kind(self) -> OperationKind:
        return OperationKind.SWAP

    def describe(self) -> str:
        return f"Swap {_short(self.old_owner)} -> {_short(self.new_owner)}"


@dataclass(frozen=True)
class AddOwnerWithThreshold:
    new_owner: str
    threshold_after: int

    @property
    def kind(self) -> OperationKind:
        return OperationKind.ADD

    def describe(self) -> str:
        return f"Add owner {_short(self.new_owner)} (threshold: {self.threshold_after})"


@dataclass(frozen=True)
class RemoveOwnerWithThreshold:
    predecessor: str
    owner: str
    threshold_after: int

    @property
    def kind(self) -> OperationKind:
        return OperationKind.REMOVE

    def describe(self) -> str:
        return f"Remove owner {_short(self.owner)} (threshold: {self.threshold_after})"


@dataclass(frozen=True)
class ChangeThreshold:
    threshold_after: int

    @property
    def kind(self) -> OperationKind:
        return OperationKind.CHANGE_THRESHOLD

    def describe(self) -> str:
        return f"Change threshold to {self.threshold_after}"


Operation = Union[SwapOwner, AddOwnerWithThreshold, RemoveOwnerWithThreshold, ChangeThreshold]


@dataclass(frozen=True)
class ReconciliationPlan:
    """Ordered owner mutations together with the snapshot they were computed from."""

    account: Account
    target_owners: Tuple[str, ...]
    target_threshold: int
    to_add: Tuple[str, ...]
    to_remove: Tuple[str, ...]
    operations: Tuple[Operation, ...]

    @property
    def is_empty(self) -> bool:
        return not self.operations

    @property
    def swap_count(self) -> int:
        return sum(1 for operation in self.operations if operation.kind == OperationKind.SWAP)

    def to_dict(self) -> Dict[str, object]:
        return {
            "safe": self.account.address,
            "currentOwners": list(self.account.owners),
            "currentThreshold": self.account.threshold,
            "targetOwners": list(self.target_owners),
            "newThreshold": self.target_threshold,
            "toAdd": list(self.to_add),
            "toRemove": list(self.to_remove),
            "transactions": [operation.describe() for operation in self.operations],
        }


def _short(address: str) -> str:
    return f"{address[:10]}..."
