"""Pure functions over the ordered owner sequence.

On chain the owners form a singly linked list headed by a sentinel, and every
mutation names the predecessor of the node it touches. Here the list is an
immutable tuple; predecessors are recomputed from position.
"""

from typing import Iterator, Tuple

from core.addresses import SENTINEL, address_key, same_address
from core.errors import ValidationError

from .models import (
    AddOwnerWithThreshold,
    ChangeThreshold,
    Operation,
    RemoveOwnerWithThreshold,
    SwapOwner,
)


def index_of(owners: Tuple[str, ...], target: str) -> int:
    key = address_key(target)
    for index, owner in enumerate(owners):
        if address_key(owner) == key:
            return index
    raise ValidationError(f"Owner {target} not found", offending=target)


def predecessor_of(owners: Tuple[str, ...], target: str) -> str:
    """Return the sentinel when ``target`` is first, else the preceding owner."""

    index = index_of(owners, target)
    return SENTINEL if index == 0 else owners[index - 1]


def contains(owners: Tuple[str, ...], target: str) -> bool:
    key = address_key(target)
    return any(address_key(owner) == key for owner in owners)


def apply_operation(owners: Tuple[str, ...], operation: Operation) -> Tuple[str, ...]:
    """Return the owner sequence after ``operation``; the input is not modified.

    Raises ValidationError when the operation does not fit ``owners``: a named
    predecessor is not adjacent, a removed owner is absent, or an added owner
    is already present.
    """

    if isinstance(operation, SwapOwner):
        _require_predecessor(owners, operation.predecessor, operation.old_owner)
        _require_absent(owners, operation.new_owner)
        index = index_of(owners, operation.old_owner)
        return owners[:index] + (operation.new_owner,) + owners[index + 1 :]
    if isinstance(operation, AddOwnerWithThreshold):
        _require_absent(owners, operation.new_owner)
        return owners + (operation.new_owner,)
    if isinstance(operation, RemoveOwnerWithThreshold):
        _require_predecessor(owners, operation.predecessor, operation.owner)
        index = index_of(owners, operation.owner)
        return owners[:index] + owners[index + 1 :]
    if isinstance(operation, ChangeThreshold):
        return owners
    raise ValidationError(f"Unsupported operation: {operation!r}", offending=operation)


def threshold_after(current_threshold: int, operation: Operation) -> int:
    if isinstance(operation, SwapOwner):
        return current_threshold
    return operation.threshold_after


def replay(
    owners: Tuple[str, ...], threshold: int, operations: Tuple[Operation, ...]
) -> Iterator[Tuple[Operation, Tuple[str, ...], int]]:
    """Yield ``(operation, owners_after, threshold_after)`` for each step."""

    for operation in operations:
        owners = apply_operation(owners, operation)
        threshold = threshold_after(threshold, operation)
        yield operation, owners, threshold


def _require_predecessor(owners: Tuple[str, ...], predecessor: str, target: str) -> None:
    expected = predecessor_of(owners, target)
    if not same_address(expected, predecessor):
        raise ValidationError(
            f"Predecessor {predecessor} is not adjacent to {target} (expected {expected})",
            offending=predecessor,
        )


def _require_absent(owners: Tuple[str, ...], candidate: str) -> None:
    if contains(owners, candidate):
        raise ValidationError(f"Address {candidate} is already an owner", offending=candidate)
