"""Deterministic owner-set reconciliation planner with validation."""

import logging
from typing import Iterable, List, Sequence, Tuple

from core.addresses import SENTINEL, ZERO_ADDRESS, address_key, find_duplicates, normalize_address
from core.errors import ValidationError
from core.models import Account

from .models import (
    AddOwnerWithThreshold,
    ChangeThreshold,
    Operation,
    ReconciliationPlan,
    RemoveOwnerWithThreshold,
    SwapOwner,
)
from .owners import apply_operation, predecessor_of, replay, threshold_after

logger = logging.getLogger(__name__)


class PlanValidationError(ValidationError):
    """Raised when a reconciliation plan violates hard validation rules."""


class OwnerReconciliationPlanner:
    """Builds the minimal operation sequence moving an account to a target configuration."""

    def plan(
        self,
        current: Account,
        target_owners: Sequence[str],
        target_threshold: int,
    ) -> ReconciliationPlan:
        targets = _validate_targets(target_owners, target_threshold)

        current_keys = {address_key(owner) for owner in current.owners}
        target_keys = {address_key(owner) for owner in targets}
        to_add = tuple(owner for owner in targets if address_key(owner) not in current_keys)
        to_remove = tuple(
            owner for owner in current.owners if address_key(owner) not in target_keys
        )

        operations: Tuple[Operation, ...] = ()
        if to_add or to_remove or target_threshold != current.threshold:
            operations = _build_operations(current, to_add, to_remove, target_threshold)

        plan = ReconciliationPlan(
            account=current,
            target_owners=targets,
            target_threshold=target_threshold,
            to_add=to_add,
            to_remove=to_remove,
            operations=operations,
        )
        validate_plan(plan)
        logger.debug(
            "planned %d operations for %s (%d swaps, add=%d, remove=%d)",
            len(operations),
            current.address,
            plan.swap_count,
            len(to_add),
            len(to_remove),
        )
        return plan


def _build_operations(
    current: Account,
    to_add: Tuple[str, ...],
    to_remove: Tuple[str, ...],
    target_threshold: int,
) -> Tuple[Operation, ...]:
    operations: List[Operation] = []
    simulated = tuple(current.owners)
    threshold = current.threshold

    def emit(operation: Operation) -> None:
        nonlocal simulated, threshold
        operations.append(operation)
        simulated = apply_operation(simulated, operation)
        threshold = threshold_after(threshold, operation)

    swap_count = min(len(to_add), len(to_remove))
    for old_owner, new_owner in zip(to_remove[:swap_count], to_add[:swap_count]):
        emit(
            SwapOwner(
                predecessor=predecessor_of(simulated, old_owner),
                old_owner=old_owner,
                new_owner=new_owner,
            )
        )

    for new_owner in to_add[swap_count:]:
        emit(
            AddOwnerWithThreshold(
                new_owner=new_owner,
                threshold_after=min(target_threshold, len(simulated) + 1),
            )
        )

    removals = to_remove[swap_count:]
    for index, owner in enumerate(removals):
        is_last = index == len(removals) - 1 and len(to_add) <= swap_count
        if is_last:
            intermediate = target_threshold
        else:
            intermediate = min(target_threshold, len(simulated) - 1)
        emit(
            RemoveOwnerWithThreshold(
                predecessor=predecessor_of(simulated, owner),
                owner=owner,
                threshold_after=intermediate,
            )
        )

    if threshold != target_threshold:
        emit(ChangeThreshold(threshold_after=target_threshold))

    return tuple(operations)


def _validate_targets(target_owners: Sequence[str], target_threshold: int) -> Tuple[str, ...]:
    if isinstance(target_owners, str):
        raise ValidationError("Target owners must be a sequence of addresses.", offending=target_owners)
    targets = tuple(normalize_address(owner) for owner in target_owners)
    if not targets:
        raise ValidationError("Target owners must not be empty.", offending=target_owners)

    reserved = [owner for owner in targets if owner in (SENTINEL, ZERO_ADDRESS)]
    if reserved:
        raise ValidationError(f"Reserved address in target owners: {reserved[0]}", offending=reserved[0])

    duplicates = find_duplicates(targets)
    if duplicates:
        raise ValidationError(
            "Duplicate addresses in target owners: " + ", ".join(duplicates),
            offending=duplicates,
        )

    if isinstance(target_threshold, bool) or not isinstance(target_threshold, int):
        raise ValidationError(f"Threshold must be an integer: {target_threshold!r}", offending=target_threshold)
    if not 1 <= target_threshold <= len(targets):
        raise ValidationError(
            f"Threshold {target_threshold} out of bounds for {len(targets)} owners",
            offending=target_threshold,
        )
    return targets


def validate_plan(plan: ReconciliationPlan) -> None:
    """Replay ``plan`` over its snapshot and enforce the per-step invariants."""

    start = plan.account
    if plan.is_empty:
        if plan.to_add or plan.to_remove or plan.target_threshold != start.threshold:
            raise PlanValidationError("Empty plan but account differs from target.")
        return

    owners = tuple(start.owners)
    threshold = start.threshold
    try:
        for operation, owners, threshold in replay(owners, threshold, plan.operations):
            if not 1 <= threshold <= len(owners):
                raise PlanValidationError(
                    f"Threshold {threshold} invalid for {len(owners)} owners after "
                    f"'{operation.describe()}'.",
                    offending=operation,
                )
    except PlanValidationError:
        raise
    except ValidationError as exc:
        raise PlanValidationError(str(exc), offending=exc.offending) from exc

    if _keys(owners) != _keys(plan.target_owners):
        raise PlanValidationError("Plan does not reach the target owner set.")
    if threshold != plan.target_threshold:
        raise PlanValidationError(
            f"Plan ends at threshold {threshold}, target is {plan.target_threshold}."
        )


def _keys(owners: Iterable[str]) -> frozenset:
    return frozenset(address_key(owner) for owner in owners)
