"""Replay reconciliation plans against an account snapshot without network calls."""

import logging
from typing import Sequence, Tuple

from core.addresses import address_key
from core.errors import StalePlanError, ValidationError
from core.models import Account
from execution_engine.models import Operation, ReconciliationPlan
from execution_engine.owners import replay

from .models import DryRunResult, DryRunStep

logger = logging.getLogger(__name__)


def simulate(plan: ReconciliationPlan, account: Account) -> DryRunResult:
    """Apply ``plan`` step by step to ``account`` and report every state.

    Raises StalePlanError when an operation no longer fits the owner list it
    would run against, or a step would leave the threshold out of bounds.
    """

    if address_key(plan.account.address) != address_key(account.address):
        raise StalePlanError(
            f"Plan was computed for {plan.account.address}, not {account.address}."
        )

    steps = replay_steps(plan.operations, account)
    owners = steps[-1].owners_after if steps else tuple(account.owners)
    threshold = steps[-1].threshold_after if steps else account.threshold

    notes = ["Dry-run only; no transaction proposed."]
    if {address_key(o) for o in owners} != {address_key(o) for o in plan.target_owners}:
        notes.append("Final owner set differs from target.")
    return DryRunResult(
        steps=steps,
        final_owners=owners,
        final_threshold=threshold,
        notes=tuple(notes),
    )


def replay_steps(operations: Sequence[Operation], account: Account) -> Tuple[DryRunStep, ...]:
    """Replay ``operations`` over the account's current owners and threshold."""

    steps = []
    try:
        for sequence, (operation, owners, threshold) in enumerate(
            replay(tuple(account.owners), account.threshold, tuple(operations)), start=1
        ):
            if not 1 <= threshold <= len(owners):
                raise StalePlanError(
                    f"Step {sequence} '{operation.describe()}' would leave threshold "
                    f"{threshold} with {len(owners)} owners."
                )
            steps.append(
                DryRunStep(
                    sequence=sequence,
                    description=operation.describe(),
                    owners_after=owners,
                    threshold_after=threshold,
                )
            )
    except ValidationError as exc:
        raise StalePlanError(f"Plan no longer matches on-chain owners: {exc}") from exc
    return tuple(steps)


def ensure_plan_current(plan: ReconciliationPlan, account: Account) -> None:
    """Raise StalePlanError unless ``account`` still matches the plan's snapshot.

    Owners are compared in order because every predecessor pointer depends on
    position; the threshold must match because the first steps inherit it.
    """

    expected = plan.account
    if tuple(address_key(o) for o in expected.owners) != tuple(
        address_key(o) for o in account.owners
    ):
        logger.warning(
            "owners of %s changed since planning: %s -> %s",
            account.address,
            list(expected.owners),
            list(account.owners),
        )
        raise StalePlanError(
            f"Owners of {account.address} changed since the plan was computed; re-plan."
        )
    if expected.threshold != account.threshold:
        raise StalePlanError(
            f"Threshold of {account.address} changed from {expected.threshold} to "
            f"{account.threshold}; re-plan."
        )
    simulate(plan, account)
