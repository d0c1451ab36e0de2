"""Confirmation tracking and the execution gate."""

import logging
import re
import threading
import time
from typing import Optional, Sequence, Tuple

from eth_utils import to_bytes, to_hex

from core.addresses import address_key, normalize_address
from core.config import OperatorSettings
from core.errors import (
    ConfigurationError,
    InsufficientConfirmationsError,
    SchemaError,
    StalePlanError,
    ValidationError,
)
from core.models import Account, TransactionItem
from core.retry import check_cancelled
from coordination.models import ServiceTransaction
from coordination.service import CoordinationServiceClient
from execution_adapter.ethereum.adapter import (
    AdapterError,
    owner_operations,
    plan_to_items,
    safe_transaction_hash,
)
from execution_adapter.ethereum.executor import SafeExecutor
from execution_adapter.ethereum.models import SafeTransaction
from execution_adapter.ethereum.reader import AccountStateReader
from execution_adapter.ethereum.simulator import ensure_plan_current, replay_steps
from execution_engine.models import ReconciliationPlan

from .builder import ProposalBuilder
from .modes import PendingProposal, Proposal, SignatureStatus

logger = logging.getLogger(__name__)

_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def signature_status(record: ServiceTransaction, account: Account) -> SignatureStatus:
    """Count only confirmations from the account's current owners."""

    owners_by_key = {address_key(owner): owner for owner in account.owners}
    confirmed = []
    seen = set()
    for owner in record.confirming_owners():
        key = address_key(owner)
        if key in owners_by_key and key not in seen:
            seen.add(key)
            confirmed.append(owners_by_key[key])
    pending = tuple(owner for owner in account.owners if address_key(owner) not in seen)
    return SignatureStatus(
        proposal_hash=record.safe_tx_hash,
        nonce=record.nonce,
        confirmed_owners=tuple(confirmed),
        pending_owners=pending,
        threshold=account.threshold,
        is_executable=len(confirmed) >= account.threshold and not record.is_executed,
        is_executed=record.is_executed,
        execution_hash=record.transaction_hash,
    )


def packed_signatures(record: ServiceTransaction, account: Account) -> bytes:
    """Concatenate current owners' signatures in ascending owner order."""

    owner_keys = {address_key(owner) for owner in account.owners}
    by_owner = {}
    for confirmation in record.confirmations:
        key = address_key(confirmation.owner)
        if key in owner_keys and confirmation.signature and key not in by_owner:
            try:
                by_owner[key] = to_bytes(hexstr=confirmation.signature)
            except ValueError as exc:
                raise SchemaError(
                    f"Confirmation from {confirmation.owner} has a malformed signature.",
                    payload=confirmation.signature,
                ) from exc
    return b"".join(by_owner[key] for key in sorted(by_owner, key=lambda k: int(k, 16)))


def ensure_operations_current(
    record: ServiceTransaction,
    transaction: SafeTransaction,
    account: Account,
    multisend_address: str,
) -> None:
    """Raise StalePlanError unless the owner calls in ``transaction`` still apply to ``account``."""

    try:
        operations = owner_operations(transaction, account.address, multisend_address)
    except AdapterError as exc:
        raise SchemaError(
            f"Proposal {record.safe_tx_hash} carries undecodable owner calls: {exc}",
            payload=record.model_dump(by_alias=True),
        ) from exc
    if operations:
        logger.debug(
            "replaying %d owner operation(s) of %s against %s",
            len(operations),
            record.safe_tx_hash,
            account.address,
        )
        replay_steps(operations, account)


class ExecutionController:
    """Proposes, tracks and executes transactions for one chain.

    The coordination service is the record of confirmations and the chain is
    the record of owners; both are re-read on every call.
    """

    def __init__(
        self,
        reader: AccountStateReader,
        service: CoordinationServiceClient,
        builder: ProposalBuilder,
        settings: OperatorSettings,
        executor: Optional[SafeExecutor] = None,
    ) -> None:
        self._reader = reader
        self._service = service
        self._builder = builder
        self._settings = settings
        self._executor = executor

    def propose(
        self,
        account_address: str,
        items: Sequence[TransactionItem],
        nonce: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Proposal:
        if not items:
            raise ValidationError("No transactions to propose.", offending=items)
        account = self._reader.read(account_address, cancel=cancel)
        return self._builder.build(account, items, nonce)

    def propose_plan(
        self,
        plan: ReconciliationPlan,
        nonce: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Proposal:
        """Re-validate ``plan`` against a fresh read, then propose it as one batch."""

        if plan.is_empty:
            raise ValidationError("Owners already match the target; nothing to propose.")
        items = plan_to_items(plan)
        fresh = self._reader.read(plan.account.address, cancel=cancel)
        ensure_plan_current(plan, fresh)
        return self._builder.build(fresh, items, nonce)

    def status(
        self,
        account_address: str,
        proposal_hash: str,
        cancel: Optional[threading.Event] = None,
    ) -> SignatureStatus:
        record, account = self._fetch(account_address, proposal_hash, cancel)
        return signature_status(record, account)

    def pending(
        self, account_address: str, cancel: Optional[threading.Event] = None
    ) -> Tuple[PendingProposal, ...]:
        account = self._reader.read(account_address, cancel=cancel)
        records = self._service.list_pending(account.address, account.nonce, cancel=cancel)
        pending = []
        for record in records:
            status = signature_status(record, account)
            pending.append(
                PendingProposal(
                    proposal_hash=record.safe_tx_hash,
                    nonce=record.nonce,
                    to=record.to,
                    value=record.value,
                    submission_date=record.submission_date,
                    confirmations=status.confirmations,
                    threshold=account.threshold,
                )
            )
        return tuple(pending)

    def execute(
        self,
        account_address: str,
        proposal_hash: str,
        plan: Optional[ReconciliationPlan] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        record, account = self._fetch(account_address, proposal_hash, cancel)
        status = signature_status(record, account)

        if status.is_executed:
            if not record.transaction_hash:
                raise SchemaError(
                    f"Proposal {proposal_hash} is marked executed without a transaction hash.",
                    payload=record.model_dump(by_alias=True),
                )
            logger.info("%s already executed in %s", proposal_hash, record.transaction_hash)
            return record.transaction_hash

        if not status.is_executable:
            raise InsufficientConfirmationsError(
                status.confirmations, status.threshold, status.pending_owners
            )
        if record.nonce != account.nonce:
            raise StalePlanError(
                f"Proposal nonce {record.nonce} is not the account nonce {account.nonce}."
            )
        if plan is not None:
            ensure_plan_current(plan, account)

        transaction = record.to_safe_transaction()
        digest = safe_transaction_hash(transaction, account.chain_id, account.address)
        if to_hex(digest) != proposal_hash.lower():
            raise SchemaError(
                f"Service record does not hash to {proposal_hash}.",
                payload=record.model_dump(by_alias=True),
            )
        ensure_operations_current(record, transaction, account, self._settings.multisend_address)

        signatures = packed_signatures(record, account)
        if len(signatures) < 65 * account.threshold:
            raise InsufficientConfirmationsError(
                len(signatures) // 65, account.threshold, status.pending_owners
            )

        if self._executor is None:
            raise ConfigurationError("A signer is required to execute transactions.")
        check_cancelled(cancel)
        tx_hash = self._executor.exec_transaction(account.address, transaction, signatures)
        logger.info("executed %s on %s: %s", proposal_hash, account.address, tx_hash)
        return tx_hash

    def wait_until_executable(
        self,
        account_address: str,
        proposal_hash: str,
        poll_interval: float = 15.0,
        timeout: float = 600.0,
        cancel: Optional[threading.Event] = None,
    ) -> SignatureStatus:
        """Poll until the proposal is executable or executed.

        Returns the last status seen once ``timeout`` elapses; callers inspect
        ``is_executable`` to tell the two apart.
        """

        deadline = time.monotonic() + timeout
        while True:
            status = self.status(account_address, proposal_hash, cancel=cancel)
            if status.is_executable or status.is_executed:
                return status
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info(
                    "%s still at %d/%d after %.0fs",
                    proposal_hash,
                    status.confirmations,
                    status.threshold,
                    timeout,
                )
                return status
            delay = min(poll_interval, remaining)
            if cancel is not None:
                if cancel.wait(delay):
                    check_cancelled(cancel)
            else:
                time.sleep(delay)

    def _fetch(
        self,
        account_address: str,
        proposal_hash: str,
        cancel: Optional[threading.Event],
    ) -> Tuple[ServiceTransaction, Account]:
        address = normalize_address(account_address)
        if not _HASH_PATTERN.match(proposal_hash):
            raise ValidationError(
                f"Proposal hash must be 0x followed by 64 hex digits: {proposal_hash!r}",
                offending=proposal_hash,
            )
        record = self._service.get_transaction(proposal_hash, cancel=cancel)
        if record.safe is not None and address_key(record.safe) != address_key(address):
            raise ValidationError(
                f"Proposal {proposal_hash} belongs to {record.safe}, not {address}.",
                offending=proposal_hash,
            )
        account = self._reader.read(address, cancel=cancel)
        return record, account
