"""Proposal lifecycle states and status records."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from eth_utils import to_hex

from core.models import TransactionItem
from execution_adapter.ethereum.models import SafeTransaction


class ProposalState(Enum):
    CREATED = "CREATED"
    PARTIALLY_CONFIRMED = "PARTIALLY_CONFIRMED"
    EXECUTABLE = "EXECUTABLE"
    EXECUTED = "EXECUTED"


def proposal_state(confirmed_count: int, threshold: int, executed: bool) -> ProposalState:
    if executed:
        return ProposalState.EXECUTED
    if confirmed_count >= threshold:
        return ProposalState.EXECUTABLE
    if confirmed_count > 0:
        return ProposalState.PARTIALLY_CONFIRMED
    return ProposalState.CREATED


@dataclass(frozen=True)
class SignatureStatus:
    proposal_hash: str
    nonce: int
    confirmed_owners: Tuple[str, ...]
    pending_owners: Tuple[str, ...]
    threshold: int
    is_executable: bool
    is_executed: bool
    execution_hash: Optional[str] = None

    @property
    def confirmations(self) -> int:
        return len(self.confirmed_owners)

    @property
    def state(self) -> ProposalState:
        return proposal_state(self.confirmations, self.threshold, self.is_executed)

    def to_dict(self) -> Dict[str, object]:
        return {
            "txHash": self.proposal_hash,
            "nonce": self.nonce,
            "confirmations": self.confirmations,
            "threshold": self.threshold,
            "confirmedBy": list(self.confirmed_owners),
            "pendingOwners": list(self.pending_owners),
            "isExecutable": self.is_executable,
            "isExecuted": self.is_executed,
            "executionHash": self.execution_hash,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class PendingProposal:
    proposal_hash: str
    nonce: int
    to: str
    value: int
    submission_date: Optional[str]
    confirmations: int
    threshold: int

    @property
    def is_executable(self) -> bool:
        return self.confirmations >= self.threshold

    def to_dict(self) -> Dict[str, object]:
        return {
            "safeTxHash": self.proposal_hash,
            "nonce": self.nonce,
            "to": self.to,
            "value": str(self.value),
            "submissionDate": self.submission_date,
            "confirmations": self.confirmations,
            "threshold": self.threshold,
            "isExecutable": self.is_executable,
        }


@dataclass(frozen=True)
class Proposal:
    """A hashed transaction descriptor, signed by the proposer once built."""

    proposal_hash: str
    account_address: str
    chain_id: int
    items: Tuple[TransactionItem, ...]
    transaction: SafeTransaction
    sender: Optional[str] = None
    signature: Optional[str] = None
    confirmed_owners: Tuple[str, ...] = ()
    executed: bool = False
    execution_hash: Optional[str] = None

    @property
    def nonce(self) -> int:
        return self.transaction.nonce

    def service_payload(self) -> Dict[str, object]:
        payload = dict(self.transaction.to_service_dict())
        payload.update(
            {
                "contractTransactionHash": self.proposal_hash,
                "sender": self.sender,
                "signature": self.signature,
                "origin": "multisig-ops",
            }
        )
        return payload

    def to_dict(self) -> Dict[str, object]:
        return {
            "safe": self.account_address,
            "chainId": self.chain_id,
            "safeTxHash": self.proposal_hash,
            "nonce": self.nonce,
            "to": self.transaction.to,
            "value": str(self.transaction.value),
            "data": to_hex(self.transaction.data),
            "operation": int(self.transaction.operation),
            "transactionCount": len(self.items),
            "transactions": [item.to_dict() for item in self.items],
            "sender": self.sender,
            "confirmedBy": list(self.confirmed_owners),
            "isExecuted": self.executed,
            "executionHash": self.execution_hash,
        }
