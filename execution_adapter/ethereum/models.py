"""Ethereum adapter models for Safe transactions and dry-run output."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Tuple

from eth_utils import to_hex

from core.addresses import ZERO_ADDRESS


class CallType(IntEnum):
    CALL = 0
    DELEGATECALL = 1


@dataclass(frozen=True)
class SafeTransaction:
    """The exact parameters an owner signs and the account later executes."""

    to: str
    value: int
    data: bytes
    operation: CallType
    nonce: int
    safe_tx_gas: int = 0
    base_gas: int = 0
    gas_price: int = 0
    gas_token: str = ZERO_ADDRESS
    refund_receiver: str = ZERO_ADDRESS

    def to_service_dict(self) -> Dict[str, object]:
        return {
            "to": self.to,
            "value": str(self.value),
            "data": to_hex(self.data) if self.data else None,
            "operation": int(self.operation),
            "safeTxGas": str(self.safe_tx_gas),
            "baseGas": str(self.base_gas),
            "gasPrice": str(self.gas_price),
            "gasToken": self.gas_token,
            "refundReceiver": self.refund_receiver,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class DryRunStep:
    sequence: int
    description: str
    owners_after: Tuple[str, ...]
    threshold_after: int


@dataclass(frozen=True)
class DryRunResult:
    steps: Tuple[DryRunStep, ...]
    final_owners: Tuple[str, ...]
    final_threshold: int
    notes: Tuple[str, ...] = field(default=())
