"""Domain models shared by the planner, builder and execution gate."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from eth_utils import to_bytes, to_hex

from .addresses import normalize_address
from .errors import ValidationError


@dataclass(frozen=True)
class Account:
    """Snapshot of a multisig account read from chain."""

    address: str
    chain_id: int
    owners: Tuple[str, ...]
    threshold: int
    nonce: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "address": self.address,
            "chainId": self.chain_id,
            "owners": list(self.owners),
            "threshold": self.threshold,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class TransactionItem:
    """Generic call item: the unit every transaction source produces."""

    to: str
    value: int
    data: bytes
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        result: Dict[str, object] = {
            "to": self.to,
            "value": str(self.value),
            "data": to_hex(self.data),
        }
        if self.description is not None:
            result["description"] = self.description
        return result

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "TransactionItem":
        if not isinstance(data, dict):
            raise ValidationError("Transaction item must be an object.", offending=data)
        if not data.get("to") or data.get("data") is None:
            raise ValidationError(
                "Transaction item missing required fields (to, data).", offending=data
            )
        raw_value = data.get("value") or 0
        try:
            value = int(raw_value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid value: {raw_value!r}", offending=data) from None
        if value < 0:
            raise ValidationError("Transaction value must be non-negative.", offending=data)
        raw_data = data["data"]
        if not isinstance(raw_data, str) or not raw_data.startswith("0x"):
            raise ValidationError("Transaction data must be 0x-prefixed hex.", offending=data)
        try:
            payload = to_bytes(hexstr=raw_data)
        except ValueError:
            raise ValidationError("Transaction data is not valid hex.", offending=data) from None
        description = data.get("description")
        return TransactionItem(
            to=normalize_address(str(data["to"])),
            value=value,
            data=payload,
            description=str(description) if description is not None else None,
        )
