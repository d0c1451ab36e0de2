"""Typed views of coordination-service responses.

Every payload is validated on arrival; a response that does not fit raises
SchemaError instead of being read with silent defaults.
"""

from typing import Any, List, Optional, Type, TypeVar

import pydantic
from eth_utils import to_bytes
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.addresses import ZERO_ADDRESS
from core.errors import SchemaError
from execution_adapter.ethereum.models import CallType, SafeTransaction

M = TypeVar("M", bound=BaseModel)


class _ServiceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class Confirmation(_ServiceModel):
    owner: str
    signature: Optional[str] = None
    submission_date: Optional[str] = Field(default=None, alias="submissionDate")


class ServiceTransaction(_ServiceModel):
    safe_tx_hash: str = Field(alias="safeTxHash")
    safe: Optional[str] = None
    to: str
    value: int
    data: Optional[str] = None
    operation: int = Field(default=0, ge=0, le=1)
    safe_tx_gas: int = Field(default=0, alias="safeTxGas")
    base_gas: int = Field(default=0, alias="baseGas")
    gas_price: int = Field(default=0, alias="gasPrice")
    gas_token: Optional[str] = Field(default=None, alias="gasToken")
    refund_receiver: Optional[str] = Field(default=None, alias="refundReceiver")
    nonce: int
    submission_date: Optional[str] = Field(default=None, alias="submissionDate")
    is_executed: bool = Field(default=False, alias="isExecuted")
    transaction_hash: Optional[str] = Field(default=None, alias="transactionHash")
    confirmations_required: Optional[int] = Field(default=None, alias="confirmationsRequired")
    confirmations: List[Confirmation] = Field(default_factory=list)

    @field_validator("confirmations", mode="before")
    @classmethod
    def _null_confirmations(cls, value: Any) -> Any:
        return [] if value is None else value

    def confirming_owners(self) -> List[str]:
        return [confirmation.owner for confirmation in self.confirmations]

    def to_safe_transaction(self) -> SafeTransaction:
        try:
            data = to_bytes(hexstr=self.data) if self.data else b""
        except ValueError as exc:
            raise SchemaError("Transaction data is not valid hex.", payload=self.data) from exc
        return SafeTransaction(
            to=self.to,
            value=self.value,
            data=data,
            operation=CallType(self.operation),
            nonce=self.nonce,
            safe_tx_gas=self.safe_tx_gas,
            base_gas=self.base_gas,
            gas_price=self.gas_price,
            gas_token=self.gas_token or ZERO_ADDRESS,
            refund_receiver=self.refund_receiver or ZERO_ADDRESS,
        )


class TransactionPage(_ServiceModel):
    count: Optional[int] = None
    next: Optional[str] = None
    results: List[ServiceTransaction] = Field(default_factory=list)


def parse_model(model: Type[M], payload: Any) -> M:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise SchemaError(
            f"Unexpected {model.__name__} payload: {exc.error_count()} error(s): {exc}",
            payload=payload,
        ) from exc
