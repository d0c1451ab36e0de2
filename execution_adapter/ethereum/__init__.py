from .adapter import (
    AdapterError,
    decode_multisend,
    decode_operation,
    encode_multisend,
    encode_operation,
    items_to_safe_transaction,
    owner_operations,
    plan_to_items,
    safe_transaction_hash,
    transaction_items,
)
from .executor import SafeExecutor
from .models import CallType, DryRunResult, DryRunStep, SafeTransaction
from .reader import AccountStateReader, build_web3
from .simulator import ensure_plan_current, replay_steps, simulate

__all__ = [
    "AccountStateReader",
    "AdapterError",
    "CallType",
    "DryRunResult",
    "DryRunStep",
    "SafeExecutor",
    "SafeTransaction",
    "build_web3",
    "decode_multisend",
    "decode_operation",
    "encode_multisend",
    "encode_operation",
    "ensure_plan_current",
    "items_to_safe_transaction",
    "owner_operations",
    "plan_to_items",
    "replay_steps",
    "safe_transaction_hash",
    "simulate",
    "transaction_items",
]
