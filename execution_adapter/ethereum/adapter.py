"""Translate reconciliation plans and item batches into Safe transactions."""

from typing import Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_checksum_address, to_hex

from core.addresses import address_key
from core.errors import ValidationError
from core.models import TransactionItem
from execution_engine.models import (
    AddOwnerWithThreshold,
    ChangeThreshold,
    Operation,
    ReconciliationPlan,
    RemoveOwnerWithThreshold,
    SwapOwner,
)
from execution_engine.planner import validate_plan

from . import abi
from .models import CallType, SafeTransaction


class AdapterError(ValidationError):
    """Raised when a plan or batch cannot be adapted to a Safe transaction."""


DOMAIN_TYPEHASH = keccak(text="EIP712Domain(uint256 chainId,address verifyingContract)")
SAFE_TX_TYPEHASH = keccak(
    text=(
        "SafeTx(address to,uint256 value,bytes data,uint8 operation,uint256 safeTxGas,"
        "uint256 baseGas,uint256 gasPrice,address gasToken,address refundReceiver,"
        "uint256 nonce)"
    )
)


def encode_operation(operation: Operation) -> bytes:
    if isinstance(operation, SwapOwner):
        return abi.encode_call(
            abi.SWAP_OWNER,
            (operation.predecessor, operation.old_owner, operation.new_owner),
        )
    if isinstance(operation, AddOwnerWithThreshold):
        return abi.encode_call(
            abi.ADD_OWNER_WITH_THRESHOLD, (operation.new_owner, operation.threshold_after)
        )
    if isinstance(operation, RemoveOwnerWithThreshold):
        return abi.encode_call(
            abi.REMOVE_OWNER,
            (operation.predecessor, operation.owner, operation.threshold_after),
        )
    if isinstance(operation, ChangeThreshold):
        return abi.encode_call(abi.CHANGE_THRESHOLD, (operation.threshold_after,))
    raise AdapterError(f"Unsupported operation: {operation!r}", offending=operation)


def plan_to_items(plan: ReconciliationPlan) -> Tuple[TransactionItem, ...]:
    """One self-call item per operation, targeting the account itself."""

    validate_plan(plan)
    return tuple(
        TransactionItem(
            to=plan.account.address,
            value=0,
            data=encode_operation(operation),
            description=operation.describe(),
        )
        for operation in plan.operations
    )


def encode_multisend(items: Sequence[TransactionItem]) -> bytes:
    packed = b"".join(
        encode_packed(
            ["uint8", "address", "uint256", "uint256", "bytes"],
            [int(CallType.CALL), item.to, item.value, len(item.data), item.data],
        )
        for item in items
    )
    return abi.encode_call(abi.MULTI_SEND, (packed,))


def items_to_safe_transaction(
    items: Sequence[TransactionItem], nonce: int, multisend_address: str
) -> SafeTransaction:
    """A single item becomes a direct call; several are batched through MultiSend."""

    if not items:
        raise AdapterError("At least one transaction item is required.", offending=items)
    if nonce < 0:
        raise AdapterError(f"Nonce must be non-negative: {nonce}", offending=nonce)
    for item in items:
        if item.value < 0:
            raise AdapterError("Transaction value must be non-negative.", offending=item)

    if len(items) == 1:
        item = items[0]
        return SafeTransaction(
            to=item.to,
            value=item.value,
            data=item.data,
            operation=CallType.CALL,
            nonce=nonce,
        )
    return SafeTransaction(
        to=multisend_address,
        value=0,
        data=encode_multisend(items),
        operation=CallType.DELEGATECALL,
        nonce=nonce,
    )


def safe_transaction_hash(tx: SafeTransaction, chain_id: int, account_address: str) -> bytes:
    """EIP-712 digest of ``tx`` for the given account; this is what owners sign."""

    domain_separator = keccak(
        encode(["bytes32", "uint256", "address"], [DOMAIN_TYPEHASH, chain_id, account_address])
    )
    struct_hash = keccak(
        encode(
            [
                "bytes32",
                "address",
                "uint256",
                "bytes32",
                "uint8",
                "uint256",
                "uint256",
                "uint256",
                "address",
                "address",
                "uint256",
            ],
            [
                SAFE_TX_TYPEHASH,
                tx.to,
                tx.value,
                keccak(tx.data),
                int(tx.operation),
                tx.safe_tx_gas,
                tx.base_gas,
                tx.gas_price,
                tx.gas_token,
                tx.refund_receiver,
                tx.nonce,
            ],
        )
    )
    return keccak(b"\x19\x01" + domain_separator + struct_hash)


_OWNER_DECODERS = {
    abi.selector(abi.SWAP_OWNER[0]): abi.SWAP_OWNER,
    abi.selector(abi.ADD_OWNER_WITH_THRESHOLD[0]): abi.ADD_OWNER_WITH_THRESHOLD,
    abi.selector(abi.REMOVE_OWNER[0]): abi.REMOVE_OWNER,
    abi.selector(abi.CHANGE_THRESHOLD[0]): abi.CHANGE_THRESHOLD,
}

# operation (1) + to (20) + value (32) + data length (32)
_MULTISEND_HEADER = 85


def decode_multisend(data: bytes) -> Tuple[TransactionItem, ...]:
    """Inverse of ``encode_multisend``."""

    if data[:4] != abi.selector(abi.MULTI_SEND[0]):
        raise AdapterError("Not a multiSend call.", offending=to_hex(data[:4]))
    try:
        (packed,) = decode(["bytes"], data[4:])
    except DecodingError as exc:
        raise AdapterError("Malformed multiSend payload.", offending=to_hex(data)) from exc

    items = []
    offset = 0
    while offset < len(packed):
        header = packed[offset : offset + _MULTISEND_HEADER]
        if len(header) < _MULTISEND_HEADER:
            raise AdapterError("Truncated multiSend entry.", offending=offset)
        length = int.from_bytes(header[53:85], "big")
        payload = packed[offset + _MULTISEND_HEADER : offset + _MULTISEND_HEADER + length]
        if len(payload) < length:
            raise AdapterError("Truncated multiSend entry data.", offending=offset)
        items.append(
            TransactionItem(
                to=to_checksum_address(to_hex(header[1:21])),
                value=int.from_bytes(header[21:53], "big"),
                data=payload,
            )
        )
        offset += _MULTISEND_HEADER + length
    return tuple(items)


def transaction_items(tx: SafeTransaction, multisend_address: str) -> Tuple[TransactionItem, ...]:
    """Recover the calls a transaction will make; inverse of ``items_to_safe_transaction``."""

    if tx.operation == CallType.DELEGATECALL and address_key(tx.to) == address_key(multisend_address):
        return decode_multisend(tx.data)
    return (TransactionItem(to=tx.to, value=tx.value, data=tx.data),)


def decode_operation(data: bytes) -> Optional[Operation]:
    """Decode owner-management calldata; None for any other call."""

    function = _OWNER_DECODERS.get(data[:4])
    if function is None:
        return None
    signature, types = function
    try:
        args = decode(list(types), data[4:])
    except DecodingError as exc:
        raise AdapterError(f"Malformed {signature} call.", offending=to_hex(data)) from exc
    if function is abi.SWAP_OWNER:
        predecessor, old_owner, new_owner = args
        return SwapOwner(
            predecessor=to_checksum_address(predecessor),
            old_owner=to_checksum_address(old_owner),
            new_owner=to_checksum_address(new_owner),
        )
    if function is abi.ADD_OWNER_WITH_THRESHOLD:
        new_owner, threshold = args
        return AddOwnerWithThreshold(new_owner=to_checksum_address(new_owner), threshold_after=threshold)
    if function is abi.REMOVE_OWNER:
        predecessor, owner, threshold = args
        return RemoveOwnerWithThreshold(
            predecessor=to_checksum_address(predecessor),
            owner=to_checksum_address(owner),
            threshold_after=threshold,
        )
    (threshold,) = args
    return ChangeThreshold(threshold_after=threshold)


def owner_operations(
    tx: SafeTransaction, account_address: str, multisend_address: str
) -> Tuple[Operation, ...]:
    """Owner-management operations ``tx`` performs on the account itself, in order."""

    operations = []
    for item in transaction_items(tx, multisend_address):
        if address_key(item.to) != address_key(account_address):
            continue
        operation = decode_operation(item.data)
        if operation is not None:
            operations.append(operation)
    return tuple(operations)
