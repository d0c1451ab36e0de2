"""Calldata, batching and hashing tests for the Ethereum adapter."""

import inspect
import unittest

from eth_abi import decode, encode
from eth_account.messages import encode_typed_data
from eth_utils import keccak, to_bytes, to_checksum_address

from core.addresses import SENTINEL, ZERO_ADDRESS
from core.models import Account, TransactionItem
from execution_engine.models import (
    AddOwnerWithThreshold,
    ChangeThreshold,
    RemoveOwnerWithThreshold,
    SwapOwner,
)
from execution_engine.planner import OwnerReconciliationPlanner

from execution_adapter.ethereum.adapter import (
    AdapterError,
    decode_multisend,
    decode_operation,
    encode_multisend,
    encode_operation,
    items_to_safe_transaction,
    owner_operations,
    plan_to_items,
    safe_transaction_hash,
)
from execution_adapter.ethereum.models import CallType, SafeTransaction

SAFE = to_checksum_address("0x" + "5a" * 20)
MULTISEND = "0x40A2aCCbd92BCA938b02010E17A5b8929b49130D"
A = to_checksum_address("0x" + "a0" * 20)
B = to_checksum_address("0x" + "b0" * 20)
C = to_checksum_address("0x" + "c0" * 20)
D = to_checksum_address("0x" + "d0" * 20)


def _item(to, value=0, data=b""):
    return TransactionItem(to=to, value=value, data=data)


class OperationEncodingTests(unittest.TestCase):
    def test_selectors_match_safe_abi(self) -> None:
        cases = [
            (SwapOwner(predecessor=SENTINEL, old_owner=A, new_owner=B), "e318b52b"),
            (AddOwnerWithThreshold(new_owner=B, threshold_after=2), "0d582f13"),
            (RemoveOwnerWithThreshold(predecessor=A, owner=B, threshold_after=1), "f8dc5dd9"),
            (ChangeThreshold(threshold_after=3), "694e80c3"),
        ]
        for operation, expected in cases:
            with self.subTest(operation=operation.kind):
                self.assertEqual(encode_operation(operation)[:4].hex(), expected)

    def test_swap_arguments_are_abi_encoded(self) -> None:
        data = encode_operation(SwapOwner(predecessor=SENTINEL, old_owner=A, new_owner=B))
        predecessor, old_owner, new_owner = decode(
            ["address", "address", "address"], data[4:]
        )
        self.assertEqual(to_checksum_address(predecessor), SENTINEL)
        self.assertEqual(to_checksum_address(old_owner), A)
        self.assertEqual(to_checksum_address(new_owner), B)

    def test_unknown_operation_rejected(self) -> None:
        with self.assertRaises(AdapterError):
            encode_operation("addOwner")

    def test_plan_items_are_self_calls(self) -> None:
        account = Account(address=SAFE, chain_id=1, owners=(A, B, C), threshold=2, nonce=4)
        plan = OwnerReconciliationPlanner().plan(account, [A, D], 1)

        items = plan_to_items(plan)

        self.assertEqual(len(items), len(plan.operations))
        for item, operation in zip(items, plan.operations):
            self.assertEqual(item.to, SAFE)
            self.assertEqual(item.value, 0)
            self.assertEqual(item.data, encode_operation(operation))
            self.assertEqual(item.description, operation.describe())

    def test_adapter_has_no_wallet_dependency(self) -> None:
        source = inspect.getsource(plan_to_items) + inspect.getsource(items_to_safe_transaction)
        self.assertNotIn("wallet_core", source)


class BatchingTests(unittest.TestCase):
    def test_single_item_is_direct_call(self) -> None:
        tx = items_to_safe_transaction([_item(A, 5, b"\x01\x02")], 9, MULTISEND)

        self.assertEqual(tx.to, A)
        self.assertEqual(tx.value, 5)
        self.assertEqual(tx.data, b"\x01\x02")
        self.assertEqual(tx.operation, CallType.CALL)
        self.assertEqual(tx.nonce, 9)

    def test_several_items_delegatecall_multisend(self) -> None:
        items = [_item(A, 1, b"\xaa"), _item(B, 0, b"")]
        tx = items_to_safe_transaction(items, 3, MULTISEND)

        self.assertEqual(tx.to, MULTISEND)
        self.assertEqual(tx.value, 0)
        self.assertEqual(tx.operation, CallType.DELEGATECALL)
        self.assertEqual(tx.data, encode_multisend(items))

    def test_multisend_packing_layout(self) -> None:
        data = encode_multisend([_item(A, 7, b"\xde\xad"), _item(B, 0, b"")])
        self.assertEqual(data[:4].hex(), "8d80ff0a")
        (packed,) = decode(["bytes"], data[4:])

        first = packed[: 1 + 20 + 32 + 32 + 2]
        self.assertEqual(first[0], 0)
        self.assertEqual(first[1:21], to_bytes(hexstr=A))
        self.assertEqual(int.from_bytes(first[21:53], "big"), 7)
        self.assertEqual(int.from_bytes(first[53:85], "big"), 2)
        self.assertEqual(first[85:], b"\xde\xad")

        second = packed[len(first):]
        self.assertEqual(len(second), 1 + 20 + 32 + 32)
        self.assertEqual(second[1:21], to_bytes(hexstr=B))

    def test_empty_batch_rejected(self) -> None:
        with self.assertRaises(AdapterError):
            items_to_safe_transaction([], 0, MULTISEND)

    def test_negative_nonce_rejected(self) -> None:
        with self.assertRaises(AdapterError):
            items_to_safe_transaction([_item(A)], -1, MULTISEND)

    def test_service_dict_shape(self) -> None:
        tx = items_to_safe_transaction([_item(A, 10**18, b"\x01")], 2, MULTISEND)
        payload = tx.to_service_dict()

        self.assertEqual(payload["value"], str(10**18))
        self.assertEqual(payload["data"], "0x01")
        self.assertEqual(payload["operation"], 0)
        self.assertEqual(payload["gasToken"], ZERO_ADDRESS)
        self.assertEqual(payload["nonce"], 2)


class SafeTransactionHashTests(unittest.TestCase):
    def _tx(self, nonce=11) -> SafeTransaction:
        return SafeTransaction(
            to=A, value=3, data=b"\x12\x34", operation=CallType.CALL, nonce=nonce
        )

    def test_hash_matches_eip712_encoding(self) -> None:
        tx = self._tx()
        typed = {
            "types": {
                "EIP712Domain": [
                    {"name": "chainId", "type": "uint256"},
                    {"name": "verifyingContract", "type": "address"},
                ],
                "SafeTx": [
                    {"name": "to", "type": "address"},
                    {"name": "value", "type": "uint256"},
                    {"name": "data", "type": "bytes"},
                    {"name": "operation", "type": "uint8"},
                    {"name": "safeTxGas", "type": "uint256"},
                    {"name": "baseGas", "type": "uint256"},
                    {"name": "gasPrice", "type": "uint256"},
                    {"name": "gasToken", "type": "address"},
                    {"name": "refundReceiver", "type": "address"},
                    {"name": "nonce", "type": "uint256"},
                ],
            },
            "primaryType": "SafeTx",
            "domain": {"chainId": 11155111, "verifyingContract": SAFE},
            "message": {
                "to": tx.to,
                "value": tx.value,
                "data": tx.data,
                "operation": int(tx.operation),
                "safeTxGas": 0,
                "baseGas": 0,
                "gasPrice": 0,
                "gasToken": ZERO_ADDRESS,
                "refundReceiver": ZERO_ADDRESS,
                "nonce": tx.nonce,
            },
        }
        signable = encode_typed_data(full_message=typed)
        expected = keccak(b"\x19" + signable.version + signable.header + signable.body)

        self.assertEqual(safe_transaction_hash(tx, 11155111, SAFE), expected)

    def test_hash_binds_nonce_chain_and_account(self) -> None:
        base = safe_transaction_hash(self._tx(), 1, SAFE)

        self.assertEqual(base, safe_transaction_hash(self._tx(), 1, SAFE))
        self.assertEqual(len(base), 32)
        self.assertNotEqual(base, safe_transaction_hash(self._tx(nonce=12), 1, SAFE))
        self.assertNotEqual(base, safe_transaction_hash(self._tx(), 10, SAFE))
        self.assertNotEqual(base, safe_transaction_hash(self._tx(), 1, B))


class DecodingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.account = Account(address=SAFE, chain_id=1, owners=(A, B, C), threshold=2, nonce=4)

    def test_multisend_unpacks_to_items(self) -> None:
        items = [_item(A, 7, b"\xde\xad"), _item(B, 0, b"")]
        decoded = decode_multisend(encode_multisend(items))
        self.assertEqual([(i.to, i.value, i.data) for i in decoded], [(A, 7, b"\xde\xad"), (B, 0, b"")])

    def test_truncated_multisend_rejected(self) -> None:
        data = encode_multisend([_item(A, 7, b"\xde\xad")])
        (packed,) = decode(["bytes"], data[4:])
        clipped = data[:4] + encode(["bytes"], [packed[:-1]])
        with self.assertRaises(AdapterError):
            decode_multisend(clipped)

    def test_every_operation_decodes(self) -> None:
        operations = [
            SwapOwner(predecessor=SENTINEL, old_owner=A, new_owner=B),
            AddOwnerWithThreshold(new_owner=B, threshold_after=2),
            RemoveOwnerWithThreshold(predecessor=A, owner=B, threshold_after=1),
            ChangeThreshold(threshold_after=3),
        ]
        for operation in operations:
            with self.subTest(operation=operation.kind):
                self.assertEqual(decode_operation(encode_operation(operation)), operation)
        self.assertIsNone(decode_operation(b"\x12\x34\x56\x78"))
        self.assertIsNone(decode_operation(b""))

    def test_owner_operations_from_batched_plan(self) -> None:
        plan = OwnerReconciliationPlanner().plan(self.account, [A, D], 1)
        tx = items_to_safe_transaction(plan_to_items(plan), 4, MULTISEND)

        self.assertEqual(owner_operations(tx, SAFE, MULTISEND), plan.operations)

    def test_owner_operations_from_single_call(self) -> None:
        plan = OwnerReconciliationPlanner().plan(self.account, [A, B], 1)
        tx = items_to_safe_transaction(plan_to_items(plan), 4, MULTISEND)

        self.assertEqual(tx.operation, CallType.CALL)
        self.assertEqual(owner_operations(tx, SAFE, MULTISEND), plan.operations)

    def test_calls_to_other_contracts_ignored(self) -> None:
        swap = encode_operation(SwapOwner(predecessor=SENTINEL, old_owner=A, new_owner=B))
        tx = items_to_safe_transaction([_item(C, 0, swap), _item(D, 1, b"")], 4, MULTISEND)

        self.assertEqual(owner_operations(tx, SAFE, MULTISEND), ())


if __name__ == "__main__":
    unittest.main()
