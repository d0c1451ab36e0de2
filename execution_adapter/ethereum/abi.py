"""Function signatures and calldata encoding for the Safe contracts."""

from typing import Sequence

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

SWAP_OWNER = ("swapOwner(address,address,address)", ("address", "address", "address"))
ADD_OWNER_WITH_THRESHOLD = ("addOwnerWithThreshold(address,uint256)", ("address", "uint256"))
REMOVE_OWNER = ("removeOwner(address,address,uint256)", ("address", "address", "uint256"))
CHANGE_THRESHOLD = ("changeThreshold(uint256)", ("uint256",))
MULTI_SEND = ("multiSend(bytes)", ("bytes",))
EXEC_TRANSACTION = (
    "execTransaction(address,uint256,bytes,uint8,uint256,uint256,uint256,address,address,bytes)",
    (
        "address",
        "uint256",
        "bytes",
        "uint8",
        "uint256",
        "uint256",
        "uint256",
        "address",
        "address",
        "bytes",
    ),
)

GET_OWNERS = ("getOwners()", "address[]")
GET_THRESHOLD = ("getThreshold()", "uint256")
NONCE = ("nonce()", "uint256")


def selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


def encode_call(function: tuple, args: Sequence[object]) -> bytes:
    signature, types = function
    return selector(signature) + encode(list(types), list(args))
