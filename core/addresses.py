"""Address normalisation helpers."""

from typing import Iterable, Tuple

from eth_utils import is_address, to_checksum_address

from .errors import ValidationError

SENTINEL = "0x0000000000000000000000000000000000000001"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: str) -> str:
    """Return the checksummed form of ``value`` or raise ValidationError."""

    candidate = value.strip() if isinstance(value, str) else value
    if not isinstance(candidate, str) or not is_address(candidate):
        raise ValidationError(f"Invalid address: {value!r}", offending=value)
    return to_checksum_address(candidate)


def same_address(left: str, right: str) -> bool:
    return left.lower() == right.lower()


def address_key(value: str) -> str:
    return value.lower()


def find_duplicates(addresses: Iterable[str]) -> Tuple[str, ...]:
    seen = set()
    duplicates = []
    for address in addresses:
        key = address_key(address)
        if key in seen and address not in duplicates:
            duplicates.append(address)
        seen.add(key)
    return tuple(duplicates)
