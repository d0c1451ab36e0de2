"""Proposer signing surface backed by an eth-account local key."""

import logging
from typing import Dict, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_hex

from core.errors import ConfigurationError

from .keystore import KeySource

logger = logging.getLogger(__name__)

# Safe marks eth_sign signatures by adding 4 to the recovery byte.
ETH_SIGN_V_OFFSET = 4


class ProposerSigner:
    """Signs proposal digests and execution transactions with one local key."""

    def __init__(self, key_source: KeySource) -> None:
        self._account = Account.from_key(key_source.load_private_key())

    @property
    def address(self) -> str:
        return self._account.address

    def sign_proposal_hash(self, safe_tx_hash: bytes) -> str:
        """eth_sign over the 32-byte digest, returned as r || s || (v + 4)."""

        if len(safe_tx_hash) != 32:
            raise ValueError("Proposal hash must be 32 bytes.")
        signed = self._account.sign_message(encode_defunct(primitive=safe_tx_hash))
        signature = (
            signed.r.to_bytes(32, "big")
            + signed.s.to_bytes(32, "big")
            + bytes([signed.v + ETH_SIGN_V_OFFSET])
        )
        return to_hex(signature)

    def sign_transaction(self, transaction: Dict[str, object]) -> bytes:
        signed = self._account.sign_transaction(transaction)
        return bytes(signed.raw_transaction)


def require_signer(signer: Optional[ProposerSigner], purpose: str) -> ProposerSigner:
    if signer is None:
        raise ConfigurationError(f"A signer is required to {purpose}.")
    return signer
