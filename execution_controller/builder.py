"""Proposal construction: descriptor, canonical hash, signature, submission."""

import logging
from typing import Optional, Sequence

from eth_utils import to_hex

from core.addresses import same_address
from core.config import OperatorSettings
from core.errors import ValidationError
from core.models import Account, TransactionItem
from coordination.service import CoordinationServiceClient
from execution_adapter.ethereum.adapter import items_to_safe_transaction, safe_transaction_hash
from wallet_core.signer import ProposerSigner, require_signer

from .modes import Proposal

logger = logging.getLogger(__name__)


class ProposalBuilder:
    """Turns transaction items into a signed proposal on the coordination service."""

    def __init__(
        self,
        service: CoordinationServiceClient,
        signer: Optional[ProposerSigner],
        settings: OperatorSettings,
    ) -> None:
        self._service = service
        self._signer = signer
        self._settings = settings

    def prepare(
        self,
        account: Account,
        items: Sequence[TransactionItem],
        explicit_nonce: Optional[int] = None,
    ) -> Proposal:
        """Hash the descriptor without signing or submitting anything."""

        items = tuple(items)
        if not items:
            raise ValidationError("No transactions to propose.", offending=items)
        nonce = _resolve_nonce(account, explicit_nonce)
        transaction = items_to_safe_transaction(
            items, nonce, self._settings.multisend_address
        )
        digest = safe_transaction_hash(transaction, account.chain_id, account.address)
        return Proposal(
            proposal_hash=to_hex(digest),
            account_address=account.address,
            chain_id=account.chain_id,
            items=items,
            transaction=transaction,
        )

    def build(
        self,
        account: Account,
        items: Sequence[TransactionItem],
        explicit_nonce: Optional[int] = None,
    ) -> Proposal:
        signer = require_signer(self._signer, "propose transactions")
        unsigned = self.prepare(account, items, explicit_nonce)
        signature = signer.sign_proposal_hash(bytes.fromhex(unsigned.proposal_hash[2:]))
        proposal = Proposal(
            proposal_hash=unsigned.proposal_hash,
            account_address=unsigned.account_address,
            chain_id=unsigned.chain_id,
            items=unsigned.items,
            transaction=unsigned.transaction,
            sender=signer.address,
            signature=signature,
            # the service records an owner-proposer's signature as its first confirmation
            confirmed_owners=tuple(
                owner for owner in account.owners if same_address(owner, signer.address)
            ),
        )
        self._service.submit_proposal(account.address, proposal.service_payload())
        logger.info(
            "proposed %s on %s at nonce %d (%d item(s))",
            proposal.proposal_hash,
            account.address,
            proposal.nonce,
            len(proposal.items),
        )
        return proposal


def _resolve_nonce(account: Account, explicit_nonce: Optional[int]) -> int:
    if explicit_nonce is None:
        return account.nonce
    if isinstance(explicit_nonce, bool) or not isinstance(explicit_nonce, int):
        raise ValidationError(f"Nonce must be an integer: {explicit_nonce!r}", offending=explicit_nonce)
    if explicit_nonce < account.nonce:
        raise ValidationError(
            f"Nonce {explicit_nonce} already used; account nonce is {account.nonce}.",
            offending=explicit_nonce,
        )
    return explicit_nonce
