"""Submit fully confirmed Safe transactions on-chain."""

import logging

import requests
from eth_utils import to_hex
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from core.config import OperatorSettings
from core.errors import ExecutionRevertedError, NetworkError
from wallet_core.signer import ProposerSigner

from . import abi
from .models import SafeTransaction

logger = logging.getLogger(__name__)


class SafeExecutor:
    """Sends ``execTransaction`` from the signer's account and waits for inclusion.

    Nothing here is retried: a failed send may still have reached the mempool.
    """

    def __init__(self, web3: Web3, signer: ProposerSigner, settings: OperatorSettings) -> None:
        self._web3 = web3
        self._signer = signer
        self._settings = settings

    def exec_transaction(
        self, account_address: str, tx: SafeTransaction, signatures: bytes
    ) -> str:
        calldata = abi.encode_call(
            abi.EXEC_TRANSACTION,
            (
                tx.to,
                tx.value,
                tx.data,
                int(tx.operation),
                tx.safe_tx_gas,
                tx.base_gas,
                tx.gas_price,
                tx.gas_token,
                tx.refund_receiver,
                signatures,
            ),
        )
        eth = self._web3.eth
        try:
            transaction = {
                "from": self._signer.address,
                "to": account_address,
                "value": 0,
                "data": to_hex(calldata),
                "nonce": eth.get_transaction_count(self._signer.address, "pending"),
                "chainId": self._settings.chain_id,
            }
            transaction["gas"] = eth.estimate_gas(transaction)
            transaction["gasPrice"] = eth.gas_price
            raw = self._signer.sign_transaction(transaction)
            tx_hash = to_hex(eth.send_raw_transaction(raw))
        except (requests.exceptions.RequestException, Web3Exception) as exc:
            raise NetworkError(
                f"Failed to submit execTransaction for {account_address}: {exc}",
                endpoint=self._settings.rpc_url,
            ) from exc

        logger.info("execTransaction for %s sent: %s", account_address, tx_hash)
        try:
            receipt = eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._settings.receipt_timeout
            )
        except TimeExhausted as exc:
            raise NetworkError(
                f"Transaction {tx_hash} not mined within {self._settings.receipt_timeout}s; "
                "check it before resubmitting",
                endpoint=self._settings.rpc_url,
            ) from exc

        mined_hash = to_hex(receipt["transactionHash"])
        if receipt.get("status", 1) == 0:
            raise ExecutionRevertedError(mined_hash)
        return mined_hash
