"""Read-only account state from the chain RPC."""

import logging
import threading
from typing import Dict, Iterable, Optional, Tuple

import requests
from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address, to_hex
from web3 import Web3
from web3.exceptions import Web3Exception

from core.addresses import normalize_address
from core.config import OperatorSettings
from core.errors import ChainReadError, MultisigError, SchemaError, ValidationError
from core.models import Account
from core.retry import retry_call

from . import abi

logger = logging.getLogger(__name__)

_TRANSIENT = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


def build_web3(settings: OperatorSettings) -> Web3:
    provider = Web3.HTTPProvider(
        settings.rpc_url, request_kwargs={"timeout": settings.request_timeout}
    )
    return Web3(provider)


class AccountStateReader:
    """Fetches owners, threshold and nonce for an account. Never writes."""

    def __init__(self, web3: Web3, settings: OperatorSettings) -> None:
        self._web3 = web3
        self._settings = settings

    def read(self, address: str, cancel: Optional[threading.Event] = None) -> Account:
        try:
            account_address = normalize_address(address)
        except ValidationError as exc:
            raise ChainReadError(str(exc)) from exc

        code = self._rpc(
            lambda: self._web3.eth.get_code(account_address),
            f"eth_getCode {account_address}",
            cancel,
        )
        if not code:
            raise ChainReadError(
                f"No contract deployed at {account_address}", endpoint=self._settings.rpc_url
            )

        owners = self._call(account_address, abi.GET_OWNERS, cancel)
        threshold = self._call(account_address, abi.GET_THRESHOLD, cancel)
        nonce = self._call(account_address, abi.NONCE, cancel)

        account = Account(
            address=account_address,
            chain_id=self._settings.chain_id,
            owners=tuple(to_checksum_address(owner) for owner in owners),
            threshold=int(threshold),
            nonce=int(nonce),
        )
        logger.debug(
            "read %s: %d owners, threshold %d, nonce %d",
            account.address,
            len(account.owners),
            account.threshold,
            account.nonce,
        )
        return account

    def read_many(
        self, addresses: Iterable[str]
    ) -> Tuple[Dict[str, Account], Dict[str, MultisigError]]:
        """Read several accounts; a failure for one does not abort the others."""

        accounts: Dict[str, Account] = {}
        failures: Dict[str, MultisigError] = {}
        for address in addresses:
            try:
                accounts[address] = self.read(address)
            except (ChainReadError, SchemaError) as exc:
                logger.warning("skipping %s: %s", address, exc)
                failures[address] = exc
        return accounts, failures

    def _call(self, address: str, function: tuple, cancel: Optional[threading.Event]):
        signature, output_type = function
        request = {"to": address, "data": to_hex(abi.selector(signature))}
        raw = self._rpc(
            lambda: self._web3.eth.call(request),
            f"{signature} on {address}",
            cancel,
        )
        try:
            (value,) = decode([output_type], bytes(raw))
        except DecodingError as exc:
            raise SchemaError(
                f"Unexpected return data for {signature} on {address}", payload=to_hex(raw)
            ) from exc
        return value

    def _rpc(self, fn, description: str, cancel: Optional[threading.Event]):
        try:
            return retry_call(
                fn,
                retries=self._settings.read_retries,
                base=self._settings.retry_backoff,
                exceptions=_TRANSIENT,
                cancel=cancel,
                description=description,
            )
        except requests.exceptions.RequestException as exc:
            raise ChainReadError(
                f"{description} failed: {exc}", endpoint=self._settings.rpc_url
            ) from exc
        except Web3Exception as exc:
            raise ChainReadError(
                f"{description} reverted: {exc}", endpoint=self._settings.rpc_url
            ) from exc
