"""HTTP client for the off-chain coordination (transaction) service."""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from core.config import OperatorSettings, coordination_base_url
from core.errors import NetworkError, SchemaError, SubmissionError
from core.retry import retry_call

from .models import ServiceTransaction, TransactionPage, parse_model

logger = logging.getLogger(__name__)

_RETRIABLE_STATUS = (429, 502, 503, 504)
_MAX_PAGES = 50


class _RetriableStatus(Exception):
    def __init__(self, response: requests.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class CoordinationServiceClient:
    """Reads and submits proposals. GETs are retried; the POST never is.

    The base URL is resolved from the chain id at construction, so an
    unsupported chain fails before any request is made.
    """

    def __init__(
        self, settings: OperatorSettings, session: Optional[requests.Session] = None
    ) -> None:
        self._base_url = coordination_base_url(settings.chain_id)
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update(
            {"Accept": "application/json", "User-Agent": "multisig-ops"}
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def list_pending(
        self,
        account_address: str,
        nonce_gte: int,
        cancel: Optional[threading.Event] = None,
    ) -> Tuple[ServiceTransaction, ...]:
        url: Optional[str] = f"{self._base_url}/api/v1/safes/{account_address}/multisig-transactions/"
        params: Optional[Dict[str, Any]] = {
            "executed": "false",
            "nonce__gte": nonce_gte,
            "ordering": "nonce",
        }
        results: List[ServiceTransaction] = []
        pages = 0
        while url is not None:
            pages += 1
            if pages > _MAX_PAGES:
                raise SchemaError(f"Pending list exceeds {_MAX_PAGES} pages", payload=url)
            page = parse_model(TransactionPage, self._get_json(url, params, cancel))
            results.extend(page.results)
            url, params = page.next, None
        return tuple(results)

    def get_transaction(
        self, safe_tx_hash: str, cancel: Optional[threading.Event] = None
    ) -> ServiceTransaction:
        url = f"{self._base_url}/api/v1/multisig-transactions/{safe_tx_hash}/"
        return parse_model(ServiceTransaction, self._get_json(url, None, cancel))

    def submit_proposal(self, account_address: str, payload: Mapping[str, Any]) -> None:
        url = f"{self._base_url}/api/v1/safes/{account_address}/multisig-transactions/"
        try:
            response = self._session.post(
                url, json=dict(payload), timeout=self._settings.request_timeout
            )
        except requests.exceptions.RequestException as exc:
            raise SubmissionError(
                f"Failed to propose (outcome unknown, check pending before resubmitting): {exc}",
                endpoint=url,
            ) from exc
        if not response.ok:
            raise SubmissionError(
                "Failed to propose", endpoint=url, status=response.status_code, body=response.text
            )
        logger.info(
            "proposal %s submitted for %s", payload.get("contractTransactionHash"), account_address
        )

    def _get_json(
        self,
        url: str,
        params: Optional[Mapping[str, Any]],
        cancel: Optional[threading.Event],
    ) -> Any:
        def once() -> requests.Response:
            response = self._session.get(url, params=params, timeout=self._settings.request_timeout)
            if response.status_code in _RETRIABLE_STATUS:
                raise _RetriableStatus(response)
            return response

        try:
            response = retry_call(
                once,
                retries=self._settings.read_retries,
                base=self._settings.retry_backoff,
                exceptions=(
                    requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout,
                    _RetriableStatus,
                ),
                cancel=cancel,
                description=f"GET {url}",
            )
        except _RetriableStatus as exc:
            response = exc.response
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"Request failed: {exc}", endpoint=url) from exc

        if not response.ok:
            raise NetworkError(
                "Coordination service request failed",
                endpoint=url,
                status=response.status_code,
                body=response.text[:512],
            )
        try:
            return response.json()
        except ValueError as exc:
            raise SchemaError("Non-JSON response from coordination service", payload=response.text[:256]) from exc
