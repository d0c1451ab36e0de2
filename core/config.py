"""Explicit operator configuration passed into every component."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
import pydantic

from .addresses import normalize_address
from .errors import ConfigurationError, UnsupportedChainError, ValidationError

logger = logging.getLogger(__name__)

TX_SERVICE_URLS: Dict[int, str] = {
    1: "https://safe-transaction-mainnet.safe.global",
    10: "https://safe-transaction-optimism.safe.global",
    137: "https://safe-transaction-polygon.safe.global",
    8453: "https://safe-transaction-base.safe.global",
    42161: "https://safe-transaction-arbitrum.safe.global",
    11155111: "https://safe-transaction-sepolia.safe.global",
}

# Network short names used in Safe web app links.
SAFE_APP_PREFIXES: Dict[int, str] = {
    1: "eth",
    10: "oeth",
    137: "matic",
    8453: "base",
    42161: "arb1",
    11155111: "sep",
}
SAFE_APP_URL = (
    "https://app.safe.global/transactions/tx"
    "?safe={prefix}:{address}&id=multisig_{address}_{safe_tx_hash}"
)

DEFAULT_CONFIG_ENV = "MULTISIG_OPS_CONFIG"
DEFAULT_PROPOSER_KEY_ENV = "SAFE_PROPOSER_KEY"
# MultiSendCallOnly v1.3.0, canonical deployment address.
DEFAULT_MULTISEND_ADDRESS = "0x40A2aCCbd92BCA938b02010E17A5b8929b49130D"


def coordination_base_url(chain_id: int) -> str:
    try:
        return TX_SERVICE_URLS[chain_id]
    except KeyError:
        raise UnsupportedChainError(chain_id, TX_SERVICE_URLS.keys()) from None


def safe_app_url(chain_id: int, address: str, safe_tx_hash: str) -> str:
    """Link to a proposal in the Safe web app, where owners confirm it."""

    try:
        prefix = SAFE_APP_PREFIXES[chain_id]
    except KeyError:
        raise UnsupportedChainError(chain_id, SAFE_APP_PREFIXES.keys()) from None
    return SAFE_APP_URL.format(prefix=prefix, address=address, safe_tx_hash=safe_tx_hash)


class AccountEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    safe_address: str = Field(alias="safeAddress")


class OperatorSettings(BaseModel):
    """Runtime settings for one invocation.

    Values come from built-in defaults overlaid with a JSON config file. The
    object is constructed once and handed to each component; nothing reads
    global state afterwards.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    chain_id: int = Field(default=1, alias="chainId")
    rpc_url: str = Field(default="https://eth.llamarpc.com", alias="rpcUrl")
    proposer_key_env: str = Field(default=DEFAULT_PROPOSER_KEY_ENV, alias="proposerKeyEnv")
    keystore_path: Optional[str] = Field(default=None, alias="keystorePath")
    multisend_address: str = Field(default=DEFAULT_MULTISEND_ADDRESS, alias="multisendAddress")
    request_timeout: float = Field(default=15.0, alias="requestTimeout", gt=0)
    read_retries: int = Field(default=2, alias="readRetries", ge=0, le=10)
    retry_backoff: float = Field(default=0.5, alias="retryBackoff", ge=0)
    receipt_timeout: float = Field(default=180.0, alias="receiptTimeout", gt=0)
    safes: Dict[str, AccountEntry] = Field(default_factory=dict)

    @property
    def tx_service_url(self) -> str:
        return coordination_base_url(self.chain_id)

    def available_accounts(self) -> Tuple[str, ...]:
        return tuple(sorted(self.safes))


class AccountRef(BaseModel):
    """A resolved account: where it lives and how to reach its chain."""

    model_config = ConfigDict(frozen=True)

    address: str
    chain_id: int
    rpc_url: str


def load_settings(path: Optional[str] = None) -> OperatorSettings:
    """Load settings from ``path``, the config env var, or defaults."""

    source = path or os.environ.get(DEFAULT_CONFIG_ENV)
    if not source:
        return OperatorSettings()

    config_path = Path(source)
    if not config_path.exists():
        if path:
            raise ConfigurationError(f"Config file not found: {config_path}")
        logger.debug("config file %s missing; using defaults", config_path)
        return OperatorSettings()

    try:
        raw = json.loads(config_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file is not valid JSON: {exc}") from exc
    return settings_from_dict(raw)


def settings_from_dict(raw: object) -> OperatorSettings:
    if not isinstance(raw, dict):
        raise ConfigurationError("Config must be a JSON object.")
    try:
        return OperatorSettings.model_validate(raw)
    except pydantic.ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def resolve_account(settings: OperatorSettings, name_or_address: str) -> AccountRef:
    """Map a configured account name or a raw address to an AccountRef."""

    if name_or_address.startswith("0x") and len(name_or_address) == 42:
        try:
            address = normalize_address(name_or_address)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
    else:
        entry = settings.safes.get(name_or_address)
        if entry is None:
            available = ", ".join(settings.available_accounts()) or "none"
            raise ConfigurationError(
                f"Safe '{name_or_address}' not found. Available: {available}"
            )
        try:
            address = normalize_address(entry.safe_address)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Safe '{name_or_address}' has an invalid address: {entry.safe_address}"
            ) from exc
    return AccountRef(address=address, chain_id=settings.chain_id, rpc_url=settings.rpc_url)
