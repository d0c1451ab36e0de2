"""Sources for the proposer's private key."""

import json
import os
from pathlib import Path
from typing import Optional, Protocol

from eth_account import Account
from eth_utils import to_bytes

from core.config import OperatorSettings
from core.errors import ConfigurationError


class KeySource(Protocol):
    def load_private_key(self) -> bytes:
        ...


class EnvKeySource:
    """Reads a hex private key from an environment variable."""

    def __init__(self, variable: str) -> None:
        self._variable = variable

    def load_private_key(self) -> bytes:
        raw = os.environ.get(self._variable)
        if not raw:
            raise ConfigurationError(
                f"Proposer key not found. Set {self._variable} environment variable."
            )
        return _parse_hex_key(raw.strip(), self._variable)


class FileKeyStore:
    """Encrypted JSON keystore (Web3 Secret Storage) unlocked with a passphrase."""

    def __init__(self, path: Path, passphrase: str) -> None:
        self._path = path
        self._passphrase = passphrase

    def load_private_key(self) -> bytes:
        if not self._path.exists():
            raise ConfigurationError(f"Keystore file not found: {self._path}")
        try:
            keyfile = json.loads(self._path.read_text())
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Keystore file is not valid JSON: {self._path}") from exc
        try:
            return bytes(Account.decrypt(keyfile, self._passphrase))
        except ValueError as exc:
            raise ConfigurationError(f"Could not unlock keystore {self._path}: {exc}") from exc


def key_source_from_settings(
    settings: OperatorSettings, passphrase: Optional[str] = None
) -> KeySource:
    if settings.keystore_path:
        if passphrase is None:
            raise ConfigurationError("Keystore configured but no passphrase supplied.")
        return FileKeyStore(Path(settings.keystore_path), passphrase)
    return EnvKeySource(settings.proposer_key_env)


def _parse_hex_key(raw: str, origin: str) -> bytes:
    candidate = raw if raw.startswith("0x") else "0x" + raw
    try:
        key = to_bytes(hexstr=candidate)
    except ValueError as exc:
        raise ConfigurationError(f"Private key in {origin} is not valid hex.") from exc
    if len(key) != 32:
        raise ConfigurationError(f"Private key in {origin} must be 32 bytes.")
    return key
