"""Unit tests for proposer key loading and signing."""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_bytes

from core.config import OperatorSettings
from core.errors import ConfigurationError

from wallet_core.keystore import EnvKeySource, FileKeyStore, key_source_from_settings
from wallet_core.signer import ETH_SIGN_V_OFFSET, ProposerSigner, require_signer

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


class StaticKeySource:
    def __init__(self, key: str) -> None:
        self._key = to_bytes(hexstr=key)

    def load_private_key(self) -> bytes:
        return self._key


class WalletCoreTests(unittest.TestCase):
    def test_env_key_source_missing_variable(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigurationError) as ctx:
                EnvKeySource("SAFE_PROPOSER_KEY").load_private_key()
        self.assertIn("SAFE_PROPOSER_KEY", str(ctx.exception))

    def test_env_key_source_accepts_unprefixed_hex(self) -> None:
        with mock.patch.dict(os.environ, {"MY_KEY": PRIVATE_KEY[2:]}, clear=True):
            key = EnvKeySource("MY_KEY").load_private_key()
        self.assertEqual(key, to_bytes(hexstr=PRIVATE_KEY))

    def test_env_key_source_rejects_short_key(self) -> None:
        with mock.patch.dict(os.environ, {"MY_KEY": "0x1234"}, clear=True):
            with self.assertRaises(ConfigurationError):
                EnvKeySource("MY_KEY").load_private_key()

    def test_file_keystore_round_trip_and_wrong_passphrase(self) -> None:
        keyfile = Account.encrypt(PRIVATE_KEY, "pass", kdf="pbkdf2", iterations=2)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "proposer.json"
            path.write_text(json.dumps(keyfile))

            key = FileKeyStore(path, "pass").load_private_key()
            self.assertEqual(key, to_bytes(hexstr=PRIVATE_KEY))

            with self.assertRaises(ConfigurationError):
                FileKeyStore(path, "wrong").load_private_key()

        with self.assertRaises(ConfigurationError):
            FileKeyStore(Path("/nonexistent/keystore.json"), "pass").load_private_key()

    def test_key_source_from_settings(self) -> None:
        settings = OperatorSettings(proposerKeyEnv="OTHER_KEY")
        self.assertIsInstance(key_source_from_settings(settings), EnvKeySource)

        with_keystore = OperatorSettings(keystorePath="/tmp/keystore.json")
        with self.assertRaises(ConfigurationError):
            key_source_from_settings(with_keystore)
        self.assertIsInstance(key_source_from_settings(with_keystore, "pw"), FileKeyStore)

    def test_proposal_signature_uses_eth_sign_offset(self) -> None:
        signer = ProposerSigner(StaticKeySource(PRIVATE_KEY))
        digest = keccak(text="proposal")

        signature = to_bytes(hexstr=signer.sign_proposal_hash(digest))

        self.assertEqual(len(signature), 65)
        self.assertIn(signature[64], (27 + ETH_SIGN_V_OFFSET, 28 + ETH_SIGN_V_OFFSET))
        recovered = Account.recover_message(
            encode_defunct(primitive=digest),
            vrs=(
                signature[64] - ETH_SIGN_V_OFFSET,
                int.from_bytes(signature[:32], "big"),
                int.from_bytes(signature[32:64], "big"),
            ),
        )
        self.assertEqual(recovered, signer.address)

    def test_signing_is_deterministic(self) -> None:
        signer = ProposerSigner(StaticKeySource(PRIVATE_KEY))
        digest = keccak(text="proposal")
        self.assertEqual(signer.sign_proposal_hash(digest), signer.sign_proposal_hash(digest))
        with self.assertRaises(ValueError):
            signer.sign_proposal_hash(b"short")

    def test_require_signer(self) -> None:
        with self.assertRaises(ConfigurationError):
            require_signer(None, "propose")
        signer = ProposerSigner(StaticKeySource(PRIVATE_KEY))
        self.assertIs(require_signer(signer, "propose"), signer)


if __name__ == "__main__":
    unittest.main()
