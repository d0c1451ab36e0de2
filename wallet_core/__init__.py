from .keystore import EnvKeySource, FileKeyStore, KeySource, key_source_from_settings
from .signer import ETH_SIGN_V_OFFSET, ProposerSigner, require_signer

__all__ = [
    "ETH_SIGN_V_OFFSET",
    "EnvKeySource",
    "FileKeyStore",
    "KeySource",
    "ProposerSigner",
    "key_source_from_settings",
    "require_signer",
]
