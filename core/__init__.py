from .addresses import SENTINEL, ZERO_ADDRESS, normalize_address, same_address
from .config import AccountRef, OperatorSettings, load_settings, resolve_account
from .errors import (
    ChainReadError,
    ConfigurationError,
    ExecutionRevertedError,
    InsufficientConfirmationsError,
    MultisigError,
    NetworkError,
    OperationCancelledError,
    SchemaError,
    StalePlanError,
    SubmissionError,
    UnsupportedChainError,
    ValidationError,
)
from .models import Account, TransactionItem

__all__ = [
    "Account",
    "AccountRef",
    "ChainReadError",
    "ConfigurationError",
    "ExecutionRevertedError",
    "InsufficientConfirmationsError",
    "MultisigError",
    "NetworkError",
    "OperationCancelledError",
    "OperatorSettings",
    "SENTINEL",
    "SchemaError",
    "StalePlanError",
    "SubmissionError",
    "TransactionItem",
    "UnsupportedChainError",
    "ValidationError",
    "ZERO_ADDRESS",
    "load_settings",
    "normalize_address",
    "resolve_account",
    "same_address",
]
