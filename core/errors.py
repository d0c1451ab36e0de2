"""Error taxonomy shared by every multisig component."""

from typing import Optional, Sequence, Tuple


class MultisigError(Exception):
    """Base class for all errors raised by the multisig tooling."""


class ConfigurationError(MultisigError, ValueError):
    """Raised when configuration is missing or invalid. No network call was made."""


class UnsupportedChainError(ConfigurationError):
    """Raised when no coordination service is known for a chain id."""

    def __init__(self, chain_id: int, supported: Sequence[int]) -> None:
        supported_list = ", ".join(str(item) for item in sorted(supported))
        super().__init__(f"Unsupported chain ID: {chain_id}. Supported: {supported_list}")
        self.chain_id = chain_id
        self.supported = tuple(sorted(supported))


class ValidationError(MultisigError, ValueError):
    """Raised when caller input violates a hard rule. Carries the offending value."""

    def __init__(self, message: str, offending: object = None) -> None:
        super().__init__(message)
        self.offending = offending


class NetworkError(MultisigError, RuntimeError):
    """Raised when a remote endpoint is unreachable or answers with a failure."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        details = [message]
        if endpoint:
            details.append(f"endpoint={endpoint}")
        if status is not None:
            details.append(f"status={status}")
        if body:
            details.append(f"body={body}")
        super().__init__(" ".join(details))
        self.endpoint = endpoint
        self.status = status
        self.body = body


class ChainReadError(NetworkError):
    """Raised when an on-chain read fails or the account does not exist."""


class SubmissionError(NetworkError):
    """Raised when the coordination service rejects a proposal."""


class SchemaError(MultisigError, ValueError):
    """Raised when a remote response does not have the expected shape."""

    def __init__(self, message: str, payload: object = None) -> None:
        super().__init__(message)
        self.payload = payload


class InsufficientConfirmationsError(MultisigError, RuntimeError):
    """Raised when execution is requested before the threshold is met."""

    def __init__(
        self, confirmed_count: int, threshold: int, pending_owners: Tuple[str, ...]
    ) -> None:
        super().__init__(f"Not enough signatures ({confirmed_count}/{threshold})")
        self.confirmed_count = confirmed_count
        self.threshold = threshold
        self.pending_owners = pending_owners


class StalePlanError(MultisigError, RuntimeError):
    """Raised when on-chain state no longer matches what a plan or proposal expects."""


class ExecutionRevertedError(MultisigError, RuntimeError):
    """Raised when an execution transaction was mined but reverted."""

    def __init__(self, transaction_hash: str) -> None:
        super().__init__(f"Execution reverted on-chain: {transaction_hash}")
        self.transaction_hash = transaction_hash


class OperationCancelledError(MultisigError, RuntimeError):
    """Raised when a caller-supplied cancellation event is set during a wait."""
