"""Exception types for the wallet session and origination core.

Every failure the core surfaces to a caller is one of these. Lookups inside
``WalletSession.sync`` never raise; they degrade to safe defaults instead.
"""

from typing import Optional


class ZeroUnboundError(Exception):
    """Base class for all deploy-core errors."""


class NoReachableEndpoint(ZeroUnboundError):
    """Raised when no candidate RPC endpoint answered the liveness probe."""

    def __init__(self, network: str, tried: Optional[list[str]] = None):
        self.network = network
        self.tried = tried or []
        super().__init__(f"No reachable RPC for {network}")


class WalletNotConnected(ZeroUnboundError):
    """Raised when an operation needs an active account and there is none."""

    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


class ToolkitNotReady(ZeroUnboundError):
    """Raised when the chain toolkit has not been built yet."""

    def __init__(self, message: str = "Toolkit not ready"):
        super().__init__(message)


class InsufficientBalance(ZeroUnboundError):
    """Raised when the account balance is below the operating floor."""

    def __init__(self, message: str = "Insufficient balance"):
        super().__init__(message)


class SignatureRejected(ZeroUnboundError):
    """Raised by a wallet provider when the user declines a request."""

    def __init__(self, message: str = "Request rejected by user"):
        super().__init__(message)


class AddressNotFound(ZeroUnboundError):
    """Raised when an origination result carries no contract address."""

    def __init__(self, message: str = "Originated KT1 not found"):
        super().__init__(message)


class ChainRpcError(ZeroUnboundError):
    """Raised when the node RPC returns a non-success status."""

    def __init__(self, status_code: int, path: str, detail: str = ""):
        self.status_code = status_code
        self.path = path
        self.detail = detail
        message = f"RPC {path} failed with status {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConfirmationTimeout(ZeroUnboundError):
    """Raised when an operation is not confirmed within the polling timeout."""

    def __init__(self, op_hash: str, timeout: float):
        self.op_hash = op_hash
        self.timeout = timeout
        super().__init__(f"Operation {op_hash} not confirmed within {timeout:.0f}s")


class ContractArtifactsMissing(ZeroUnboundError):
    """Raised when contract code or views cannot be loaded."""


class WalletBridgeError(ZeroUnboundError):
    """Raised when the signer bridge answers with an unexpected status."""
