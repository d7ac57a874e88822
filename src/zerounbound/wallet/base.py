"""Wallet provider base interface.

A wallet provider is the out-of-process signer the session talks to. The
core only relies on the behaviour described here, never on the transport:

- account queries and permission requests
- active-account change notifications
- clearing the session
- submitting transfers and originations, each returning a WalletOperation
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

if TYPE_CHECKING:
    from zerounbound.chain.rpc import TezosRpcClient

logger = logging.getLogger(__name__)

AccountCallback = Callable[[], Awaitable[Any]]


@dataclass
class Account:
    """Active account reported by the wallet."""

    address: str
    network_type: str = ""
    public_key: Optional[str] = None


@dataclass
class NetworkRequest:
    """Network a permission request is made for."""

    type: str
    rpc_url: str = ""


@dataclass
class WalletOptions:
    """Options a wallet client is created with."""

    name: str
    preferred_network: str
    matrix_nodes: list[str] = field(default_factory=list)  # empty = no P2P discovery
    color_mode: str = "dark"

    @property
    def p2p_enabled(self) -> bool:
        return bool(self.matrix_nodes)


@dataclass
class ContractHandle:
    """Deployed contract reference."""

    address: str
    script: Optional[dict] = None


class WalletOperation(ABC):
    """Handle to an operation submitted through the wallet."""

    op_hash: str = ""
    contract_address: Optional[str] = None
    results: list[dict]

    @abstractmethod
    async def confirmation(self, confirmations: int = 1) -> Any:
        """Wait until the operation has the given confirmation depth."""
        raise NotImplementedError()

    @abstractmethod
    async def contract(self) -> Optional[ContractHandle]:
        """Resolve the originated contract, if this is an origination."""
        raise NotImplementedError()


class WalletProvider(ABC):
    """Abstract base class for wallet providers."""

    def __init__(self, options: WalletOptions):
        self.options = options
        self.rpc: Optional["TezosRpcClient"] = None
        self._subscribers: list[AccountCallback] = []
        self._pending: set[asyncio.Future] = set()

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        raise NotImplementedError()

    @abstractmethod
    async def get_active_account(self) -> Optional[Account]:
        """Get the currently authorized account, if any."""
        raise NotImplementedError()

    @abstractmethod
    async def request_permissions(self, network: NetworkRequest) -> Account:
        """Ask the user to authorize this application.

        Suspends until the user answers in the wallet. There is no way to
        cancel from this side.

        Raises:
            SignatureRejected: If the user declines
        """
        raise NotImplementedError()

    @abstractmethod
    async def clear_active_account(self) -> None:
        """Forget the active account."""
        raise NotImplementedError()

    @abstractmethod
    async def transfer(self, to: str, amount_mutez: int) -> WalletOperation:
        """Submit a transfer for signing."""
        raise NotImplementedError()

    @abstractmethod
    async def originate(self, code: Any, storage: dict) -> WalletOperation:
        """Submit a contract origination for signing."""
        raise NotImplementedError()

    async def send_metrics(self, payload: dict) -> None:
        """Report telemetry to the wallet vendor."""
        logger.debug(f"{self.name} metrics: {payload}")

    async def update_metrics_storage(self) -> None:
        """Persist telemetry state."""

    def bind_chain(self, rpc: "TezosRpcClient") -> None:
        """Attach the chain client used to track submitted operations."""
        self.rpc = rpc

    def subscribe_active_account(self, callback: AccountCallback) -> None:
        """Register a coroutine function to call when the active account changes."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def _emit_active_account_set(self) -> None:
        """Schedule every subscriber, the way the wallet event bus delivers events.

        Subscribers run as separate tasks and may overlap with the call that
        changed the account.
        """
        for callback in list(self._subscribers):
            task = asyncio.ensure_future(self._run_subscriber(callback))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _run_subscriber(self, callback: AccountCallback) -> None:
        try:
            await callback()
        except Exception as e:
            logger.error(f"Active account subscriber error: {e}")

    async def wait_idle(self) -> None:
        """Wait for scheduled account-change notifications to finish."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
