"""Wallet session state machine.

States:
- disconnected: no active account
- connected: active account on the configured network
- connected_mismatched: active account on another network

``sync`` is the single place state is computed. It always rebuilds the
whole snapshot from the wallet and the chain, so the account-change
notification and manual connect/disconnect calls can overlap freely: the
last snapshot written wins and every snapshot is self-consistent.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

import httpx

from zerounbound.chain.endpoints import PROBE_TIMEOUT, select_endpoint
from zerounbound.chain.toolkit import Toolkit, WalletFactory, build_toolkit
from zerounbound.config import Settings, get_settings
from zerounbound.errors import InsufficientBalance, ToolkitNotReady, WalletNotConnected
from zerounbound.networks import NetworkProfile
from zerounbound.wallet.base import NetworkRequest

logger = logging.getLogger(__name__)

BALANCE_FLOOR = 500_000  # mutez, 0.5 tez
REVEAL_AMOUNT = 1  # mutez, self-transfer that publishes the key


class SessionStatus(str, Enum):
    """Connection status derived from a session snapshot."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CONNECTED_MISMATCHED = "connected_mismatched"


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of the wallet session."""

    address: str = ""
    connected: bool = False
    network_mismatch: bool = False
    needs_reveal: bool = False
    needs_funds: bool = False

    @property
    def status(self) -> SessionStatus:
        if not self.connected:
            return SessionStatus.DISCONNECTED
        if self.network_mismatch:
            return SessionStatus.CONNECTED_MISMATCHED
        return SessionStatus.CONNECTED


class WalletSession:
    """Owns the toolkit and the session state for one network.

    Example:
        session = WalletSession(get_default_network())
        await session.initialize()
        await session.connect()
        if session.state.needs_reveal:
            await session.reveal_account()
    """

    def __init__(
        self,
        profile: NetworkProfile,
        settings: Optional[Settings] = None,
        wallet_factory: Optional[WalletFactory] = None,
        probe_client: Optional[httpx.AsyncClient] = None,
        log: Optional[logging.Logger] = None,
    ):
        """Initialize the session.

        Args:
            profile: Network profile (fixed for the lifetime of the session)
            settings: Settings override
            wallet_factory: Wallet client factory handed to the toolkit binder
            probe_client: HTTP client for endpoint probing
            log: Logger to report through (default: module logger)
        """
        self.profile = profile
        self.settings = settings or get_settings()
        self.balance_floor = self.settings.balance_floor_mutez or BALANCE_FLOOR
        self._wallet_factory = wallet_factory
        self._probe_client = probe_client
        self.log = log or logger

        self._toolkit: Optional[Toolkit] = None
        self._state = SessionState()
        self._restoring = False

    # ======================
    # Read-only accessors
    # ======================

    @property
    def network(self) -> str:
        return self.profile.identifier

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def toolkit(self) -> Optional[Toolkit]:
        return self._toolkit

    @property
    def rpc_url(self) -> str:
        return self._toolkit.rpc_url if self._toolkit else ""

    @property
    def is_ready(self) -> bool:
        return self._toolkit is not None

    @property
    def is_restoring(self) -> bool:
        return self._restoring

    def _require_toolkit(self) -> Toolkit:
        if self._toolkit is None:
            raise ToolkitNotReady()
        return self._toolkit

    # ======================
    # Transitions
    # ======================

    async def initialize(self) -> SessionState:
        """Pick an endpoint, build the toolkit and silently restore a session.

        No permission prompt is shown here: an existing wallet session is
        picked up, otherwise the session stays disconnected.

        Raises:
            NoReachableEndpoint: If no RPC candidate answered
        """
        if self._toolkit is not None:
            return self._state

        self._restoring = True
        try:
            rpc_url = await select_endpoint(
                self.profile,
                timeout=self.settings.probe_timeout or PROBE_TIMEOUT,
                client=self._probe_client,
            )
            toolkit = build_toolkit(
                rpc_url,
                self.network,
                wallet_factory=self._wallet_factory,
                settings=self.settings,
            )
            self._toolkit = toolkit
            toolkit.wallet.subscribe_active_account(self.sync)

            try:
                account = await toolkit.wallet.get_active_account()
            except Exception as e:
                self.log.warning(f"Session restore query failed: {e}")
                account = None

            if account:
                self.log.info(f"Restoring session for {account.address}")
                await self.sync()
        finally:
            self._restoring = False

        return self._state

    async def connect(self) -> SessionState:
        """Connect the wallet, prompting only when there is no session yet.

        The permission request waits for the user with no deadline. A
        rejection is raised to the caller unchanged.
        """
        toolkit = self._require_toolkit()

        try:
            account = await toolkit.wallet.get_active_account()
        except Exception as e:
            self.log.warning(f"Active account query failed: {e}")
            account = None

        if not account:
            self.log.info(f"Requesting wallet permissions on {self.network}")
            await toolkit.wallet.request_permissions(
                NetworkRequest(type=self.network, rpc_url=toolkit.rpc_url)
            )

        return await self.sync()

    async def disconnect(self) -> SessionState:
        """Clear the wallet session and resync."""
        if self._toolkit is None:
            return self._state

        try:
            await self._toolkit.wallet.clear_active_account()
        except Exception as e:
            self.log.warning(f"Clearing active account failed: {e}")

        return await self.sync()

    async def sync(self) -> SessionState:
        """Recompute the whole session snapshot from the wallet and the chain.

        Never raises: failed lookups fall back to "not revealed" and
        "needs funds".
        """
        if self._toolkit is None:
            self._state = SessionState()
            return self._state

        toolkit = self._toolkit
        try:
            account = await toolkit.wallet.get_active_account()
        except Exception as e:
            self.log.warning(f"Active account query failed during sync: {e}")
            account = None

        if not account:
            self._state = SessionState()
            return self._state

        address = account.address
        mismatch = (account.network_type or "").lower() != self.network

        manager_key, balance = await asyncio.gather(
            self._lookup_manager_key(toolkit, address),
            self._lookup_balance(toolkit, address),
        )

        self._state = SessionState(
            address=address,
            connected=True,
            network_mismatch=mismatch,
            needs_reveal=not manager_key,
            needs_funds=balance < self.balance_floor,
        )
        self.log.debug(f"Session synced: {self._state}")
        return self._state

    async def reveal_account(self) -> Optional[str]:
        """Publish the account's public key with a 1 mutez self-transfer.

        Returns:
            Operation hash, or None if the key was already revealed

        Raises:
            WalletNotConnected: If there is no active account
            InsufficientBalance: If the last sync found the balance too low
        """
        address = self._state.address
        if not address:
            raise WalletNotConnected()
        if self._state.needs_funds:
            raise InsufficientBalance()

        toolkit = self._require_toolkit()

        if await self._lookup_manager_key(toolkit, address):
            self.log.info(f"{address} already revealed")
            self._state = replace(self._state, needs_reveal=False)
            return None

        op = await toolkit.wallet.transfer(to=address, amount_mutez=REVEAL_AMOUNT)
        await op.confirmation()

        self._state = replace(self._state, needs_reveal=False)
        self.log.info(f"Revealed {address} in {op.op_hash}")
        return op.op_hash

    async def close(self) -> None:
        """Release the toolkit's network resources."""
        if self._toolkit is not None:
            await self._toolkit.aclose()

    # ======================
    # Tolerant lookups
    # ======================

    async def _lookup_manager_key(self, toolkit: Toolkit, address: str) -> Optional[str]:
        try:
            return await toolkit.rpc.get_manager_key(address)
        except Exception as e:
            self.log.debug(f"Manager key lookup failed for {address}: {e}")
            return None

    async def _lookup_balance(self, toolkit: Toolkit, address: str) -> int:
        try:
            return await toolkit.rpc.get_balance(address)
        except Exception as e:
            self.log.debug(f"Balance lookup failed for {address}: {e}")
            return 0
