"""Dry-run wallet for development and tests (no real signing)."""

import logging
import secrets
from typing import Any, Optional

from zerounbound.errors import SignatureRejected
from zerounbound.wallet.base import (
    Account,
    ContractHandle,
    NetworkRequest,
    WalletOperation,
    WalletOptions,
    WalletProvider,
)

logger = logging.getLogger(__name__)

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

DEFAULT_ADDRESS = "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb"


def fake_address(prefix: str) -> str:
    """Generate a random address-shaped string (prefix + 33 base58 chars)."""
    return prefix + "".join(secrets.choice(BASE58_ALPHABET) for _ in range(33))


def fake_op_hash() -> str:
    """Generate a random operation-hash-shaped string."""
    return "o" + "".join(secrets.choice(BASE58_ALPHABET) for _ in range(50))


class SimulatedOperation(WalletOperation):
    """Operation that confirms instantly."""

    def __init__(
        self,
        op_hash: Optional[str] = None,
        contract_address: Optional[str] = None,
        results: Optional[list[dict]] = None,
        contract_handle: Optional[ContractHandle] = None,
    ):
        self.op_hash = op_hash or fake_op_hash()
        self.contract_address = contract_address
        self.results = results or []
        self.confirmations_awaited: list[int] = []
        self._contract = contract_handle

    async def confirmation(self, confirmations: int = 1) -> int:
        self.confirmations_awaited.append(confirmations)
        return confirmations

    async def contract(self) -> Optional[ContractHandle]:
        return self._contract


class DryRunWallet(WalletProvider):
    """Simulated wallet that approves everything unless told to reject.

    Keeps the active account in memory and records every submitted
    operation in ``submitted``.
    """

    def __init__(
        self,
        options: WalletOptions,
        address: str = DEFAULT_ADDRESS,
        network_type: Optional[str] = None,
        reject: bool = False,
    ):
        super().__init__(options)
        self.address = address
        self.network_type = network_type or options.preferred_network
        self.reject = reject
        self.active_account: Optional[Account] = None
        self.submitted: list[dict] = []
        self.metrics_sent = 0
        self.permission_requests = 0

    @property
    def name(self) -> str:
        return "dryrun"

    async def get_active_account(self) -> Optional[Account]:
        return self.active_account

    async def request_permissions(self, network: NetworkRequest) -> Account:
        self.permission_requests += 1
        if self.reject:
            raise SignatureRejected("Permission request rejected by user")

        self.active_account = Account(address=self.address, network_type=self.network_type)
        logger.info(f"[SIMULATED] Permissions granted to {self.address} on {network.type}")
        self._emit_active_account_set()
        return self.active_account

    async def clear_active_account(self) -> None:
        self.active_account = None
        self._emit_active_account_set()

    async def transfer(self, to: str, amount_mutez: int) -> WalletOperation:
        if self.reject:
            raise SignatureRejected("Transfer rejected by user")

        op = SimulatedOperation()
        self.submitted.append({"kind": "transaction", "to": to, "amount": amount_mutez, "op": op})
        logger.info(f"[SIMULATED] Transfer: {amount_mutez} mutez to {to}")
        return op

    async def originate(self, code: Any, storage: dict) -> WalletOperation:
        if self.reject:
            raise SignatureRejected("Origination rejected by user")

        address = fake_address("KT1")
        op = SimulatedOperation(contract_address=address)
        self.submitted.append({"kind": "origination", "code": code, "storage": storage, "op": op})
        logger.info(f"[SIMULATED] Origination: {address}")
        return op

    async def send_metrics(self, payload: dict) -> None:
        self.metrics_sent += 1

    async def update_metrics_storage(self) -> None:
        self.metrics_sent += 1
