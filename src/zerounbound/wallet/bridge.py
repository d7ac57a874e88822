"""Wallet provider that relays requests to a local signer bridge.

The bridge is a companion process that shows requests to the user in their
wallet and answers once they approve or decline. Permission and signing
requests therefore have no client-side timeout.

Bridge endpoints:
- GET    /v1/account       active account (204 when none)
- POST   /v1/permissions   ask the user to connect
- DELETE /v1/account       forget the session
- POST   /v1/operations    submit an operation, returns {"opHash": ...}
- POST   /v1/metrics       vendor telemetry

HTTP 403 from the bridge means the user declined.
"""

import logging
from typing import Any, Optional

import httpx

from zerounbound.chain.operations import ChainOperation
from zerounbound.errors import SignatureRejected, ToolkitNotReady, WalletBridgeError
from zerounbound.wallet.base import (
    Account,
    NetworkRequest,
    WalletOperation,
    WalletOptions,
    WalletProvider,
)

logger = logging.getLogger(__name__)


class BridgeWallet(WalletProvider):
    """Wallet provider speaking HTTP to a signer bridge."""

    def __init__(
        self,
        options: WalletOptions,
        base_url: str = "http://127.0.0.1:7780",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize bridge wallet.

        Args:
            options: Wallet client options
            base_url: Bridge base URL
            transport: Optional httpx transport override
        """
        super().__init__(options)
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            # user approval has no deadline
            timeout=httpx.Timeout(10.0, read=None),
            transport=transport,
            headers={"X-App-Name": options.name},
        )

    @property
    def name(self) -> str:
        return "bridge"

    @staticmethod
    def _parse_account(data: dict) -> Account:
        return Account(
            address=data.get("address", ""),
            network_type=(data.get("network") or {}).get("type", ""),
            public_key=data.get("publicKey"),
        )

    @staticmethod
    def _check(response: httpx.Response, action: str) -> None:
        if response.status_code == 403:
            detail = response.json().get("error", "") if response.content else ""
            raise SignatureRejected(detail or f"{action} rejected by user")
        if response.status_code >= 400:
            raise WalletBridgeError(f"{action} failed with status {response.status_code}")

    async def get_active_account(self) -> Optional[Account]:
        response = await self._client.get("/v1/account")
        if response.status_code in (204, 404):
            return None
        self._check(response, "Account query")
        return self._parse_account(response.json())

    async def request_permissions(self, network: NetworkRequest) -> Account:
        response = await self._client.post(
            "/v1/permissions",
            json={
                "appName": self.options.name,
                "network": {"type": network.type, "rpcUrl": network.rpc_url},
                "matrixNodes": self.options.matrix_nodes,
                "colorMode": self.options.color_mode,
            },
        )
        self._check(response, "Permission request")
        account = self._parse_account(response.json())
        self._emit_active_account_set()
        return account

    async def clear_active_account(self) -> None:
        response = await self._client.delete("/v1/account")
        self._check(response, "Clear session")
        self._emit_active_account_set()

    async def _submit(self, payload: dict) -> WalletOperation:
        if self.rpc is None:
            raise ToolkitNotReady("Wallet is not bound to a chain client")

        response = await self._client.post("/v1/operations", json=payload)
        self._check(response, "Operation")
        op_hash = response.json().get("opHash", "")
        if not op_hash:
            raise WalletBridgeError("Bridge returned no operation hash")

        logger.info(f"Operation {payload['kind']} injected: {op_hash}")
        return ChainOperation(op_hash, self.rpc)

    async def transfer(self, to: str, amount_mutez: int) -> WalletOperation:
        return await self._submit(
            {"kind": "transaction", "destination": to, "amount": str(amount_mutez)}
        )

    async def originate(self, code: Any, storage: dict) -> WalletOperation:
        return await self._submit({"kind": "origination", "code": code, "storage": storage})

    async def send_metrics(self, payload: dict) -> None:
        await self._client.post("/v1/metrics", json=payload)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
