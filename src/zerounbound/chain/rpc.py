"""Tezos node RPC client.

Covers the handful of queries the session and origination flow need:
chain id, manager key, balance, head level and block operations, plus
confirmation polling for submitted operations.

RPC Docs: https://tezos.gitlab.io/active/rpc.html
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from zerounbound.errors import ChainRpcError, ConfirmationTimeout

logger = logging.getLogger(__name__)

# Blocks scanned behind the head when looking for a freshly injected operation
LOOKBACK_BLOCKS = 5


@dataclass
class Inclusion:
    """Where a confirmed operation landed."""

    op_hash: str
    level: int
    contents: list[dict] = field(default_factory=list)

    @property
    def originated_contracts(self) -> list[str]:
        """Contract addresses created by this operation."""
        addresses = []
        for content in self.contents:
            result = content.get("metadata", {}).get("operation_result", {})
            addresses.extend(result.get("originated_contracts", []))
        return addresses


class TezosRpcClient:
    """Async client for a single Tezos RPC node."""

    def __init__(
        self,
        rpc_url: str,
        polling_interval: float = 5.0,
        polling_timeout: float = 300.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize RPC client.

        Args:
            rpc_url: Node base URL
            polling_interval: Seconds between confirmation polls
            polling_timeout: Seconds before a confirmation wait gives up
            timeout: Per-request timeout
            transport: Optional httpx transport override
        """
        self.rpc_url = rpc_url.rstrip("/")
        self.polling_interval = polling_interval
        self.polling_timeout = polling_timeout
        self._client = httpx.AsyncClient(
            base_url=self.rpc_url,
            timeout=timeout,
            transport=transport,
        )

    async def _get(self, path: str) -> Any:
        response = await self._client.get(path)
        if response.status_code != 200:
            raise ChainRpcError(response.status_code, path, response.text[:200])
        return response.json()

    async def get_chain_id(self) -> str:
        """Get the chain identifier."""
        return await self._get("/chains/main/chain_id")

    async def get_manager_key(self, address: str) -> Optional[str]:
        """Get the revealed public key of an account, or None if unrevealed."""
        return await self._get(
            f"/chains/main/blocks/head/context/contracts/{address}/manager_key"
        )

    async def get_balance(self, address: str) -> int:
        """Get account balance in mutez."""
        value = await self._get(f"/chains/main/blocks/head/context/contracts/{address}/balance")
        return int(value)

    async def get_head_level(self) -> int:
        """Get the current head level."""
        header = await self._get("/chains/main/blocks/head/header")
        return int(header.get("level", 0))

    async def get_block_operations(self, level: int) -> list[list[dict]]:
        """Get all operations of a block, grouped by validation pass."""
        return await self._get(f"/chains/main/blocks/{level}/operations")

    async def get_contract(self, address: str) -> dict:
        """Get a contract's raw state."""
        return await self._get(f"/chains/main/blocks/head/context/contracts/{address}")

    async def find_operation(self, level: int, op_hash: str) -> Optional[list[dict]]:
        """Look for an operation in a block and return its contents."""
        for validation_pass in await self.get_block_operations(level):
            for op in validation_pass:
                if op.get("hash") == op_hash:
                    return op.get("contents", [])
        return None

    async def wait_for_confirmation(
        self,
        op_hash: str,
        confirmations: int = 1,
        since_level: Optional[int] = None,
    ) -> Inclusion:
        """Poll the chain until an operation reaches the confirmation depth.

        An operation included at level L has N confirmations once the head is
        at L + N - 1.

        Args:
            op_hash: Operation hash to track
            confirmations: Required confirmation depth
            since_level: First level to scan (default: a few blocks behind head)

        Raises:
            ConfirmationTimeout: If the depth is not reached within polling_timeout
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.polling_timeout

        head = await self.get_head_level()
        next_level = since_level if since_level is not None else max(0, head - LOOKBACK_BLOCKS)
        inclusion: Optional[Inclusion] = None

        while True:
            while inclusion is None and next_level <= head:
                contents = await self.find_operation(next_level, op_hash)
                if contents is not None:
                    inclusion = Inclusion(op_hash=op_hash, level=next_level, contents=contents)
                    logger.info(f"Operation {op_hash} included at level {next_level}")
                next_level += 1

            if inclusion and head >= inclusion.level + confirmations - 1:
                return inclusion

            if loop.time() >= deadline:
                logger.warning(f"Gave up waiting for {op_hash} after {self.polling_timeout}s")
                raise ConfirmationTimeout(op_hash, self.polling_timeout)

            await asyncio.sleep(self.polling_interval)
            head = await self.get_head_level()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
