"""Operation handle backed by the chain RPC client."""

import logging
from typing import Optional

from zerounbound.chain.rpc import Inclusion, TezosRpcClient
from zerounbound.wallet.base import ContractHandle, WalletOperation

logger = logging.getLogger(__name__)


class ChainOperation(WalletOperation):
    """Operation injected by a wallet and tracked on chain by hash.

    ``results`` and ``contract()`` are only populated after the first
    successful ``confirmation()``.
    """

    def __init__(self, op_hash: str, rpc: TezosRpcClient):
        self.op_hash = op_hash
        self.contract_address: Optional[str] = None
        self.results: list[dict] = []
        self.inclusion: Optional[Inclusion] = None
        self._rpc = rpc

    async def confirmation(self, confirmations: int = 1) -> Inclusion:
        self.inclusion = await self._rpc.wait_for_confirmation(self.op_hash, confirmations)
        self.results = self.inclusion.contents
        return self.inclusion

    async def contract(self) -> Optional[ContractHandle]:
        if self.inclusion is None:
            return None
        originated = self.inclusion.originated_contracts
        if not originated:
            return None

        address = originated[0]
        script = (await self._rpc.get_contract(address)).get("script")
        return ContractHandle(address=address, script=script)
