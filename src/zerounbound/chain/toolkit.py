"""Toolkit binder: one chain client bound to one wallet client.

A toolkit belongs to exactly one network. When the network profile changes
a new toolkit is built; an existing one is never re-pointed.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from zerounbound.chain.rpc import TezosRpcClient
from zerounbound.config import Settings, get_settings
from zerounbound.wallet.base import WalletOptions, WalletProvider
from zerounbound.wallet.factory import get_wallet_provider

logger = logging.getLogger(__name__)

APP_NAME = "ZeroUnbound.art"

POLLING_INTERVAL = 5.0  # seconds
POLLING_TIMEOUT = 300.0  # seconds

WalletFactory = Callable[[WalletOptions], WalletProvider]


@dataclass(frozen=True)
class Toolkit:
    """Chain client and wallet client for one network."""

    rpc_url: str
    network: str
    rpc: TezosRpcClient
    wallet: WalletProvider

    async def aclose(self) -> None:
        """Release network resources held by both clients."""
        await self.rpc.aclose()
        close = getattr(self.wallet, "aclose", None)
        if close is not None:
            await close()


async def _noop_metrics(*args, **kwargs) -> None:
    return None


def silence_telemetry(wallet: WalletProvider) -> None:
    """Replace the wallet's telemetry callbacks with no-ops."""
    wallet.send_metrics = _noop_metrics
    wallet.update_metrics_storage = _noop_metrics


def build_toolkit(
    rpc_url: str,
    network: str,
    wallet_factory: Optional[WalletFactory] = None,
    settings: Optional[Settings] = None,
) -> Toolkit:
    """Build a toolkit for a live endpoint.

    Args:
        rpc_url: Endpoint returned by the endpoint selector
        network: Network identifier the wallet should prefer
        wallet_factory: Creates the wallet client (default: configured provider)
        settings: Settings override

    Returns:
        Toolkit with telemetry silenced and the wallet bound to the chain client
    """
    settings = settings or get_settings()

    rpc = TezosRpcClient(
        rpc_url,
        polling_interval=settings.polling_interval or POLLING_INTERVAL,
        polling_timeout=settings.polling_timeout or POLLING_TIMEOUT,
    )

    options = WalletOptions(
        name=APP_NAME,
        preferred_network=network,
        matrix_nodes=[],
        color_mode="dark",
    )
    if wallet_factory is not None:
        wallet = wallet_factory(options)
    else:
        wallet = get_wallet_provider(options, settings)

    silence_telemetry(wallet)
    wallet.bind_chain(rpc)

    logger.info(f"Toolkit ready: {network} via {rpc_url} ({wallet.name} wallet)")
    return Toolkit(rpc_url=rpc_url, network=network, rpc=rpc, wallet=wallet)
