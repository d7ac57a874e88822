"""Wallet provider factory."""

import logging
from typing import Optional

from zerounbound.config import Settings, get_settings
from zerounbound.wallet.base import WalletOptions, WalletProvider
from zerounbound.wallet.dryrun import DryRunWallet

logger = logging.getLogger(__name__)


def get_wallet_provider(
    options: WalletOptions,
    settings: Optional[Settings] = None,
) -> WalletProvider:
    """Create the configured wallet provider.

    Provider is selected based on ZU_WALLET_PROVIDER:
    - dryrun (default): Simulated wallet, approves everything
    - bridge: Local signer bridge at ZU_WALLET_BRIDGE_URL

    A new instance is returned on every call; the toolkit binder owns it.
    """
    settings = settings or get_settings()
    provider_name = settings.wallet_provider.lower()

    if provider_name == "bridge":
        from zerounbound.wallet.bridge import BridgeWallet

        return BridgeWallet(options, base_url=settings.wallet_bridge_url)

    if provider_name != "dryrun":
        logger.warning(f"Unknown wallet provider '{provider_name}', using dryrun")
    return DryRunWallet(options)
