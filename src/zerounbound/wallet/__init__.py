"""Wallet provider adapters."""

from zerounbound.wallet.base import Account, NetworkRequest, WalletOperation, WalletOptions, WalletProvider
from zerounbound.wallet.factory import get_wallet_provider

__all__ = [
    "Account",
    "NetworkRequest",
    "WalletOperation",
    "WalletOptions",
    "WalletProvider",
    "get_wallet_provider",
]
