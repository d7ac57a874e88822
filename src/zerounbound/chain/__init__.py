"""Chain access: endpoint selection, node RPC and the toolkit binder."""

from zerounbound.chain.endpoints import select_endpoint
from zerounbound.chain.rpc import Inclusion, TezosRpcClient
from zerounbound.chain.toolkit import APP_NAME, Toolkit, build_toolkit

__all__ = [
    "APP_NAME",
    "Inclusion",
    "TezosRpcClient",
    "Toolkit",
    "build_toolkit",
    "select_endpoint",
]
