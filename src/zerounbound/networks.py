"""Network profiles: identifier plus ordered RPC candidates.

Candidates are probed in list order by the endpoint selector, so the
preferred node goes first.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from zerounbound.config import Settings

DEFAULT_NETWORK = "ghostnet"


@dataclass(frozen=True)
class NetworkProfile:
    """Configuration for one network."""

    identifier: str
    rpc_urls: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "identifier", self.identifier.lower())
        object.__setattr__(self, "rpc_urls", tuple(u.rstrip("/") for u in self.rpc_urls))


# ======================
# Network Profiles
# ======================

NETWORKS: dict[str, NetworkProfile] = {
    "ghostnet": NetworkProfile(
        identifier="ghostnet",
        rpc_urls=(
            "https://rpc.ghostnet.teztnets.com",
            "https://ghostnet.ecadinfra.com",
            "https://ghostnet.smartpy.io",
        ),
    ),
    "mainnet": NetworkProfile(
        identifier="mainnet",
        rpc_urls=(
            "https://mainnet.api.tez.ie",
            "https://rpc.tzbeta.net",
            "https://mainnet.ecadinfra.com",
        ),
    ),
}


def get_network(identifier: str, settings: Optional["Settings"] = None) -> NetworkProfile:
    """Get the profile for a network, honouring RPC overrides from settings.

    Unknown identifiers yield a profile with no candidates, which the
    endpoint selector reports as unreachable.
    """
    from zerounbound.config import get_settings

    settings = settings or get_settings()
    identifier = identifier.lower()

    urls = settings.get_rpc_urls(identifier)
    if urls:
        return NetworkProfile(identifier=identifier, rpc_urls=tuple(urls))

    profile = NETWORKS.get(identifier)
    if profile:
        return profile
    return NetworkProfile(identifier=identifier, rpc_urls=())


def get_default_network(settings: Optional["Settings"] = None) -> NetworkProfile:
    """Get the profile for the configured network."""
    from zerounbound.config import get_settings

    settings = settings or get_settings()
    return get_network(settings.network or DEFAULT_NETWORK, settings)
