"""Application configuration using pydantic-settings.

Values are read from ``ZU_``-prefixed environment variables or a ``.env``
file. Lists (RPC URLs) are given as JSON arrays, e.g.
``ZU_GHOSTNET_RPC_URLS='["https://rpc.ghostnet.teztnets.com"]'``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from zerounbound.networks import NETWORKS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ZU_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Network
    # ======================
    network: str = Field(default="ghostnet", description="Configured network identifier")
    ghostnet_rpc_urls: list[str] = Field(
        default_factory=lambda: list(NETWORKS["ghostnet"].rpc_urls),
        description="Ghostnet RPC candidates, probed in order",
    )
    mainnet_rpc_urls: list[str] = Field(
        default_factory=lambda: list(NETWORKS["mainnet"].rpc_urls),
        description="Mainnet RPC candidates, probed in order",
    )
    probe_timeout: float = Field(default=2.5, description="Endpoint liveness probe timeout (seconds)")

    # ======================
    # Confirmation polling
    # ======================
    polling_interval: float = Field(default=5.0, description="Confirmation polling interval (seconds)")
    polling_timeout: float = Field(default=300.0, description="Confirmation polling timeout (seconds)")
    confirmations: int = Field(default=2, description="Confirmation depth for originations")

    # ======================
    # Session
    # ======================
    balance_floor_mutez: int = Field(
        default=500_000, description="Minimum balance (mutez) before funds are needed (0.5 tez)"
    )
    wallet_provider: str = Field(default="dryrun", description="Wallet provider (dryrun, bridge)")
    wallet_bridge_url: str = Field(
        default="http://127.0.0.1:7780", description="Signer bridge URL for the bridge provider"
    )

    # ======================
    # Contract artifacts
    # ======================
    contract_code_path: Optional[str] = Field(
        default=None, description="Path to the Michelson contract code (.tz or JSON)"
    )
    views_path: Optional[str] = Field(
        default=None, description="Path to the off-chain views JSON document"
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="127.0.0.1", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_rpc_urls(self, network: str) -> list[str]:
        """Get the ordered RPC candidates for a network."""
        rpc_map = {
            "ghostnet": self.ghostnet_rpc_urls,
            "mainnet": self.mainnet_rpc_urls,
        }
        return list(rpc_map.get(network.lower(), []))

    def get_safe_dict(self) -> dict:
        """Return settings dict suitable for health output."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "network": self.network,
            "rpc_urls": {
                "ghostnet": self.ghostnet_rpc_urls,
                "mainnet": self.mainnet_rpc_urls,
            },
            "wallet_provider": self.wallet_provider,
            "confirmations": self.confirmations,
            "contract_configured": bool(self.contract_code_path),
            "api_host": self.api_host,
            "api_port": self.api_port,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
