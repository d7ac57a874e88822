"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

# Set test environment
os.environ["ZU_ENVIRONMENT"] = "test"
os.environ["ZU_DEBUG"] = "true"
os.environ["ZU_WALLET_PROVIDER"] = "dryrun"

from zerounbound.config import Settings
from zerounbound.networks import NetworkProfile
from zerounbound.origination.artifacts import ContractArtifacts
from zerounbound.origination.pipeline import OriginationPipeline
from zerounbound.session.manager import WalletSession
from zerounbound.wallet.base import Account
from zerounbound.wallet.dryrun import DryRunWallet, SimulatedOperation

TEST_RPC = "https://rpc.test"
REVEALED_KEY = "edpkuBknW28nW72KG6RoHtYW7p12T6GKc7nAbwYX5m8Wd9sDVC9yav"
KT1 = "KT1PWx2mnDueood7fEmfbBDKx1D9BAnnXitn"


def block_originate(wallet, op=None):
    """Make the wallet's originate wait for ``release``; returns (release, calls)."""
    release = asyncio.Event()
    calls = []

    async def originate(code, storage):
        calls.append(storage)
        await release.wait()
        return op or SimulatedOperation(contract_address=KT1)

    wallet.originate = originate
    return release, calls


def wait_until(predicate, timeout: float = 1.0):
    """Poll a predicate from async code until it holds or the timeout passes."""

    async def _wait():
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.001)

    return _wait()


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        network="ghostnet",
        ghostnet_rpc_urls=[TEST_RPC],
        probe_timeout=0.5,
        polling_interval=0.0,
        polling_timeout=1.0,
    )


@pytest.fixture
def profile() -> NetworkProfile:
    return NetworkProfile(identifier="ghostnet", rpc_urls=(TEST_RPC,))


@pytest_asyncio.fixture
async def probe_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client whose every chain-id probe succeeds."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json="NetXnHfVqm9iesp"))
    async with httpx.AsyncClient(transport=transport) as client:
        yield client


@pytest.fixture
def wallet_factory():
    """Factory building dry-run wallets; the last one built is kept on ``.last``."""

    class Factory:
        last: DryRunWallet = None
        preset: Account = None
        network_type: str = None

        def __call__(self, options):
            wallet = DryRunWallet(options, network_type=self.network_type)
            wallet.active_account = self.preset
            self.last = wallet
            return wallet

    return Factory()


@pytest_asyncio.fixture
async def session(test_settings, profile, probe_client, wallet_factory) -> AsyncGenerator[WalletSession, None]:
    """Initialized session on a dry-run wallet with a revealed, funded account."""
    s = WalletSession(
        profile,
        settings=test_settings,
        wallet_factory=wallet_factory,
        probe_client=probe_client,
    )
    await s.initialize()
    s.toolkit.rpc.get_manager_key = AsyncMock(return_value=REVEALED_KEY)
    s.toolkit.rpc.get_balance = AsyncMock(return_value=10_000_000)

    yield s

    await s.toolkit.wallet.wait_idle()
    await s.close()


@pytest_asyncio.fixture
async def connected_session(session) -> WalletSession:
    await session.connect()
    await session.toolkit.wallet.wait_idle()
    return session


@pytest.fixture
def artifacts() -> ContractArtifacts:
    return ContractArtifacts(code="parameter unit; storage unit; code { CDR; NIL operation; PAIR }", views=[])


@pytest.fixture
def pipeline(session, artifacts) -> OriginationPipeline:
    return OriginationPipeline(session, artifacts, tick_interval=0.001)
