"""Tests for wallet providers and the provider factory."""

import json

import httpx
import pytest

from zerounbound.chain.operations import ChainOperation
from zerounbound.chain.rpc import TezosRpcClient
from zerounbound.config import Settings
from zerounbound.errors import SignatureRejected, ToolkitNotReady, WalletBridgeError
from zerounbound.wallet import get_wallet_provider
from zerounbound.wallet.base import NetworkRequest, WalletOptions
from zerounbound.wallet.bridge import BridgeWallet
from zerounbound.wallet.dryrun import DryRunWallet, fake_address, fake_op_hash

ADDRESS = "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb"


@pytest.fixture
def options() -> WalletOptions:
    return WalletOptions(name="ZeroUnbound.art", preferred_network="ghostnet")


class FakeBridge:
    """In-memory signer bridge."""

    def __init__(self, approve: bool = True):
        self.approve = approve
        self.account = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v1/account" and request.method == "GET":
            if self.account is None:
                return httpx.Response(204)
            return httpx.Response(200, json=self.account)

        if path == "/v1/account" and request.method == "DELETE":
            self.account = None
            return httpx.Response(200, json={})

        if path == "/v1/permissions":
            if not self.approve:
                return httpx.Response(403, json={"error": "User declined"})
            body = json.loads(request.content)
            self.account = {"address": ADDRESS, "network": {"type": body["network"]["type"]}}
            return httpx.Response(200, json=self.account)

        if path == "/v1/operations":
            if not self.approve:
                return httpx.Response(403)
            return httpx.Response(200, json={"opHash": "onvVZwLhPqYXjuFBLZvdL4HQUDAWRNRXjCXhvaNsxUd4pwTY2TT"})

        return httpx.Response(500)

    def wallet(self, options) -> BridgeWallet:
        return BridgeWallet(options, base_url="http://bridge.local/", transport=httpx.MockTransport(self.handler))


class TestBridgeWallet:
    """Tests for BridgeWallet."""

    @pytest.mark.asyncio
    async def test_no_session(self, options):
        wallet = FakeBridge().wallet(options)
        try:
            assert await wallet.get_active_account() is None
        finally:
            await wallet.aclose()

    @pytest.mark.asyncio
    async def test_permissions_and_clear(self, options):
        bridge = FakeBridge()
        wallet = bridge.wallet(options)
        notified = []

        async def on_change():
            notified.append(await wallet.get_active_account())

        wallet.subscribe_active_account(on_change)
        try:
            account = await wallet.request_permissions(NetworkRequest(type="ghostnet", rpc_url="https://rpc.test"))
            await wallet.wait_idle()
            assert account.address == ADDRESS
            assert account.network_type == "ghostnet"
            assert notified[-1].address == ADDRESS

            await wallet.clear_active_account()
            await wallet.wait_idle()
            assert notified[-1] is None
        finally:
            await wallet.aclose()

        permission = next(r for r in bridge.requests if r.url.path == "/v1/permissions")
        body = json.loads(permission.content)
        assert body["appName"] == "ZeroUnbound.art"
        assert body["matrixNodes"] == []
        assert body["colorMode"] == "dark"
        assert permission.headers["X-App-Name"] == "ZeroUnbound.art"

    @pytest.mark.asyncio
    async def test_declined_permission(self, options):
        wallet = FakeBridge(approve=False).wallet(options)
        try:
            with pytest.raises(SignatureRejected, match="User declined"):
                await wallet.request_permissions(NetworkRequest(type="ghostnet"))
        finally:
            await wallet.aclose()

    @pytest.mark.asyncio
    async def test_operation_needs_chain_client(self, options):
        wallet = FakeBridge().wallet(options)
        try:
            with pytest.raises(ToolkitNotReady):
                await wallet.transfer(ADDRESS, 1)
        finally:
            await wallet.aclose()

    @pytest.mark.asyncio
    async def test_operation_tracked_on_chain(self, options):
        bridge = FakeBridge()
        wallet = bridge.wallet(options)
        rpc = TezosRpcClient("https://rpc.test")
        wallet.bind_chain(rpc)
        try:
            op = await wallet.originate(code="parameter unit;", storage={"admin": ADDRESS})
        finally:
            await wallet.aclose()
            await rpc.aclose()

        assert isinstance(op, ChainOperation)
        assert op.op_hash.startswith("o")
        submitted = json.loads(bridge.requests[-1].content)
        assert submitted["kind"] == "origination"
        assert submitted["storage"] == {"admin": ADDRESS}

    @pytest.mark.asyncio
    async def test_declined_operation(self, options):
        wallet = FakeBridge(approve=False).wallet(options)
        wallet.bind_chain(TezosRpcClient("https://rpc.test"))
        try:
            with pytest.raises(SignatureRejected):
                await wallet.transfer(ADDRESS, 1)
        finally:
            await wallet.aclose()
            await wallet.rpc.aclose()

    @pytest.mark.asyncio
    async def test_bridge_failure(self, options):
        wallet = BridgeWallet(options, transport=httpx.MockTransport(lambda r: httpx.Response(502)))
        try:
            with pytest.raises(WalletBridgeError):
                await wallet.get_active_account()
        finally:
            await wallet.aclose()


class TestDryRunWallet:
    """Tests for DryRunWallet."""

    def test_fake_values_look_real(self):
        assert fake_address("KT1").startswith("KT1")
        assert len(fake_address("KT1")) == 36
        assert len(fake_op_hash()) == 51

    @pytest.mark.asyncio
    async def test_account_on_preferred_network(self, options):
        wallet = DryRunWallet(options)

        account = await wallet.request_permissions(NetworkRequest(type="ghostnet"))

        assert account.network_type == "ghostnet"
        assert await wallet.get_active_account() == account

    @pytest.mark.asyncio
    async def test_subscribers_deduplicated(self, options):
        wallet = DryRunWallet(options)
        calls = []

        async def on_change():
            calls.append(1)

        wallet.subscribe_active_account(on_change)
        wallet.subscribe_active_account(on_change)
        await wallet.clear_active_account()
        await wallet.wait_idle()

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_subscriber_errors_are_contained(self, options):
        wallet = DryRunWallet(options)

        async def broken():
            raise RuntimeError("listener failed")

        wallet.subscribe_active_account(broken)
        await wallet.clear_active_account()
        await wallet.wait_idle()


class TestFactory:
    """Tests for get_wallet_provider."""

    def test_default_is_dryrun(self, options):
        wallet = get_wallet_provider(options, Settings(_env_file=None, wallet_provider="dryrun"))

        assert isinstance(wallet, DryRunWallet)
        assert wallet.options is options

    def test_unknown_falls_back(self, options):
        wallet = get_wallet_provider(options, Settings(_env_file=None, wallet_provider="ledger"))

        assert isinstance(wallet, DryRunWallet)

    @pytest.mark.asyncio
    async def test_bridge(self, options):
        settings = Settings(_env_file=None, wallet_provider="Bridge", wallet_bridge_url="http://127.0.0.1:9999")

        wallet = get_wallet_provider(options, settings)
        try:
            assert isinstance(wallet, BridgeWallet)
            assert wallet.base_url == "http://127.0.0.1:9999"
        finally:
            await wallet.aclose()

    def test_new_instance_per_call(self, options):
        settings = Settings(_env_file=None)

        assert get_wallet_provider(options, settings) is not get_wallet_provider(options, settings)
