"""Tests for the origination pipeline."""

import asyncio

import pytest

from conftest import KT1, block_originate, wait_until
from zerounbound.errors import AddressNotFound, ChainRpcError
from zerounbound.origination.metadata import CONTRACT_VERSION, decode_metadata_hex
from zerounbound.origination.pipeline import (
    SIGNATURE_CEILING,
    STAGE_LABELS,
    OriginationJob,
    OriginationPipeline,
    OriginationStage,
    resolve_contract_address,
)
from zerounbound.origination.ticker import ProgressTicker
from zerounbound.session.manager import SessionState, WalletSession
from zerounbound.wallet.base import ContractHandle
from zerounbound.wallet.dryrun import DEFAULT_ADDRESS, SimulatedOperation

META = {
    "name": "Zero Collection",
    "description": "Fully on-chain art",
    "authors": ["Alice"],
    "interfaces": ["tzip-012", "TZIP-021"],
}


class TestOriginate:
    """Tests for a full origination run."""

    @pytest.mark.asyncio
    async def test_successful_deploy(self, connected_session, pipeline, artifacts, wallet_factory):
        job = await pipeline.originate(META)

        submitted = wallet_factory.last.submitted
        assert len(submitted) == 1
        op = submitted[0]["op"]

        assert job.stage == OriginationStage.DONE
        assert job.label == STAGE_LABELS[OriginationStage.DONE]
        assert job.progress == 1.0
        assert job.result_address == op.contract_address
        assert job.result_address.startswith("KT1")
        assert job.op_hash == op.op_hash
        assert job.error == ""
        assert op.confirmations_awaited == [2]
        assert not job.ticker_running

        assert submitted[0]["code"] == artifacts.code
        storage = submitted[0]["storage"]
        assert storage["admin"] == DEFAULT_ADDRESS
        document = decode_metadata_hex(storage["metadata"]["content"])
        assert document["name"] == "Zero Collection"
        assert document["version"] == CONTRACT_VERSION
        assert document["interfaces"] == ["TZIP-012", "TZIP-021", "TZIP-016"]

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, connected_session, pipeline):
        seen = []
        pipeline.subscribe(lambda job: seen.append((job.stage, job.progress)))

        await pipeline.originate(META)

        progress = [p for _, p in seen]
        assert progress == sorted(progress)
        stages = [s for s, _ in seen]
        assert stages.index(OriginationStage.PACKING) < stages.index(OriginationStage.AWAITING_SIGNATURE)
        assert stages.index(OriginationStage.FORGING) < stages.index(OriginationStage.CONFIRMING)
        assert seen[-1] == (OriginationStage.DONE, 1.0)
        packing = [p for s, p in seen if s == OriginationStage.PACKING]
        assert max(packing) == 0.25

    @pytest.mark.asyncio
    async def test_subscriber_errors_do_not_break_run(self, connected_session, pipeline):
        def broken(job):
            raise RuntimeError("render failed")

        pipeline.subscribe(broken)

        job = await pipeline.originate(META)

        assert job.stage == OriginationStage.DONE

    @pytest.mark.asyncio
    async def test_address_from_contract_handle(self, connected_session, pipeline):
        wallet = connected_session.toolkit.wallet
        release, _ = block_originate(
            wallet, SimulatedOperation(contract_handle=ContractHandle(address=KT1))
        )
        release.set()

        job = await pipeline.originate(META)

        assert job.stage == OriginationStage.DONE
        assert job.result_address == KT1

    @pytest.mark.asyncio
    async def test_address_not_found(self, connected_session, pipeline):
        """An operation with no address fails the job at the confirming stage."""
        release, _ = block_originate(connected_session.toolkit.wallet, SimulatedOperation())
        release.set()

        job = await pipeline.originate(META)

        assert job.stage == OriginationStage.FAILED
        assert job.error_kind == "AddressNotFound"
        assert job.error == "Originated KT1 not found"
        assert job.progress == 0.75
        assert not job.ticker_running

        await asyncio.sleep(0.01)
        assert job.progress == 0.75

    @pytest.mark.asyncio
    async def test_signature_rejected(self, connected_session, pipeline, wallet_factory):
        wallet_factory.last.reject = True

        job = await pipeline.originate(META)

        assert job.stage == OriginationStage.FAILED
        assert job.label == STAGE_LABELS[OriginationStage.FAILED]
        assert job.error_kind == "SignatureRejected"
        assert not job.ticker_running
        assert job.result_address == ""


class TestGuards:
    """Tests for the one-job-at-a-time and connection guards."""

    @pytest.mark.asyncio
    async def test_not_connected(self, session, pipeline, wallet_factory):
        job = await pipeline.originate(META)

        assert job.stage == OriginationStage.IDLE
        assert job.error_kind == "WalletNotConnected"
        assert job.error == "Wallet not connected"
        assert wallet_factory.last.submitted == []

    @pytest.mark.asyncio
    async def test_second_call_while_awaiting_signature(self, connected_session, pipeline):
        release, calls = block_originate(connected_session.toolkit.wallet)
        task = asyncio.create_task(pipeline.originate(META))
        await wait_until(lambda: pipeline.job.stage == OriginationStage.AWAITING_SIGNATURE)
        running = pipeline.job

        again = await pipeline.originate({"name": "Other"})

        assert again is running
        assert len(calls) == 1

        release.set()
        job = await task
        assert job is running
        assert job.stage == OriginationStage.DONE
        assert job.result_address == KT1

    @pytest.mark.asyncio
    async def test_done_job_blocks_until_reset(self, connected_session, pipeline, wallet_factory):
        first = await pipeline.originate(META)

        assert await pipeline.originate(META) is first
        assert len(wallet_factory.last.submitted) == 1

        fresh = pipeline.reset()
        assert fresh.stage == OriginationStage.IDLE
        assert fresh.progress == 0.0

        second = await pipeline.originate(META)
        assert second.stage == OriginationStage.DONE
        assert len(wallet_factory.last.submitted) == 2

    @pytest.mark.asyncio
    async def test_failed_job_blocks_until_reset(self, connected_session, pipeline, wallet_factory):
        wallet_factory.last.reject = True
        failed = await pipeline.originate(META)
        wallet_factory.last.reject = False

        assert await pipeline.originate(META) is failed

        pipeline.reset()
        assert (await pipeline.originate(META)).stage == OriginationStage.DONE


class TestSignatureTicker:
    """Tests for the progress ticker during the signature wait."""

    @pytest.mark.asyncio
    async def test_ticker_respects_ceiling(self, connected_session, pipeline):
        release, _ = block_originate(connected_session.toolkit.wallet)
        task = asyncio.create_task(pipeline.originate(META))
        await wait_until(lambda: pipeline.job.stage == OriginationStage.AWAITING_SIGNATURE)
        job = pipeline.job

        assert job.ticker_running
        await wait_until(lambda: job.progress >= SIGNATURE_CEILING, timeout=5.0)
        await asyncio.sleep(0.01)
        assert job.progress == pytest.approx(SIGNATURE_CEILING)

        release.set()
        await task
        assert not job.ticker_running
        assert job.progress == 1.0

    @pytest.mark.asyncio
    async def test_reset_stops_ticker(self, connected_session, pipeline):
        release, _ = block_originate(connected_session.toolkit.wallet)
        task = asyncio.create_task(pipeline.originate(META))
        await wait_until(lambda: pipeline.job.stage == OriginationStage.AWAITING_SIGNATURE)
        stale = pipeline.job

        fresh = pipeline.reset()
        assert not stale.ticker_running
        assert fresh.stage == OriginationStage.IDLE

        assert await task is stale
        assert stale.stage == OriginationStage.FAILED
        assert stale.error == "Origination cancelled"
        assert pipeline.job is fresh

        release.set()
        await asyncio.sleep(0.01)
        assert stale.result_address == ""
        assert pipeline.job is fresh

    @pytest.mark.asyncio
    async def test_reset_then_originate_submits_once(self, connected_session, pipeline):
        """An originate right after reset does not start a second submission."""
        _, calls = block_originate(connected_session.toolkit.wallet)
        task = asyncio.create_task(pipeline.originate(META))
        await wait_until(lambda: pipeline.job.stage == OriginationStage.AWAITING_SIGNATURE)
        stale = pipeline.job

        pipeline.reset()
        again = await pipeline.originate({"name": "Other"})

        assert again is stale
        assert len(calls) == 1

        await task
        assert pipeline.job.stage == OriginationStage.IDLE

        release, calls = block_originate(connected_session.toolkit.wallet)
        release.set()
        job = await pipeline.originate(META)
        assert job.stage == OriginationStage.DONE
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_run_fails_job(self, connected_session, pipeline):
        block_originate(connected_session.toolkit.wallet)
        task = asyncio.create_task(pipeline.originate(META))
        await wait_until(lambda: pipeline.job.stage == OriginationStage.AWAITING_SIGNATURE)
        job = pipeline.job

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert job.stage == OriginationStage.FAILED
        assert not job.ticker_running

    @pytest.mark.asyncio
    async def test_ticker_context_cancels_on_error(self):
        job = OriginationJob(progress=0.25)

        with pytest.raises(RuntimeError):
            async with ProgressTicker(job, ceiling=0.3, interval=0.001) as ticker:
                await asyncio.sleep(0.01)
                raise RuntimeError("wallet closed")

        assert not ticker.running
        assert 0.25 < job.progress <= 0.3


class TestResolveContractAddress:
    """Tests for the address fallbacks."""

    @pytest.mark.asyncio
    async def test_prefers_operation_field(self):
        op = SimulatedOperation(contract_address=KT1, contract_handle=ContractHandle(address="KT1other"))

        assert await resolve_contract_address(op) == KT1

    @pytest.mark.asyncio
    async def test_falls_back_to_results(self):
        op = SimulatedOperation(results=[{
            "kind": "origination",
            "metadata": {"operation_result": {"originated_contracts": [KT1]}},
        }])

        assert await resolve_contract_address(op) == KT1

    @pytest.mark.asyncio
    async def test_failing_contract_accessor_falls_back_to_results(self):
        class UnloadableContract(SimulatedOperation):
            async def contract(self):
                raise ChainRpcError(500, f"/chains/main/blocks/head/context/contracts/{KT1}/script")

        op = UnloadableContract(results=[{
            "kind": "origination",
            "metadata": {"operation_result": {"originated_contracts": [KT1]}},
        }])

        assert await resolve_contract_address(op) == KT1

    @pytest.mark.asyncio
    async def test_malformed_results(self):
        op = SimulatedOperation(results=[{"kind": "origination", "metadata": None}])

        with pytest.raises(AddressNotFound):
            await resolve_contract_address(op)


@pytest.mark.asyncio
async def test_toolkit_not_ready(test_settings, profile, artifacts):
    session = WalletSession(profile, settings=test_settings)
    session._state = SessionState(address=DEFAULT_ADDRESS, connected=True)
    pipeline = OriginationPipeline(session, artifacts)

    job = await pipeline.originate(META)

    assert job.stage == OriginationStage.IDLE
    assert job.error_kind == "ToolkitNotReady"
