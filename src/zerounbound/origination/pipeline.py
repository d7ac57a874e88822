"""Contract origination pipeline.

Flow:
1. Guard: one job at a time, wallet connected, toolkit built
2. Packing: metadata document → compact JSON → hex (progress 0 to 1/4)
3. Awaiting signature: submit to the wallet (cosmetic ticker up to 1.9/4)
4. Forging: wait for the confirmation depth (2/4)
5. Confirming: resolve the originated contract address (3/4)
6. Done: address available (1)

Any failure leaves the job in ``failed`` with the error message until the
caller resets it. Nothing is retried automatically.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from zerounbound.chain.toolkit import Toolkit
from zerounbound.errors import AddressNotFound, ToolkitNotReady, WalletNotConnected
from zerounbound.origination.artifacts import ContractArtifacts
from zerounbound.origination.metadata import (
    build_initial_storage,
    build_metadata_document,
    build_metadata_map,
    encode_hex_with_progress,
    serialize_document,
)
from zerounbound.origination.ticker import ProgressTicker
from zerounbound.session.manager import WalletSession
from zerounbound.wallet.base import WalletOperation

logger = logging.getLogger(__name__)

CONFIRMATIONS = 2
SIGNATURE_CEILING = 1.9 / 4


class OriginationStage(str, Enum):
    """Pipeline stages, in order."""

    IDLE = "idle"
    PACKING = "packing"
    AWAITING_SIGNATURE = "awaiting_signature"
    FORGING = "forging"
    CONFIRMING = "confirming"
    DONE = "done"
    FAILED = "failed"


STAGE_LABELS = {
    OriginationStage.IDLE: "",
    OriginationStage.PACKING: "Compressing metadata",
    OriginationStage.AWAITING_SIGNATURE: "Check wallet & sign",
    OriginationStage.FORGING: "Forging & injecting",
    OriginationStage.CONFIRMING: "Confirming on-chain",
    OriginationStage.DONE: "Contract deployed",
    OriginationStage.FAILED: "Deployment failed",
}


@dataclass
class OriginationJob:
    """State of one deploy attempt."""

    stage: OriginationStage = OriginationStage.IDLE
    progress: float = 0.0
    label: str = ""
    result_address: str = ""
    error: str = ""
    error_kind: str = ""
    op_hash: str = ""
    ticker: Optional[ProgressTicker] = field(default=None, repr=False, compare=False)

    @property
    def is_running(self) -> bool:
        return self.stage not in (
            OriginationStage.IDLE,
            OriginationStage.DONE,
            OriginationStage.FAILED,
        )

    @property
    def ticker_running(self) -> bool:
        return self.ticker is not None and self.ticker.running

    def cancel_ticker(self) -> None:
        if self.ticker is not None:
            self.ticker.cancel()


JobCallback = Callable[[OriginationJob], Any]


async def resolve_contract_address(op: WalletOperation) -> str:
    """Find the originated contract address on a confirmed operation.

    Tries the operation's own field, then its contract accessor, then the
    originated contracts listed in the raw operation result.

    Raises:
        AddressNotFound: If none of them has an address
    """
    if op.contract_address:
        return op.contract_address

    try:
        contract = await op.contract()
    except Exception as e:
        logger.debug(f"Contract accessor failed for {op.op_hash}: {e}")
        contract = None
    if contract is not None and contract.address:
        return contract.address

    try:
        originated = op.results[0]["metadata"]["operation_result"]["originated_contracts"]
        if originated and originated[0]:
            return originated[0]
    except (LookupError, TypeError):
        pass

    raise AddressNotFound()


class OriginationPipeline:
    """Deploys the contract for the session's account, one job at a time."""

    def __init__(
        self,
        session: WalletSession,
        artifacts: ContractArtifacts,
        confirmations: int = CONFIRMATIONS,
        tick_interval: Optional[float] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.artifacts = artifacts
        self.confirmations = confirmations
        self.tick_interval = tick_interval
        self.log = log or logger
        self._job = OriginationJob()
        self._subscribers: list[JobCallback] = []
        self._run_task: Optional[asyncio.Task] = None
        self._next_job: Optional[OriginationJob] = None

    @property
    def job(self) -> OriginationJob:
        return self._job

    def subscribe(self, callback: JobCallback) -> None:
        """Register a callback invoked with the job after every change."""
        self._subscribers.append(callback)

    def _notify(self, job: OriginationJob) -> None:
        for callback in list(self._subscribers):
            try:
                callback(job)
            except Exception as e:
                self.log.error(f"Origination subscriber error: {e}")

    def _enter(self, job: OriginationJob, stage: OriginationStage, progress: float) -> None:
        job.stage = stage
        job.label = STAGE_LABELS[stage]
        job.progress = progress
        self._notify(job)

    def _set_progress(self, job: OriginationJob, progress: float) -> None:
        job.progress = progress
        self._notify(job)

    def _fail(self, job: OriginationJob, exc: BaseException) -> None:
        job.cancel_ticker()
        job.error = str(exc) or type(exc).__name__
        job.error_kind = type(exc).__name__
        job.stage = OriginationStage.FAILED
        job.label = STAGE_LABELS[OriginationStage.FAILED]
        self.log.error(f"Origination failed ({job.error_kind}): {job.error}")
        self._notify(job)

    def _reject(self, exc: Exception) -> OriginationJob:
        job = self._job
        job.error = str(exc)
        job.error_kind = type(exc).__name__
        self.log.warning(f"Origination refused: {job.error}")
        self._notify(job)
        return job

    async def originate(self, meta: Mapping[str, Any]) -> OriginationJob:
        """Run one origination with the given collection metadata.

        A call while another job is in progress or not yet reset does
        nothing and returns the current job. Guard failures are recorded
        on the idle job; later failures move the job to ``failed``.

        Args:
            meta: Collection metadata (name, description, interfaces, ...)

        Returns:
            The job, in its final state for this call
        """
        if self._job.stage != OriginationStage.IDLE:
            self.log.debug(f"Origination ignored, job is {self._job.stage.value}")
            return self._job

        admin = self.session.state.address
        if not admin:
            return self._reject(WalletNotConnected())
        toolkit = self.session.toolkit
        if toolkit is None:
            return self._reject(ToolkitNotReady())

        # claim the slot before the first await
        job = OriginationJob()
        self._job = job
        self._enter(job, OriginationStage.PACKING, 0.0)

        run = asyncio.create_task(self._run(job, toolkit, admin, meta))
        self._run_task = run
        try:
            await run
        except asyncio.CancelledError:
            self._fail(job, RuntimeError("Origination cancelled"))
            if self._next_job is None:
                run.cancel()
                raise
        except Exception as e:
            self._fail(job, e)
        finally:
            self._run_task = None
            if self._next_job is not None:
                self._install(self._next_job)
                self._next_job = None

        return job

    async def _run(
        self,
        job: OriginationJob,
        toolkit: Toolkit,
        admin: str,
        meta: Mapping[str, Any],
    ) -> None:
        document = build_metadata_document(meta, self.artifacts.views)
        payload = serialize_document(document)
        body = await encode_hex_with_progress(payload, lambda p: self._set_progress(job, p / 4))
        storage = build_initial_storage(admin, build_metadata_map(body))
        self.log.info(f"Packed {len(payload)} bytes of metadata for {admin}")

        self._enter(job, OriginationStage.AWAITING_SIGNATURE, 1 / 4)
        ticker = ProgressTicker(job, ceiling=SIGNATURE_CEILING, on_tick=lambda: self._notify(job))
        if self.tick_interval is not None:
            ticker.interval = self.tick_interval
        job.ticker = ticker
        async with ticker:
            op = await toolkit.wallet.originate(code=self.artifacts.code, storage=storage)
        job.op_hash = op.op_hash

        self._enter(job, OriginationStage.FORGING, 2 / 4)
        await op.confirmation(self.confirmations)

        self._enter(job, OriginationStage.CONFIRMING, 3 / 4)
        job.result_address = await resolve_contract_address(op)

        self._enter(job, OriginationStage.DONE, 1.0)
        self.log.info(f"Originated {job.result_address} in {job.op_hash}")

    def _install(self, job: OriginationJob) -> None:
        self._job = job
        self._notify(job)

    def reset(self) -> OriginationJob:
        """Abort any run in flight and start over with an idle job.

        A running origination is cancelled and its job fails with
        "Origination cancelled". The returned idle job only becomes the
        current job once that run has unwound, so an ``originate`` issued
        in between is still refused.
        """
        self._job.cancel_ticker()
        fresh = OriginationJob()

        run = self._run_task
        if run is not None and not run.done():
            self._next_job = fresh
            run.cancel()
            self.log.info("Origination in flight cancelled by reset")
            return fresh

        self._install(fresh)
        return fresh
