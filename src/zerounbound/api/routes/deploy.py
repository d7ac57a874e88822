"""Contract deployment endpoints.

A deploy runs in the background: POST starts it and returns the job,
GET reports progress until the job is done or failed.
"""

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from zerounbound.api.contracts import DeployRequest, OriginationJobResponse
from zerounbound.api.errors import status_for
from zerounbound.origination.pipeline import OriginationPipeline, OriginationStage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deploy", tags=["deploy"])


def get_pipeline(request: Request) -> OriginationPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Contract artifacts not configured")
    return pipeline


@router.get("", response_model=OriginationJobResponse)
async def get_job(request: Request) -> OriginationJobResponse:
    """Get the current deploy job."""
    return OriginationJobResponse.from_job(get_pipeline(request).job)


@router.post("", response_model=OriginationJobResponse, status_code=202)
async def start_deploy(body: DeployRequest, request: Request) -> OriginationJobResponse:
    """Start deploying a collection contract.

    Returns the job right after the guard ran. A request while a job is
    in progress or not yet reset leaves that job untouched.
    """
    pipeline = get_pipeline(request)
    if pipeline.job.stage != OriginationStage.IDLE:
        raise HTTPException(status_code=409, detail=f"Deploy already {pipeline.job.stage.value}")

    meta = body.model_dump(exclude_none=True)
    task = asyncio.create_task(pipeline.originate(meta))
    request.app.state.deploy_task = task
    logger.info(f"Deploy started for '{body.name}'")

    # let the guard and the first packing step run
    await asyncio.sleep(0)

    job = pipeline.job
    if task.done() and job.stage == OriginationStage.IDLE and job.error_kind:
        raise HTTPException(status_code=status_for(job.error_kind), detail=job.error)
    return OriginationJobResponse.from_job(job)


@router.post("/reset", response_model=OriginationJobResponse)
async def reset(request: Request) -> OriginationJobResponse:
    """Discard the current job, cancelling a deploy still in progress."""
    pipeline = get_pipeline(request)
    pipeline.reset()

    task = request.app.state.deploy_task
    if task is not None and not task.done():
        await asyncio.gather(task, return_exceptions=True)
    return OriginationJobResponse.from_job(pipeline.job)
