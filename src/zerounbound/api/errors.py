"""Mapping of deploy-core errors to HTTP responses."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from zerounbound.errors import ZeroUnboundError

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "WalletNotConnected": 409,
    "InsufficientBalance": 402,
    "ToolkitNotReady": 503,
    "NoReachableEndpoint": 503,
    "ContractArtifactsMissing": 503,
    "SignatureRejected": 400,
    "AddressNotFound": 502,
    "ChainRpcError": 502,
    "WalletBridgeError": 502,
    "ConfirmationTimeout": 504,
}


def status_for(error_kind: str) -> int:
    """HTTP status for an error class name."""
    return ERROR_STATUS.get(error_kind, 500)


async def zerounbound_error_handler(request: Request, exc: ZeroUnboundError) -> JSONResponse:
    """Render a core error as {"detail", "error"}."""
    kind = type(exc).__name__
    logger.warning(f"{request.method} {request.url.path} failed: {kind}: {exc}")
    return JSONResponse(
        status_code=status_for(kind),
        content={"detail": str(exc), "error": kind},
    )
