"""Wallet session endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Request

from zerounbound.api.contracts import RevealResponse, SessionStateResponse
from zerounbound.session.manager import WalletSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


def get_session(request: Request) -> WalletSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")
    return session


def _response(session: WalletSession) -> SessionStateResponse:
    return SessionStateResponse.from_state(
        session.state,
        network=session.network,
        rpc_url=session.rpc_url,
        ready=session.is_ready,
    )


@router.get("", response_model=SessionStateResponse)
async def get_session_state(request: Request) -> SessionStateResponse:
    """Get the current session snapshot."""
    return _response(get_session(request))


@router.post("/connect", response_model=SessionStateResponse)
async def connect(request: Request) -> SessionStateResponse:
    """Connect the wallet.

    Blocks until the user answers the permission prompt in their wallet
    when there is no existing session.
    """
    session = get_session(request)
    await session.connect()
    return _response(session)


@router.post("/disconnect", response_model=SessionStateResponse)
async def disconnect(request: Request) -> SessionStateResponse:
    """Forget the wallet session."""
    session = get_session(request)
    await session.disconnect()
    return _response(session)


@router.post("/sync", response_model=SessionStateResponse)
async def sync(request: Request) -> SessionStateResponse:
    """Recompute the session snapshot."""
    session = get_session(request)
    await session.sync()
    return _response(session)


@router.post("/reveal", response_model=RevealResponse)
async def reveal(request: Request) -> RevealResponse:
    """Publish the account's public key if it is not on chain yet."""
    session = get_session(request)
    op_hash = await session.reveal_account()
    return RevealResponse(op_hash=op_hash, already_revealed=op_hash is None)
