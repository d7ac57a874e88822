"""Request and response contracts for the HTTP API."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from zerounbound.origination.pipeline import OriginationJob
from zerounbound.session.manager import SessionState, SessionStatus


class SessionStateResponse(BaseModel):
    """Current wallet session snapshot."""

    network: str = Field(..., description="Configured network")
    rpc_url: str = Field(default="", description="Selected RPC endpoint")
    ready: bool = Field(default=False, description="Toolkit built")
    status: SessionStatus = Field(..., description="Derived connection status")
    address: str = Field(default="", description="Active account address")
    connected: bool = False
    network_mismatch: bool = False
    needs_reveal: bool = False
    needs_funds: bool = False

    @classmethod
    def from_state(cls, state: SessionState, network: str, rpc_url: str, ready: bool) -> "SessionStateResponse":
        return cls(
            network=network,
            rpc_url=rpc_url,
            ready=ready,
            status=state.status,
            address=state.address,
            connected=state.connected,
            network_mismatch=state.network_mismatch,
            needs_reveal=state.needs_reveal,
            needs_funds=state.needs_funds,
        )


class RevealResponse(BaseModel):
    """Result of a reveal request."""

    op_hash: Optional[str] = Field(None, description="Reveal operation hash")
    already_revealed: bool = Field(default=False, description="Key was already published")


class DeployRequest(BaseModel):
    """Collection metadata for a new contract."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="Collection name")
    description: Optional[str] = None
    license: Optional[str] = None
    authors: Optional[Union[str, list[str]]] = None
    homepage: Optional[str] = None
    authoraddress: Optional[Union[str, list[str]]] = None
    creators: Optional[Union[str, list[str]]] = None
    type: Optional[str] = None
    interfaces: list[str] = Field(default_factory=list)
    imageUri: Optional[str] = None


class OriginationJobResponse(BaseModel):
    """Progress of the current deploy attempt."""

    stage: str
    progress: float = Field(..., ge=0.0, le=1.0)
    label: str = ""
    result_address: str = ""
    error: str = ""
    error_kind: str = ""
    op_hash: str = ""

    @classmethod
    def from_job(cls, job: OriginationJob) -> "OriginationJobResponse":
        return cls(
            stage=job.stage.value,
            progress=max(0.0, min(1.0, job.progress)),
            label=job.label,
            result_address=job.result_address,
            error=job.error,
            error_kind=job.error_kind,
            op_hash=job.op_hash,
        )
