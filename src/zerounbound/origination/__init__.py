"""Contract origination: metadata packing, submission and confirmation."""

from zerounbound.origination.artifacts import ContractArtifacts, load_contract_artifacts
from zerounbound.origination.pipeline import OriginationJob, OriginationPipeline, OriginationStage

__all__ = [
    "ContractArtifacts",
    "OriginationJob",
    "OriginationPipeline",
    "OriginationStage",
    "load_contract_artifacts",
]
