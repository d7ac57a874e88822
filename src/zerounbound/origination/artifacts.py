"""Contract code and off-chain views loaded from disk."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from zerounbound.config import Settings, get_settings
from zerounbound.errors import ContractArtifactsMissing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractArtifacts:
    """Code to originate and the views published in its metadata."""

    code: Any
    views: list[Any] = field(default_factory=list)


def load_contract_artifacts(
    code_path: str,
    views_path: Optional[str] = None,
) -> ContractArtifacts:
    """Load contract artifacts.

    Args:
        code_path: Michelson source (.tz) or Micheline JSON (.json)
        views_path: JSON document with a top-level "views" list

    Raises:
        ContractArtifactsMissing: If a file is missing or unreadable
    """
    code_file = Path(code_path)
    try:
        text = code_file.read_text(encoding="utf-8")
        code = json.loads(text) if code_file.suffix == ".json" else text
    except (OSError, ValueError) as e:
        raise ContractArtifactsMissing(f"Cannot load contract code {code_path}: {e}")

    views: list[Any] = []
    if views_path:
        try:
            views = json.loads(Path(views_path).read_text(encoding="utf-8")).get("views", [])
        except (OSError, ValueError, AttributeError) as e:
            raise ContractArtifactsMissing(f"Cannot load views {views_path}: {e}")

    logger.info(f"Loaded contract code from {code_path} ({len(views)} views)")
    return ContractArtifacts(code=code, views=views)


def get_configured_artifacts(settings: Optional[Settings] = None) -> Optional[ContractArtifacts]:
    """Load artifacts from the configured paths, or None if none are configured."""
    settings = settings or get_settings()
    if not settings.contract_code_path:
        return None
    return load_contract_artifacts(settings.contract_code_path, settings.views_path)
