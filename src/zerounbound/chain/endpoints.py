"""Endpoint selection: pick the first live RPC node of a network profile."""

import asyncio
import logging
from typing import Optional

import httpx

from zerounbound.errors import NoReachableEndpoint
from zerounbound.networks import NetworkProfile

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 2.5  # seconds, per candidate
CHAIN_ID_PATH = "/chains/main/chain_id"


async def probe_endpoint(
    client: httpx.AsyncClient,
    url: str,
    timeout: float = PROBE_TIMEOUT,
) -> bool:
    """Check that a node answers its chain-id query within the timeout.

    Args:
        client: HTTP client used for the request
        url: Candidate RPC base URL
        timeout: Total time allowed for the probe

    Returns:
        True if the node answered with a success status
    """
    try:
        response = await asyncio.wait_for(
            client.get(f"{url}{CHAIN_ID_PATH}", timeout=timeout),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.debug(f"Probe timed out after {timeout}s: {url}")
        return False
    except httpx.HTTPError as e:
        logger.debug(f"Probe failed for {url}: {e}")
        return False

    if not response.is_success:
        logger.debug(f"Probe for {url} returned status {response.status_code}")
        return False
    return True


async def select_endpoint(
    profile: NetworkProfile,
    timeout: float = PROBE_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Return the first candidate URL of a profile that answers a probe.

    Candidates are tried strictly in list order, one sweep, no retries.
    Nothing after the first live endpoint is contacted.

    Raises:
        NoReachableEndpoint: If every candidate failed or timed out
    """
    tried: list[str] = []

    async def sweep(http: httpx.AsyncClient) -> Optional[str]:
        for url in profile.rpc_urls:
            tried.append(url)
            if await probe_endpoint(http, url, timeout):
                return url
        return None

    if client is not None:
        selected = await sweep(client)
    else:
        async with httpx.AsyncClient(timeout=timeout) as http:
            selected = await sweep(http)

    if selected is None:
        logger.warning(f"No reachable RPC for {profile.identifier} (tried {len(tried)})")
        raise NoReachableEndpoint(profile.identifier, tried)

    logger.info(f"Selected RPC for {profile.identifier}: {selected}")
    return selected
