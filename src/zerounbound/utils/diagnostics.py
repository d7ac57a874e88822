"""Process-wide logging setup with a filter for known-benign wallet noise.

Wallet transports report a handful of harmless conditions (relay info
lookups, manual sync stops, DNS misses on relay nodes) as warnings and
errors. ``configure_logging`` installs a filter for them exactly once per
process; callers receive a logger to inject into their components.
"""

import asyncio
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

NOISE_PATTERN = re.compile(
    r"/_synapse/client/beacon/info|Syncing stopped manually|ERR_NAME_NOT_RESOLVED",
    re.IGNORECASE,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# One-time installation flag
_installed = False


def is_noise(value: Any) -> bool:
    """Check whether a message or exception matches the benign-noise pattern."""
    if isinstance(value, BaseException):
        text = str(value)
    else:
        text = value if isinstance(value, str) else str(getattr(value, "message", "") or "")
    return bool(NOISE_PATTERN.search(text))


class NoiseFilter(logging.Filter):
    """Drop WARNING and ERROR records whose message is known noise."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno < logging.WARNING:
            return True
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        if is_noise(message):
            return False
        if record.exc_info and is_noise(record.exc_info[1]):
            return False
        return True


def configure_logging(debug: bool = False, name: str = "zerounbound") -> logging.Logger:
    """Configure logging and install the noise filter once.

    Repeated calls are harmless: only the first one touches the root logger.

    Args:
        debug: Log at DEBUG instead of INFO
        name: Name of the logger handed back to the caller

    Returns:
        Logger to inject into components
    """
    global _installed

    if not _installed:
        _installed = True
        logging.basicConfig(
            level=logging.DEBUG if debug else logging.INFO,
            format=LOG_FORMAT,
        )
        noise_filter = NoiseFilter()
        for handler in logging.getLogger().handlers:
            handler.addFilter(noise_filter)
        logger.debug("Noise filter installed")

    return logging.getLogger(name)


def is_configured() -> bool:
    """Check whether the process-wide logging setup has run."""
    return _installed


def install_loop_exception_filter(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Silence unhandled-exception reports from the loop that are known noise.

    Everything else goes to the loop's default handler.
    """
    loop = loop or asyncio.get_event_loop()

    def handler(event_loop: asyncio.AbstractEventLoop, context: dict) -> None:
        if is_noise(context.get("exception")) or is_noise(context.get("message", "")):
            return
        event_loop.default_exception_handler(context)

    loop.set_exception_handler(handler)
