"""Utility modules for ZeroUnbound."""

from zerounbound.utils.diagnostics import configure_logging, install_loop_exception_filter

__all__ = ["configure_logging", "install_loop_exception_filter"]
