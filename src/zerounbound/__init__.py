"""ZeroUnbound deploy core: wallet session orchestration and contract origination."""

__version__ = "0.1.0"
