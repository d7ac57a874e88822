"""Wallet session state machine."""

from zerounbound.session.manager import SessionState, SessionStatus, WalletSession

__all__ = ["SessionState", "SessionStatus", "WalletSession"]
