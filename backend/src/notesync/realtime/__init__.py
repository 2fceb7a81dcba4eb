"""Real-time collaboration."""

from .relay import CollaborationRelay, JoinResult, RelayResult, SessionHandle, Transport

__all__ = ["CollaborationRelay", "JoinResult", "RelayResult", "SessionHandle", "Transport"]
