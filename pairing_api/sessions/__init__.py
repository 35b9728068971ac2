"""
Pairing session state: models, the in-memory registry and its cleanup job.
"""

from pairing_api.sessions.models import PairingSession, SessionStatus
from pairing_api.sessions.registry import SessionRegistry

__all__ = ["PairingSession", "SessionRegistry", "SessionStatus"]
