"""
Pairing Module

Phone validation, the pairing orchestration service and its HTTP endpoints.
"""

from pairing_api.pairing.router import router as pairing_router
from pairing_api.pairing.service import PairingService

__all__ = ["PairingService", "pairing_router"]
