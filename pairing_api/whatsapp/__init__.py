"""
WhatsApp Integration Module

Protocol client seam and delivery of session strings to the user.
"""

from pairing_api.whatsapp.client import (
    ConnectionUpdate,
    LinkedDeviceClient,
    LinkedDeviceClientFactory,
    get_client_factory,
)

__all__ = [
    "ConnectionUpdate",
    "LinkedDeviceClient",
    "LinkedDeviceClientFactory",
    "get_client_factory",
]
