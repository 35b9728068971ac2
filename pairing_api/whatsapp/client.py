"""
WhatsApp protocol client seam.

The pairing service only needs a handful of operations from the multi-device
client: connect, ask for a pairing code, report connection changes, send a
text and close. LinkedDeviceClient describes them; NeonizeLinkClient in
neonize_client.py implements them over the neonize library.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol

from pairing_api.config import Settings

CONNECTION_OPEN = "open"
CONNECTION_CLOSE = "close"


@dataclass(frozen=True)
class ConnectionUpdate:
    """A change of the linked device connection."""

    connection: str
    logged_out: bool = False
    reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.connection == CONNECTION_OPEN

    @property
    def is_closed(self) -> bool:
        return self.connection == CONNECTION_CLOSE


ConnectionHandler = Callable[[ConnectionUpdate], Awaitable[None]]


class LinkedDeviceClient(Protocol):
    """What the pairing flow needs from a multi-device protocol client."""

    def on_connection_update(self, handler: ConnectionHandler) -> None:
        ...

    async def connect(self) -> None:
        ...

    async def request_pairing_code(self, phone: str) -> str:
        ...

    async def save_credentials(self) -> None:
        ...

    async def send_text(self, phone: str, text: str) -> None:
        ...

    async def close(self) -> None:
        ...


LinkedDeviceClientFactory = Callable[[Path, str, Settings], LinkedDeviceClient]


def get_client_factory() -> LinkedDeviceClientFactory:
    """
    Return the factory building real protocol clients.

    The neonize binding loads a native library on import, so it is only
    imported once a client is actually needed.
    """

    def factory(auth_dir: Path, session_id: str, settings: Settings) -> LinkedDeviceClient:
        from pairing_api.whatsapp.neonize_client import NeonizeLinkClient

        return NeonizeLinkClient(auth_dir, session_id, settings)

    return factory
