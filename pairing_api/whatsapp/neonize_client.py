"""
LinkedDeviceClient implementation backed by neonize (whatsmeow).

Each pairing session gets its own NewAClient whose credential store is an
SQLite file inside the session's auth folder.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from neonize.aioze.client import NewAClient
from neonize.aioze.events import (
    ConnectedEv,
    ConnectFailureEv,
    DisconnectedEv,
    LoggedOutEv,
    PairStatusEv,
)
from neonize.exc import NeonizeError
from neonize.proto.waCompanionReg.WAWebProtobufsCompanionReg_pb2 import DeviceProps
from neonize.utils import build_jid
from neonize.utils.enum import ClientName, ClientType

from pairing_api.config import Settings
from pairing_api.exceptions import ProtocolClientError
from pairing_api.logger import logger
from pairing_api.whatsapp.client import (
    CONNECTION_CLOSE,
    CONNECTION_OPEN,
    ConnectionHandler,
    ConnectionUpdate,
)

CREDENTIALS_FILE = "session.sqlite3"


class NeonizeLinkClient:
    """Drives one neonize client through the pairing flow."""

    def __init__(self, auth_dir: Path, session_id: str, settings: Settings):
        self.auth_dir = Path(auth_dir)
        self.session_id = session_id
        self.settings = settings
        self._handlers: List[ConnectionHandler] = []
        self._client = NewAClient(
            str(self.auth_dir / CREDENTIALS_FILE),
            props=DeviceProps(os=settings.browser_name, platformType=DeviceProps.CHROME),
            uuid=session_id,
        )
        self._client.event(ConnectedEv)(self._on_connected)
        self._client.event(LoggedOutEv)(self._on_logged_out)
        self._client.event(DisconnectedEv)(self._on_disconnected)
        self._client.event(ConnectFailureEv)(self._on_connect_failure)
        self._client.event(PairStatusEv)(self._on_pair_status)

    def on_connection_update(self, handler: ConnectionHandler) -> None:
        self._handlers.append(handler)

    async def _emit(self, update: ConnectionUpdate) -> None:
        for handler in self._handlers:
            await handler(update)

    async def _on_connected(self, _: NewAClient, __: ConnectedEv) -> None:
        await self._emit(ConnectionUpdate(CONNECTION_OPEN))

    async def _on_logged_out(self, _: NewAClient, event: LoggedOutEv) -> None:
        await self._emit(
            ConnectionUpdate(CONNECTION_CLOSE, logged_out=True, reason=str(event.Reason))
        )

    async def _on_disconnected(self, _: NewAClient, __: DisconnectedEv) -> None:
        await self._emit(ConnectionUpdate(CONNECTION_CLOSE, reason="disconnected"))

    async def _on_connect_failure(self, _: NewAClient, event: ConnectFailureEv) -> None:
        await self._emit(ConnectionUpdate(CONNECTION_CLOSE, reason=event.Message or "connect_failure"))

    async def _on_pair_status(self, _: NewAClient, event: PairStatusEv) -> None:
        if event.Status == PairStatusEv.ERROR:
            await self._emit(ConnectionUpdate(CONNECTION_CLOSE, reason=event.Error or "pair_error"))

    async def connect(self) -> None:
        try:
            await self._client.connect()
        except NeonizeError as e:
            raise ProtocolClientError("Failed to connect to WhatsApp", original_error=str(e)) from e

    async def request_pairing_code(self, phone: str) -> str:
        try:
            return await self._client.PairPhone(
                phone,
                show_push_notification=True,
                client_name=ClientName.LINUX,
                client_type=ClientType.CHROME,
            )
        except NeonizeError as e:
            raise ProtocolClientError("Pairing code request failed", original_error=str(e)) from e

    async def save_credentials(self) -> None:
        # whatsmeow writes its SQLite store as events arrive.
        return None

    async def send_text(self, phone: str, text: str) -> None:
        try:
            await self._client.send_message(build_jid(phone), text)
        except NeonizeError as e:
            raise ProtocolClientError("Failed to send message", original_error=str(e)) from e

    async def close(self) -> None:
        try:
            await self._client.disconnect()
            await self._client.stop()
        except NeonizeError as e:
            raise ProtocolClientError("Failed to close client", original_error=str(e)) from e
        finally:
            logger.debug("protocol_client_closed", session_id=self.session_id)
