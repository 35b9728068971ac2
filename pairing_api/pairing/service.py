"""
Pairing orchestration.

Drives a protocol client from "phone number submitted" to "session string
delivered": request a pairing code, wait for the linked device to come
online, pack its credentials and send them to the user.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Optional, Set

from pairing_api.config import Settings
from pairing_api.exceptions import PairingCodeError, PairingRequestError
from pairing_api.logger import logger, mask_phone
from pairing_api.pairing.phone import format_pairing_code, validate_phone
from pairing_api.sessions.encoder import encode_session
from pairing_api.sessions.models import PairingSession, SessionStatus
from pairing_api.sessions.registry import SessionRegistry
from pairing_api.whatsapp.client import (
    ConnectionUpdate,
    LinkedDeviceClient,
    LinkedDeviceClientFactory,
)
from pairing_api.whatsapp.delivery import deliver_session

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PairingCodeResult:
    session_id: str
    code: str


@dataclass(frozen=True)
class SessionStatusResult:
    status: SessionStatus
    session: Optional[str] = None


class PairingService:
    """Request handlers and protocol callbacks for the pairing flow."""

    def __init__(
        self,
        settings: Settings,
        registry: SessionRegistry,
        client_factory: LinkedDeviceClientFactory,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.registry = registry
        self.client_factory = client_factory
        self._sleep = sleep
        self._linking: Set[str] = set()
        self._close_tasks: Set[asyncio.Task] = set()

    async def request_code(self, raw_phone: Optional[str]) -> PairingCodeResult:
        """
        Start a pairing attempt for ``raw_phone`` and return its pairing code.

        Raises:
            InvalidPhoneNumberError: missing or malformed number
            PairingCodeError: the protocol client refused to issue a code or
                did not answer in time
            PairingRequestError: any other setup failure, including a connect
                timeout
        """
        phone = validate_phone(raw_phone)
        session_id = self.registry.generate_id()
        timeout = self.settings.connect_timeout_seconds
        client: Optional[LinkedDeviceClient] = None

        try:
            auth_dir = self.registry.make_auth_dir(session_id)
            client = self.client_factory(auth_dir, session_id, self.settings)
            client.on_connection_update(partial(self.handle_connection_update, session_id))
            self.registry.create(phone, client, session_id=session_id)

            await asyncio.wait_for(client.connect(), timeout)
            # The socket needs a moment before it accepts a pairing request.
            await self._sleep(self.settings.socket_ready_delay_seconds)
        except Exception as e:
            logger.exception(
                "pairing_setup_failed",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._discard(session_id, client)
            raise PairingRequestError() from e

        try:
            raw_code = await asyncio.wait_for(client.request_pairing_code(phone), timeout)
        except Exception as e:
            logger.warning(
                "pairing_code_failed",
                session_id=session_id,
                phone=mask_phone(phone),
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._discard(session_id, client)
            raise PairingCodeError() from e

        code = format_pairing_code(raw_code)
        self.registry.update(session_id, code=code)
        logger.info(
            "pairing_code_issued",
            session_id=session_id,
            phone=mask_phone(phone),
            code=code,
        )
        return PairingCodeResult(session_id=session_id, code=code)

    async def handle_connection_update(self, session_id: str, update: ConnectionUpdate) -> None:
        """Callback registered on the protocol client of ``session_id``."""
        session = self.registry.get(session_id)
        if session is None:
            # Expired or discarded while the client was still running.
            return

        try:
            if update.is_open:
                await self._on_open(session)
            elif update.is_closed:
                self._on_close(session, update)
        except Exception as e:
            logger.exception("connection_update_failed", session_id=session_id, error=str(e))
            self.registry.mark_failed(session_id)

    async def _on_open(self, session: PairingSession) -> None:
        session_id = session.session_id
        if session.is_connected or session_id in self._linking:
            return

        self._linking.add(session_id)
        try:
            logger.info("whatsapp_connected", session_id=session_id, phone=mask_phone(session.phone))

            await session.client.save_credentials()
            # Let the client finish writing its credential store.
            await self._sleep(self.settings.credentials_flush_delay_seconds)

            encoded = encode_session(session.auth_dir)
            updated = self.registry.update(
                session_id, status=SessionStatus.CONNECTED, session=encoded
            )
            if updated is None:
                return

            if encoded:
                await deliver_session(
                    session.client,
                    session.phone,
                    encoded,
                    brand=self.settings.brand_name,
                    interval=self.settings.message_interval_seconds,
                    sleep=self._sleep,
                )
            else:
                logger.error("session_string_unavailable", session_id=session_id)

            self._schedule_close(updated)
        finally:
            self._linking.discard(session_id)

    def _on_close(self, session: PairingSession, update: ConnectionUpdate) -> None:
        if update.logged_out:
            logger.info("whatsapp_logged_out", session_id=session.session_id, reason=update.reason)
            return

        updated = self.registry.mark_failed(session.session_id)
        if updated is not None and updated.status == SessionStatus.FAILED:
            logger.warning(
                "pairing_failed",
                session_id=session.session_id,
                reason=update.reason,
            )

    def _schedule_close(self, session: PairingSession) -> None:
        task = asyncio.get_running_loop().create_task(self._close_later(session))
        self._close_tasks.add(task)
        task.add_done_callback(self._close_tasks.discard)

    async def _close_later(self, session: PairingSession) -> None:
        await self._sleep(self.settings.socket_close_delay_seconds)
        await self._close_client(session.session_id, session.client)

    async def _close_client(self, session_id: str, client: Optional[LinkedDeviceClient]) -> None:
        if client is None:
            return
        try:
            await client.close()
        except Exception as e:
            logger.warning("protocol_client_close_failed", session_id=session_id, error=str(e))

    async def _discard(self, session_id: str, client: Optional[LinkedDeviceClient]) -> None:
        self.registry.remove(session_id)
        await self._close_client(session_id, client)

    def get_status(self, session_id: str) -> SessionStatusResult:
        session = self.registry.get(session_id)
        if session is None:
            return SessionStatusResult(status=SessionStatus.NOT_FOUND)
        if session.is_connected and session.session:
            return SessionStatusResult(status=SessionStatus.CONNECTED, session=session.session)
        return SessionStatusResult(status=session.status)

    async def shutdown(self) -> None:
        """Cancel pending client closes and tear down every session."""
        for task in list(self._close_tasks):
            task.cancel()
        if self._close_tasks:
            await asyncio.gather(*self._close_tasks, return_exceptions=True)
        await self.registry.close_all()
