"""
In-memory registry of pairing sessions.

Sessions are keyed by a short random identifier and live only as long as the
process, or until the expiry sweep discards them together with their auth
folder.
"""
from __future__ import annotations

import secrets
import shutil
import string
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pairing_api.logger import logger, mask_phone
from pairing_api.sessions.models import PairingSession, SessionStatus

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_CHUNK_LENGTH = 8


def _random_chunk(length: int = ID_CHUNK_LENGTH) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def remove_auth_dir(path: Path) -> None:
    """Delete an auth folder, ignoring one that is already gone."""
    shutil.rmtree(path, ignore_errors=True)


class SessionRegistry:
    """Map of session id to PairingSession with time-based expiry."""

    def __init__(self, auth_root: Path, ttl_seconds: float = 600):
        self.auth_root = Path(auth_root)
        self.ttl_seconds = ttl_seconds
        self._sessions: Dict[str, PairingSession] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[PairingSession]:
        return iter(list(self._sessions.values()))

    def generate_id(self) -> str:
        """Return a 16 character base-36 id that is not in use."""
        while True:
            session_id = _random_chunk() + _random_chunk()
            if session_id not in self._sessions:
                return session_id

    def auth_dir_for(self, session_id: str) -> Path:
        return self.auth_root / session_id

    def make_auth_dir(self, session_id: str) -> Path:
        path = self.auth_dir_for(session_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def create(
        self,
        phone: str,
        client: Any = None,
        session_id: Optional[str] = None,
        created: Optional[float] = None,
    ) -> PairingSession:
        session_id = session_id or self.generate_id()
        session = PairingSession(
            session_id=session_id,
            phone=phone,
            auth_dir=self.auth_dir_for(session_id),
            client=client,
            created=created if created is not None else time.time(),
        )
        self._sessions[session_id] = session
        logger.debug("session_registered", session_id=session_id, phone=mask_phone(phone))
        return session

    def get(self, session_id: str) -> Optional[PairingSession]:
        return self._sessions.get(session_id)

    def all(self) -> List[PairingSession]:
        return list(self._sessions.values())

    def update(self, session_id: str, **changes: Any) -> Optional[PairingSession]:
        """Replace the entry with a copy carrying ``changes``."""
        current = self._sessions.get(session_id)
        if current is None:
            return None
        updated = replace(current, **changes)
        self._sessions[session_id] = updated
        return updated

    def mark_failed(self, session_id: str) -> Optional[PairingSession]:
        """Flag a session as failed unless it already linked successfully."""
        current = self._sessions.get(session_id)
        if current is None or current.is_connected:
            return current
        return self.update(session_id, status=SessionStatus.FAILED)

    def remove(self, session_id: str, *, purge_files: bool = True) -> Optional[PairingSession]:
        session = self._sessions.pop(session_id, None)
        if purge_files:
            remove_auth_dir(session.auth_dir if session else self.auth_dir_for(session_id))
        return session

    def expired(self, now: Optional[float] = None) -> List[PairingSession]:
        now = time.time() if now is None else now
        return [s for s in self._sessions.values() if s.is_expired(now, self.ttl_seconds)]

    async def _teardown(self, session: PairingSession) -> None:
        if session.client is not None:
            try:
                await session.client.close()
            except Exception as e:
                logger.warning(
                    "session_client_close_failed",
                    session_id=session.session_id,
                    error=str(e),
                )
        remove_auth_dir(session.auth_dir)
        self._sessions.pop(session.session_id, None)

    async def sweep(self, now: Optional[float] = None) -> List[str]:
        """Tear down every expired session; returns the removed ids."""
        removed = []
        for session in self.expired(now):
            await self._teardown(session)
            removed.append(session.session_id)
            logger.info("session_cleaned_up", session_id=session.session_id)
        return removed

    async def close_all(self) -> int:
        sessions = self.all()
        for session in sessions:
            await self._teardown(session)
        if sessions:
            logger.info("sessions_closed", count=len(sessions))
        return len(sessions)
