"""
Pairing session state kept in memory while a device is being linked.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class SessionStatus(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    FAILED = "failed"
    # Reported by the status endpoint only, never stored.
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class PairingSession:
    """One pairing attempt for a phone number."""

    session_id: str
    phone: str
    auth_dir: Path
    client: Any = None
    status: SessionStatus = SessionStatus.PENDING
    session: Optional[str] = None
    code: Optional[str] = None
    created: float = field(default_factory=time.time)

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created > ttl_seconds

    @property
    def is_connected(self) -> bool:
        return self.status == SessionStatus.CONNECTED
