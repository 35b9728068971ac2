"""
Background sweep of expired pairing sessions.
Uses APScheduler to call SessionRegistry.sweep on a fixed interval.
"""

from __future__ import annotations

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pairing_api.logger import logger
from pairing_api.sessions.registry import SessionRegistry


class SessionCleanupScheduler:
    """Runs the expiry sweep every ``interval_seconds``."""

    JOB_ID = "sweep_expired_sessions"

    def __init__(self, registry: SessionRegistry, interval_seconds: int = 600):
        self.registry = registry
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self):
        """Start the background scheduler."""
        if self.running:
            logger.info("session_cleanup_already_running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Sweep expired pairing sessions",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("session_cleanup_started", interval_seconds=self.interval_seconds)

    def stop(self):
        """Stop the background scheduler."""
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("session_cleanup_stopped")
        self._scheduler = None

    async def run_once(self):
        try:
            removed = await self.registry.sweep()
            if removed:
                logger.info("expired_sessions_swept", count=len(removed))
        except Exception as e:
            logger.error("session_cleanup_error", error=str(e))
