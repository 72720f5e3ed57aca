"""
Expiry sweeper: retires handshakes nobody answered.

Every `interval` seconds, drops INITIATED handshakes older than the
expiry window from the HandshakeStore. Runs as an asyncio task on the
server loop, independent of request traffic.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from .storage import HandshakeStore, utc_now

logger = logging.getLogger("hyve_relay.sweeper")


class ExpirySweeper:
    def __init__(self, store: HandshakeStore, window: timedelta, interval: float):
        self._store = store
        self._window = window
        self._interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_run_at: Optional[str] = None
        self._total_runs = 0
        self._total_expired = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def get_health(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "window_seconds": int(self._window.total_seconds()),
            "interval_seconds": self._interval,
            "last_run_at": self._last_run_at,
            "total_runs": self._total_runs,
            "total_expired": self._total_expired,
        }

    def run_once(self) -> int:
        """One sweep pass. Atomic with respect to other store operations."""
        removed = self._store.sweep_expired(self._window)
        self._total_runs += 1
        self._total_expired += removed
        self._last_run_at = utc_now().isoformat()
        if removed:
            logger.info("[SWEEPER] expired %d handshake(s)", removed)
        else:
            logger.debug("[SWEEPER] nothing to expire")
        return removed

    async def start(self):
        if self._running:
            logger.warning("[SWEEPER] Already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "[SWEEPER] Started (window=%ss, interval=%ss)",
            int(self._window.total_seconds()), self._interval,
        )

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("[SWEEPER] Stopped")

    async def _run_loop(self):
        while self._running:
            try:
                self.run_once()
            except Exception:
                logger.exception("[SWEEPER] Sweep pass failed")
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
