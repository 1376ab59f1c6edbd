"""
Cooperative cancellation for exploration runs.
"""

import asyncio
import logging
from typing import Optional

from ..errors import ExplorationCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    A single abort signal shared by every suspension point of one run.

    The caller keeps a reference and calls cancel(); the explorer calls
    raise_if_cancelled() at loop boundaries.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by caller"):
        if not self._event.is_set():
            logger.info(f"[CANCEL] {reason}")
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = ""):
        if self._event.is_set():
            raise ExplorationCancelled(stage)

    async def sleep(self, ms: int, stage: str = "sleep"):
        """Sleep up to ms milliseconds, waking early and raising if cancelled"""
        self.raise_if_cancelled(stage)
        if ms <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=ms / 1000)
        except asyncio.TimeoutError:
            return
        raise ExplorationCancelled(stage)
