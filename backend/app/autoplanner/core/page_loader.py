"""
Page Loader

Bounded waits for page readiness. Every wait treats expiry as
"proceed anyway": target applications cannot be assumed to settle.
"""

import logging
from typing import Optional

from ..config import PlannerConfig

logger = logging.getLogger(__name__)


class PageLoader:
    """Waits for load states, rendered content and post-action settling"""

    READY_NETWORK_IDLE_MS = 15000
    BODY_CONTENT_MS = 10000
    RENDER_GRACE_MS = 3000
    NAVIGATION_IDLE_MS = 2000

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()

    async def wait_for_load_state(self, page, state: str = "domcontentloaded", timeout: int = 5000) -> bool:
        try:
            await page.wait_for_load_state(state, timeout=timeout)
            return True
        except Exception as e:
            logger.debug(f"[LOADER] {state} not reached within {timeout}ms: {e}")
            return False

    async def wait_for_network_idle(self, page, timeout: int = NAVIGATION_IDLE_MS) -> bool:
        return await self.wait_for_load_state(page, "networkidle", timeout)

    async def wait_until_ready(self, page):
        """Wait for network idle, a non-empty body and a short render grace period"""
        await self.wait_for_network_idle(page, self.READY_NETWORK_IDLE_MS)
        try:
            await page.wait_for_function(
                "() => document.body && document.body.children.length > 0",
                timeout=self.BODY_CONTENT_MS,
            )
        except Exception as e:
            logger.debug(f"[LOADER] Body still empty: {e}")
        await page.wait_for_timeout(self.RENDER_GRACE_MS)
        logger.info(f"[LOADER] Page ready: {page.url}")

    async def settle(self, page):
        """Short pause after an interaction, then a bounded network idle wait"""
        await page.wait_for_timeout(self.config.page_settle_ms)
        await self.wait_for_network_idle(page, self.NAVIGATION_IDLE_MS)

    async def wait_for_navigation(self, page):
        await page.wait_for_timeout(min(1000, self.config.navigation_wait_timeout_ms))
        await self.wait_for_network_idle(page, self.NAVIGATION_IDLE_MS)
