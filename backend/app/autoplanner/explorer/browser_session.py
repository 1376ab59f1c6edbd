"""
Browser Session

Owns the Playwright browser for an explorer and hands out a fresh
context/page per exploration run, so nothing leaks between runs.
"""

import json
import logging
from typing import Dict, Optional, Tuple

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from ..config import PlannerConfig
from ..core.url_tracker import origin_of

logger = logging.getLogger(__name__)


def build_cookie_script(cookies: Dict[str, str]) -> str:
    """Init script that sets cookies before any page script runs"""
    statements = [
        f"document.cookie = {json.dumps(f'{name}={value}; path=/')};"
        for name, value in cookies.items()
    ]
    return "(() => { try { " + " ".join(statements) + " } catch (e) {} })();"


class BrowserSession:
    """
    Playwright lifecycle for exploration runs.

    Features:
    - Lazy browser launch
    - Fresh context per run (viewport, cookie injection)
    - Idempotent close
    """

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()
        self._playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def start(self):
        if self.browser is not None:
            return
        logger.info("[BROWSER] Starting Playwright")
        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(headless=self.config.headless)
        logger.info(f"[BROWSER] Chromium launched (headless={self.config.headless})")

    async def new_page(self, start_url: str) -> Tuple[BrowserContext, Page]:
        """Close any previous context and open a clean one for start_url"""
        await self.start()
        await self.close_context()

        self.context = await self.browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height}
        )

        if self.config.cookies:
            await self.context.add_init_script(build_cookie_script(self.config.cookies))
            origin = origin_of(start_url)
            if origin:
                await self.context.add_cookies([
                    {"name": name, "value": value, "url": origin}
                    for name, value in self.config.cookies.items()
                ])

        self.page = await self.context.new_page()
        return self.context, self.page

    async def close_context(self):
        if self.context is not None:
            try:
                await self.context.close()
            except Exception as e:
                logger.debug(f"[BROWSER] Context close failed: {e}")
        self.context = None
        self.page = None

    async def close(self):
        await self.close_context()
        if self.browser is not None:
            try:
                await self.browser.close()
            except Exception as e:
                logger.debug(f"[BROWSER] Browser close failed: {e}")
            self.browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("[BROWSER] Closed")

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
