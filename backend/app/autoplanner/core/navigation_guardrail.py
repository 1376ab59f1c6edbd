"""
Navigation Guardrail

Keeps an exploration run on the target origin and provides the
"just make progress" escape hatch used after repeated non-progress.
"""

import logging
from typing import Iterable, Optional

from ..config import PlannerConfig
from .page_loader import PageLoader
from .url_tracker import normalize_url, origin_of

logger = logging.getLogger(__name__)


UNVISITED_LINKS_SCRIPT = r"""
(args) => {
  const links = [];
  document.querySelectorAll('a[href]').forEach((anchor) => {
    let url;
    try { url = new URL(anchor.href); } catch (e) { return; }
    if (url.origin !== args.origin) return;
    if ((anchor.getAttribute('href') || '').includes('#')) return;
    if (anchor.href === window.location.href) return;
    links.push({
      href: anchor.href,
      text: (anchor.textContent || '').replace(/\s+/g, ' ').trim() || anchor.getAttribute('aria-label') || '',
    });
  });
  return links;
}
"""


class NavigationGuardrail:
    """
    Same-origin enforcement and forced navigation.

    Violations are logged and corrected, never raised.
    """

    def __init__(
        self,
        base_origin: str,
        initial_url: str,
        config: Optional[PlannerConfig] = None,
        page_loader: Optional[PageLoader] = None
    ):
        self.base_origin = base_origin.lower().rstrip("/")
        self.initial_url = initial_url
        self.config = config or PlannerConfig()
        self.page_loader = page_loader or PageLoader(self.config)
        self.deviations = 0

    async def ensure_same_origin(self, page) -> bool:
        """
        Navigate back to the initial URL if the page left the base origin.

        Returns:
            True if the page is (back) on the base origin
        """
        current_origin = origin_of(page.url)
        if current_origin == self.base_origin:
            return True

        self.deviations += 1
        logger.warning(
            f"[GUARDRAIL] Left target origin ({current_origin or page.url} vs {self.base_origin}), "
            f"returning to {self.initial_url}"
        )
        try:
            await page.goto(
                self.initial_url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_wait_timeout_ms,
            )
            await page.wait_for_timeout(500)
        except Exception as e:
            logger.error(f"[GUARDRAIL] Could not return to {self.initial_url}: {e}")
            return False

        return origin_of(page.url) == self.base_origin

    async def force_new_page(self, page, visited: Iterable[str]) -> Optional[str]:
        """
        Click the first same-origin, non-fragment anchor whose target was not visited.

        Returns:
            The normalized URL reached, or None if no unvisited link worked
        """
        visited_set = set(visited)
        try:
            links = await page.evaluate(UNVISITED_LINKS_SCRIPT, {"origin": self.base_origin})
        except Exception as e:
            logger.warning(f"[GUARDRAIL] Could not list links for forced navigation: {e}")
            return None

        target = None
        for link in links or []:
            href = link.get("href") if isinstance(link, dict) else None
            if href and normalize_url(href) not in visited_set:
                target = link
                break

        if target is None:
            logger.info("[GUARDRAIL] No unvisited same-origin link left")
            return None

        href = target["href"]
        text = (target.get("text") or "").strip()
        logger.info(f"[GUARDRAIL] Forcing navigation to {href}")

        try:
            if text:
                await page.get_by_role("link", name=text).first.click(timeout=self.config.click_timeout_ms)
            else:
                await page.goto(href, wait_until="domcontentloaded", timeout=self.config.page_load_timeout_ms)
        except Exception as e:
            logger.debug(f"[GUARDRAIL] Click on '{text}' failed, navigating directly: {e}")
            try:
                await page.goto(href, wait_until="domcontentloaded", timeout=self.config.page_load_timeout_ms)
            except Exception as goto_error:
                logger.warning(f"[GUARDRAIL] Forced navigation to {href} failed: {goto_error}")
                return None

        await self.page_loader.wait_for_load_state(page, "domcontentloaded", 3000)
        await self.ensure_same_origin(page)

        reached = normalize_url(page.url)
        if reached in visited_set:
            logger.info(f"[GUARDRAIL] Forced navigation landed on visited page {reached}")
            return None
        return reached
