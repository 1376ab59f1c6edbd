"""
Interaction Executor

Performs the chosen action against an element using an ordered chain of
fallback strategies. No single way of addressing an element (href,
accessible name, shadow path, raw selector) works on every page, so each
strategy is tried in turn until one succeeds.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple
from urllib.parse import urlsplit

from ..config import PlannerConfig
from ..elements import ElementKind, InteractiveElement
from .page_loader import PageLoader
from .url_tracker import is_same_origin, normalize_url, origin_of, split_fragment

logger = logging.getLogger(__name__)


Strategy = Tuple[str, Callable[[], Awaitable[bool]]]


class InteractionStatus(Enum):
    """Outcome of an interaction attempt"""
    SUCCESS = "success"
    ALL_STRATEGIES_FAILED = "all_strategies_failed"
    ERROR = "error"


@dataclass
class InteractionResult:
    """Result of interacting with one element"""
    status: InteractionStatus
    action: str
    url_before: str
    url_after: str
    navigated: bool = False
    strategy: Optional[str] = None
    value: Optional[str] = None
    attempted: List[str] = field(default_factory=list)
    overlays_hidden: int = 0
    overlay_retry_used: bool = False
    direct_navigation: bool = False
    execution_time_ms: int = 0
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == InteractionStatus.SUCCESS


# ==================== In-page scripts ====================

HIDE_OVERLAYS_SCRIPT = r"""
(selectors) => {
  let hidden = 0;
  document.querySelectorAll(selectors).forEach((el) => {
    if (el === document.body || el === document.documentElement) return;
    const position = window.getComputedStyle(el).position;
    if (position !== 'fixed' && position !== 'absolute' && position !== 'sticky') return;
    if (el.style.display === 'none') return;
    el.style.setProperty('display', 'none', 'important');
    hidden++;
  });
  return hidden;
}
"""

OBSTRUCTION_SCRIPT = r"""
(el) => {
  const rect = el.getBoundingClientRect();
  const x = rect.left + rect.width / 2;
  const y = rect.top + rect.height / 2;
  const root = el.getRootNode();
  const hit = (root && root.elementFromPoint) ? root.elementFromPoint(x, y) : document.elementFromPoint(x, y);
  return hit === null || hit === el || el.contains(hit);
}
"""

SHADOW_WALK = r"""
  const walk = (path) => {
    let root = document;
    for (const part of path) {
      const host = root.querySelector(part);
      if (!host || !host.shadowRoot) return null;
      root = host.shadowRoot;
    }
    return root;
  };
  const strip = (u) => (u || '').split('#')[0].replace(/\/$/, '');
"""

SHADOW_CLICK_SCRIPT = r"""
(args) => {
""" + SHADOW_WALK + r"""
  const root = walk(args.path);
  if (!root) return false;
  let target = null;
  if (args.href) {
    target = Array.from(root.querySelectorAll('a[href]')).find((a) => a.href === args.href) ||
      Array.from(root.querySelectorAll('a[href]')).find((a) => strip(a.href) === strip(args.href)) || null;
  }
  if (!target && args.selector) {
    try { target = root.querySelector(args.selector); } catch (e) { target = null; }
  }
  if (!target && args.text) {
    const wanted = args.text.trim().toLowerCase();
    target = Array.from(root.querySelectorAll('button, [role="button"], a, [onclick]'))
      .find((el) => (el.textContent || '').trim().toLowerCase() === wanted) || null;
  }
  if (!target) return false;
  target.scrollIntoView({ block: 'center' });
  target.click();
  return true;
}
"""

SHADOW_FILL_SCRIPT = r"""
(args) => {
""" + SHADOW_WALK + r"""
  const root = walk(args.path);
  if (!root) return false;
  let target = null;
  const candidates = [
    args.id ? `#${CSS.escape(args.id)}` : null,
    args.name ? `[name="${args.name}"]` : null,
    args.placeholder ? `[placeholder="${args.placeholder}"]` : null,
    args.selector,
  ].filter(Boolean);
  for (const sel of candidates) {
    try { target = root.querySelector(sel); } catch (e) { target = null; }
    if (target) break;
  }
  if (!target) return false;
  target.focus();
  target.value = args.value;
  target.dispatchEvent(new Event('input', { bubbles: true, composed: true }));
  target.dispatchEvent(new Event('change', { bubbles: true, composed: true }));
  return true;
}
"""


class InteractionExecutor:
    """
    Executes click/fill/hover interactions with fallback chains.

    Features:
    - Ordered strategy chain with early exit on first success
    - Natural click, then forced click, for every locate-then-click strategy
    - Overlay / cookie banner hiding when the target is obstructed
    - Shadow DOM re-location through recorded host paths
    - Fragment-aware navigation detection with a direct-navigation fallback
    - Residual dialog closing
    """

    OVERLAY_SELECTORS = (
        '[class*="overlay"], [class*="modal"], [id*="cookie"], '
        '[class*="cookie"], [class*="consent"]'
    )
    DIALOG_SELECTORS = '[role="dialog"], .modal, .dialog'
    CLOSE_SELECTORS = (
        'button[aria-label*="close" i], button:has-text("Close"), button:has-text("×")'
    )

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        page_loader: Optional[PageLoader] = None
    ):
        self.config = config or PlannerConfig()
        self.page_loader = page_loader or PageLoader(self.config)

    # ==================== Entry Points ====================

    async def interact(
        self,
        page,
        element: InteractiveElement,
        action: Optional[str] = None,
        value: Optional[str] = None
    ) -> InteractionResult:
        """
        Perform an action on an element and report navigation.

        Inputs are always filled. Other elements are clicked, or hovered
        when action="hover". Never raises: failures come back as a result
        with navigated=False.
        """
        start_time = time.time()
        action = self.resolve_action(element, action)
        url_before = page.url
        value = (value or self.value_for(element)) if action == "fill" else None
        result = InteractionResult(
            status=InteractionStatus.ALL_STRATEGIES_FAILED,
            action=action,
            url_before=url_before,
            url_after=url_before,
            value=value,
        )

        try:
            if action == "click":
                result.overlays_hidden += await self.hide_overlays(page)
                strategies = self._click_strategies(page, element, result)
            elif action == "hover":
                strategies = self._hover_strategies(page, element)
            else:
                strategies = self._fill_strategies(page, element, value)

            result.strategy = await self._run_chain(strategies, result)

            if result.strategy is None:
                logger.warning(f"[EXECUTOR] All strategies failed for {element.kind.value} '{element.label[:40]}'")
                result.url_after = page.url
                result.navigated = False
                return self._finish(result, start_time)

            result.status = InteractionStatus.SUCCESS
            await self.page_loader.settle(page)
            result.url_after = page.url
            result.navigated = self.detect_navigation(url_before, result.url_after)

            if (
                action == "click"
                and not result.navigated
                and self._should_navigate_directly(element, result.url_after)
            ):
                logger.info(f"[EXECUTOR] Click produced no navigation, going to {element.href} directly")
                if await self._goto(page, element.href):
                    result.direct_navigation = True
                    result.url_after = page.url
                    result.navigated = self.detect_navigation(url_before, result.url_after)

            await self.close_dialogs(page)
            result.url_after = page.url

        except Exception as e:
            logger.error(f"[EXECUTOR] Interaction error on '{element.label[:40]}': {e}")
            result.status = InteractionStatus.ERROR
            result.error_message = str(e)
            try:
                result.url_after = page.url
            except Exception:
                result.url_after = url_before
            result.navigated = False

        return self._finish(result, start_time)

    @staticmethod
    def resolve_action(element: InteractiveElement, requested: Optional[str] = None) -> str:
        if element.kind == ElementKind.INPUT:
            return "fill"
        if requested == "hover":
            return "hover"
        return "click"

    # ==================== Strategy Chains ====================

    def _hover_strategies(self, page, element: InteractiveElement) -> List[Strategy]:
        strategies: List[Strategy] = []
        if element.selector:
            strategies.append(("selector", lambda: self._hover_locator(page.locator(element.selector).first)))
        if element.label:
            strategies.append(
                ("accessible_name", lambda: self._hover_locator(page.get_by_text(element.label, exact=True).first))
            )
        return strategies

    def _click_strategies(self, page, element: InteractiveElement, result: InteractionResult) -> List[Strategy]:
        strategies: List[Strategy] = []
        is_link = element.kind == ElementKind.LINK and bool(element.href)

        if is_link:
            strategies.append(
                ("href", lambda: self._click_locator(page, page.locator(self._href_selector(element.href)).first, result))
            )

        if element.label:
            if element.kind == ElementKind.GENERIC:
                by_name = lambda: self._click_locator(
                    page, page.get_by_text(element.label, exact=True).first, result
                )
            else:
                role = "link" if element.kind == ElementKind.LINK else "button"
                by_name = lambda: self._click_locator(
                    page, page.get_by_role(role, name=element.label).first, result
                )
            strategies.append(("accessible_name", by_name))

        if element.in_shadow_dom:
            strategies.append(("shadow_path", lambda: self._click_in_shadow(page, element)))

        if element.selector:
            strategies.append(
                ("selector", lambda: self._click_locator(page, page.locator(element.selector).first, result))
            )

        if is_link:
            strategies.append(("direct_navigation", lambda: self._navigate_if_distinct(page, element.href)))

        return strategies

    def _fill_strategies(self, page, element: InteractiveElement, value: str) -> List[Strategy]:
        strategies: List[Strategy] = []

        if element.in_shadow_dom:
            strategies.append(("shadow_path", lambda: self._fill_in_shadow(page, element, value)))

        if element.stable_id:
            strategies.append(
                ("id", lambda: self._fill_locator(page.locator(f"#{element.stable_id}").first, element, value))
            )
        if element.name:
            strategies.append(
                ("name", lambda: self._fill_locator(page.locator(f'[name="{element.name}"]').first, element, value))
            )
        if element.placeholder:
            strategies.append(
                ("placeholder", lambda: self._fill_locator(page.get_by_placeholder(element.placeholder).first, element, value))
            )

        return strategies

    async def _run_chain(self, strategies: List[Strategy], result: InteractionResult) -> Optional[str]:
        for name, attempt in strategies:
            result.attempted.append(name)
            try:
                if await attempt():
                    logger.debug(f"[EXECUTOR] Strategy '{name}' succeeded")
                    return name
            except Exception as e:
                logger.debug(f"[EXECUTOR] Strategy '{name}' failed: {e}")
        return None

    # ==================== Low-level Actions ====================

    async def _click_locator(self, page, locator, result: InteractionResult) -> bool:
        """Natural click, retried once with force=True"""
        await locator.wait_for(state="visible", timeout=self.config.element_wait_timeout_ms)

        if not result.overlay_retry_used and not await self._is_unobstructed(locator):
            logger.info("[EXECUTOR] Target is obstructed, hiding overlays again")
            result.overlay_retry_used = True
            result.overlays_hidden += await self.hide_overlays(page)

        try:
            await locator.click(timeout=self.config.click_timeout_ms)
            return True
        except Exception as e:
            logger.debug(f"[EXECUTOR] Natural click failed, forcing: {e}")

        await locator.click(timeout=self.config.element_wait_timeout_ms, force=True)
        return True

    async def _hover_locator(self, locator) -> bool:
        await locator.hover(timeout=self.config.element_wait_timeout_ms)
        return True

    async def _fill_locator(self, locator, element: InteractiveElement, value: str) -> bool:
        await locator.wait_for(state="visible", timeout=self.config.element_wait_timeout_ms)
        if element.tag == "select":
            try:
                await locator.select_option(index=1, timeout=self.config.click_timeout_ms)
            except Exception:
                await locator.select_option(index=0, timeout=self.config.click_timeout_ms)
            return True
        await locator.fill(value, timeout=self.config.click_timeout_ms)
        return True

    async def _click_in_shadow(self, page, element: InteractiveElement) -> bool:
        return bool(await page.evaluate(
            SHADOW_CLICK_SCRIPT,
            {
                "path": list(element.shadow_path),
                "href": element.href,
                "selector": element.selector,
                "text": element.text,
            },
        ))

    async def _fill_in_shadow(self, page, element: InteractiveElement, value: str) -> bool:
        return bool(await page.evaluate(
            SHADOW_FILL_SCRIPT,
            {
                "path": list(element.shadow_path),
                "id": element.stable_id,
                "name": element.name,
                "placeholder": element.placeholder,
                "selector": element.selector,
                "value": value,
            },
        ))

    async def _navigate_if_distinct(self, page, href: str) -> bool:
        if not self._is_distinct_target(href, page.url):
            return False
        return await self._goto(page, href)

    async def _goto(self, page, href: str) -> bool:
        try:
            await page.goto(href, wait_until="domcontentloaded", timeout=self.config.navigation_wait_timeout_ms)
            return True
        except Exception as e:
            logger.debug(f"[EXECUTOR] Direct navigation to {href} failed: {e}")
            return False

    async def _is_unobstructed(self, locator) -> bool:
        try:
            return bool(await locator.evaluate(OBSTRUCTION_SCRIPT))
        except Exception:
            return True

    # ==================== Page Cleanup ====================

    async def hide_overlays(self, page) -> int:
        """Hide (display:none, never remove) positioned overlays and banners"""
        try:
            hidden = await page.evaluate(HIDE_OVERLAYS_SCRIPT, self.OVERLAY_SELECTORS)
        except Exception as e:
            logger.debug(f"[EXECUTOR] Overlay hiding failed: {e}")
            return 0
        hidden = hidden if isinstance(hidden, int) else 0
        if hidden:
            logger.info(f"[EXECUTOR] Hid {hidden} overlay(s)")
        return hidden

    async def close_dialogs(self, page) -> bool:
        """Close a visible modal/dialog through its close button"""
        try:
            dialog = page.locator(self.DIALOG_SELECTORS).first
            if not await dialog.is_visible():
                return False
            close_button = dialog.locator(self.CLOSE_SELECTORS).first
            await close_button.click(timeout=1000)
            await page.wait_for_timeout(300)
            logger.info("[EXECUTOR] Closed residual dialog")
            return True
        except Exception as e:
            logger.debug(f"[EXECUTOR] No closable dialog: {e}")
            return False

    # ==================== Helpers ====================

    def value_for(self, element: InteractiveElement) -> str:
        input_type = (element.input_type or "").lower()
        if input_type == "email":
            return "test@example.com"
        if input_type == "number":
            return "1"
        if input_type == "tel":
            return "5550100"
        return self.config.fill_value

    @staticmethod
    def detect_navigation(url_before: str, url_after: str) -> bool:
        """Normalized URL change, or a raw fragment change (SPA routing)"""
        if normalize_url(url_before) != normalize_url(url_after):
            return True
        return split_fragment(url_before)[1] != split_fragment(url_after)[1]

    @staticmethod
    def _href_selector(href: str) -> str:
        parts = urlsplit(href)
        relative = parts.path or "/"
        if parts.query:
            relative += f"?{parts.query}"
        if parts.fragment:
            relative += f"#{parts.fragment}"
        return f'a[href="{href}"], a[href="{relative}"]'

    @staticmethod
    def _is_distinct_target(href: Optional[str], current_url: str) -> bool:
        if not href:
            return False
        target = urlsplit(href)
        current = urlsplit(current_url)
        return (target.path.rstrip("/"), target.query) != (current.path.rstrip("/"), current.query)

    def _should_navigate_directly(self, element: InteractiveElement, current_url: str) -> bool:
        return (
            element.kind == ElementKind.LINK
            and bool(element.href)
            and is_same_origin(element.href, origin_of(current_url))
            and self._is_distinct_target(element.href, current_url)
        )

    @staticmethod
    def _finish(result: InteractionResult, start_time: float) -> InteractionResult:
        result.execution_time_ms = int((time.time() - start_time) * 1000)
        return result
