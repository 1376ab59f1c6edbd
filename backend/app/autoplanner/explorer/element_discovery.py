"""
Element Discovery

Finds the interactive elements of the current page, including the ones
rendered inside (nested) open shadow roots.

The walk happens in a single in-page script that keeps an explicit stack
of (root, host path) pairs, so every element carries the chain of host
descriptors needed to re-locate it later.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import PlannerConfig
from ..core.interaction_tracker import make_interaction_key
from ..elements import ElementKind, InteractiveElement

logger = logging.getLogger(__name__)


DISCOVERY_SCRIPT = r"""
(args) => {
  const { origin, ignoredTags, mode, maxFallback } = args;
  const ignoredSelector = ignoredTags.length ? ignoredTags.join(', ') : null;
  const RANDOM_ID = [
    /^invoker-[a-z0-9]{6,}$/i,
    /^[a-z]+-(?=[a-z]*\d)[a-z0-9]{8,}$/i,
    /-(?=[a-z]*\d)[a-z0-9]{10,}/i,
    /^(?=[a-z]*\d)[a-z0-9]{12,}$/i,
  ];
  const BUTTONS = 'button, [role="button"], input[type="button"], input[type="submit"]';
  const INPUTS = 'input[type="text"], input[type="email"], input[type="search"], ' +
    'input[type="tel"], input[type="number"], textarea, select';
  const FALLBACK_ROLES = ['button', 'link', 'tab', 'menuitem'];
  const results = [];

  const isRandomId = (id) => !!id && RANDOM_ID.some((re) => re.test(id));
  const cssEscape = (v) => (window.CSS && CSS.escape) ? CSS.escape(v) : v.replace(/([^a-zA-Z0-9_-])/g, '\\$1');
  const cleanText = (t) => (t || '').replace(/\s+/g, ' ').trim();

  const isExcluded = (el) => {
    if (!ignoredSelector) return false;
    try { return el.closest(ignoredSelector) !== null; } catch (e) { return false; }
  };

  const isVisible = (el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 &&
      style.display !== 'none' &&
      style.visibility !== 'hidden' &&
      parseFloat(style.opacity || '1') > 0;
  };

  const describeHost = (host) => {
    const tag = host.tagName.toLowerCase();
    if (host.id && !isRandomId(host.id)) return `${tag}#${cssEscape(host.id)}`;
    return tag;
  };

  const nthOfType = (el) => {
    let n = 1;
    let sib = el;
    while ((sib = sib.previousElementSibling)) {
      if (sib.tagName === el.tagName) n++;
    }
    return `${el.tagName.toLowerCase()}:nth-of-type(${n})`;
  };

  const buildSelector = (el, kind) => {
    if (el.id && !isRandomId(el.id)) return `#${cssEscape(el.id)}`;
    const name = el.getAttribute('name');
    if (kind === 'input' && name) return `${el.tagName.toLowerCase()}[name="${name}"]`;
    if (typeof el.className === 'string') {
      const first = el.className.split(/\s+/).filter((c) => c.length > 0)[0];
      if (first) return `.${cssEscape(first)}`;
    }
    if (kind === 'link') return `a[href="${el.getAttribute('href')}"]`;
    return nthOfType(el);
  };

  const describe = (el, kind, path, href) => {
    const rect = el.getBoundingClientRect();
    const aria = el.getAttribute('aria-label') || '';
    let text = cleanText(el.textContent) || aria || el.getAttribute('title') || '';
    if (!text && el.tagName === 'INPUT' && el.type !== 'text') text = el.value || '';
    return {
      kind: kind,
      text: text.substring(0, 100),
      selector: buildSelector(el, kind),
      tag: el.tagName.toLowerCase(),
      ariaLabel: aria || null,
      href: href || null,
      id: el.id || null,
      name: el.getAttribute('name'),
      placeholder: el.getAttribute('placeholder'),
      role: el.getAttribute('role'),
      inputType: el.tagName === 'INPUT' ? (el.type || 'text') : null,
      shadowPath: path.slice(),
      boundingBox: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
      visible: true,
    };
  };

  const acceptLink = (anchor) => {
    const raw = (anchor.getAttribute('href') || '').trim();
    if (!raw || raw === '#' || raw.toLowerCase().startsWith('javascript:')) return null;
    let url;
    try { url = new URL(anchor.href, window.location.href); } catch (e) { return null; }
    if (url.origin !== origin) return null;
    const samePage = url.pathname === window.location.pathname && url.search === window.location.search;
    if (samePage && (!url.hash || url.hash === window.location.hash)) return null;
    return url.href;
  };

  const collectPrimary = (root, path, seen) => {
    const push = (el, kind, href) => {
      if (seen.has(el) || isExcluded(el) || !isVisible(el)) return;
      seen.add(el);
      results.push(describe(el, kind, path, href));
    };

    root.querySelectorAll(BUTTONS).forEach((el) => push(el, 'button', null));

    root.querySelectorAll('a[href]').forEach((el) => {
      const href = acceptLink(el);
      if (href) push(el, 'link', href);
    });

    root.querySelectorAll(INPUTS).forEach((el) => {
      if (el.readOnly || el.disabled) return;
      const name = (el.getAttribute('name') || '').toLowerCase();
      if (name.includes('password') || name.includes('secret')) return;
      push(el, 'input', null);
    });

    root.querySelectorAll('*').forEach((el) => {
      if (seen.has(el)) return;
      if (['A', 'BUTTON', 'INPUT', 'TEXTAREA', 'SELECT'].includes(el.tagName)) return;
      if (el.closest('a, button')) return;
      const role = el.getAttribute('role');
      const style = window.getComputedStyle(el);
      const pointer = style.cursor === 'pointer';
      const parentPointer = el.parentElement && window.getComputedStyle(el.parentElement).cursor === 'pointer';
      const clickable = el.hasAttribute('onclick') || role === 'link' || (pointer && !parentPointer);
      if (!clickable) return;
      const text = cleanText(el.textContent);
      if (text.length < 1 || text.length >= 100) return;
      push(el, 'generic', null);
    });
  };

  const collectFallback = (root, path, seen) => {
    root.querySelectorAll('*').forEach((el) => {
      if (results.length >= maxFallback || seen.has(el)) return;
      const role = el.getAttribute('role');
      const style = window.getComputedStyle(el);
      const candidate = style.cursor === 'pointer' ||
        el.hasAttribute('onclick') ||
        FALLBACK_ROLES.includes(role) ||
        el.tabIndex >= 0 ||
        el.hasAttribute('href');
      if (!candidate || isExcluded(el) || !isVisible(el)) return;
      let kind = 'generic';
      let href = null;
      if (el.tagName === 'A' && el.hasAttribute('href')) {
        href = acceptLink(el);
        if (!href) return;
        kind = 'link';
      } else if (['INPUT', 'TEXTAREA', 'SELECT'].includes(el.tagName)) {
        if (el.readOnly || el.disabled) return;
        kind = 'input';
      } else if (el.tagName === 'BUTTON' || role === 'button') {
        kind = 'button';
      }
      seen.add(el);
      results.push(describe(el, kind, path, href));
    });
  };

  const stack = [{ root: document, path: [] }];
  const seen = new Set();
  while (stack.length) {
    const { root, path } = stack.pop();
    try {
      if (mode === 'fallback') {
        collectFallback(root, path, seen);
      } else {
        collectPrimary(root, path, seen);
      }
      const hosts = [];
      root.querySelectorAll('*').forEach((el) => {
        let shadow = null;
        try { shadow = el.shadowRoot; } catch (e) { shadow = null; }
        if (shadow && !isExcluded(el)) hosts.push({ root: shadow, path: path.concat([describeHost(el)]) });
      });
      for (let i = hosts.length - 1; i >= 0; i--) stack.push(hosts[i]);
    } catch (e) {
      // skip this sub-tree
    }
  }
  return results;
}
"""


class ElementDiscovery:
    """
    Discovers interactive elements on a page.

    Features:
    - Shadow DOM traversal with per-element host paths
    - Exclusion of global chrome (header, nav, footer...) across shadow boundaries
    - Layout + style based visibility
    - Same-origin link filtering
    - Broadened fallback pass for pages where the primary pass finds nothing
    """

    MAX_FALLBACK_ELEMENTS = 20

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()

    @property
    def allowed_kinds(self) -> List[ElementKind]:
        kinds = []
        for value in self.config.element_kinds:
            try:
                kinds.append(ElementKind(value))
            except ValueError:
                logger.warning(f"[DISCOVERY] Unknown element kind in config: {value}")
        return kinds

    async def discover(self, page, origin: str) -> List[InteractiveElement]:
        """
        Return all visible, non-excluded interactive elements.

        Never raises; an empty list means nothing could be found.
        """
        elements = await self._scan(page, origin, mode="primary")
        if elements:
            logger.info(f"[DISCOVERY] Found {len(elements)} interactive elements")
            return elements

        logger.info("[DISCOVERY] Primary pass found nothing, running fallback pass")
        elements = await self._scan(page, origin, mode="fallback")
        logger.info(f"[DISCOVERY] Fallback pass found {len(elements)} elements")
        return elements

    async def _scan(self, page, origin: str, mode: str) -> List[InteractiveElement]:
        try:
            raw = await page.evaluate(
                DISCOVERY_SCRIPT,
                {
                    "origin": origin,
                    "ignoredTags": list(self.config.ignored_tags),
                    "mode": mode,
                    "maxFallback": self.MAX_FALLBACK_ELEMENTS,
                },
            )
        except Exception as e:
            logger.warning(f"[DISCOVERY] {mode} scan failed: {e}")
            return []

        return self._build_elements(raw)

    def _build_elements(self, raw: Any) -> List[InteractiveElement]:
        if not isinstance(raw, list):
            return []

        allowed = set(self.allowed_kinds)
        elements: List[InteractiveElement] = []
        seen_keys = set()

        for item in raw:
            if not isinstance(item, dict):
                continue
            element = InteractiveElement.from_dict(item)
            if element.kind not in allowed or not element.visible:
                continue
            if not is_visible_box(element):
                continue
            key = make_interaction_key(element)
            if key in seen_keys:
                continue
            seen_keys.add(key)
            elements.append(element)

        return elements


def is_visible_box(element: InteractiveElement) -> bool:
    return element.bounding_box.width > 0 and element.bounding_box.height > 0


def summarize(elements: Sequence[InteractiveElement]) -> Dict[str, int]:
    """Count elements per kind (used in logs)"""
    counts: Dict[str, int] = {}
    for element in elements:
        counts[element.kind.value] = counts.get(element.kind.value, 0) + 1
    return counts
