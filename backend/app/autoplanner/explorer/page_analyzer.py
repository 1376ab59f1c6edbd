"""
Page Analyzer

Snapshots the structure of a page (buttons, inputs, links, forms,
headings) and gathers candidates for the "notable elements" of a test step.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..elements import has_random_hash_id
from ..models import KeyElement

logger = logging.getLogger(__name__)


@dataclass
class PageInfo:
    """Structural snapshot of one page"""
    url: str
    title: str
    buttons: List[Dict[str, Any]] = field(default_factory=list)
    inputs: List[Dict[str, Any]] = field(default_factory=list)
    links: List[Dict[str, Any]] = field(default_factory=list)
    forms: List[Dict[str, Any]] = field(default_factory=list)
    headings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.buttons or self.inputs or self.links or self.forms or self.headings)

    @property
    def heading_texts(self) -> List[str]:
        return [h.get("text", "") for h in self.headings if h.get("text")]


ANALYZE_SCRIPT = r"""
() => {
  const text = (el) => (el.textContent || '').replace(/\s+/g, ' ').trim();
  const firstClass = (el) => (typeof el.className === 'string' && el.className.trim())
    ? '.' + el.className.trim().split(/\s+/)[0] : null;
  const buttons = Array.from(document.querySelectorAll('button, [role="button"], input[type="button"], input[type="submit"]'))
    .map((el) => ({
      text: text(el) || el.getAttribute('aria-label') || el.value || '',
      selector: el.id ? `#${el.id}` : (firstClass(el) || el.tagName.toLowerCase()),
    }));
  const inputs = Array.from(document.querySelectorAll('input, textarea, select'))
    .map((el) => ({
      type: el.type || el.tagName.toLowerCase(),
      placeholder: el.placeholder || '',
      name: el.name || '',
      selector: el.id ? `#${el.id}` : (el.name ? `[name="${el.name}"]` : el.tagName.toLowerCase()),
    }));
  const links = Array.from(document.querySelectorAll('a[href]'))
    .map((el) => ({
      text: text(el) || el.getAttribute('aria-label') || '',
      href: el.href,
      selector: el.id ? `#${el.id}` : (firstClass(el) || `a[href="${el.getAttribute('href')}"]`),
    }));
  const forms = Array.from(document.querySelectorAll('form'))
    .map((form) => ({
      action: form.action || '',
      method: (form.method || 'get').toLowerCase(),
      inputs: form.querySelectorAll('input, textarea, select').length,
    }));
  const headings = Array.from(document.querySelectorAll('h1, h2, h3'))
    .map((h) => ({ tag: h.tagName.toLowerCase(), text: text(h), id: h.id || null }))
    .filter((h) => h.text.length > 0)
    .slice(0, 5);
  return {
    url: window.location.href,
    title: document.title,
    buttons, inputs, links, forms, headings,
  };
}
"""

NOTABLE_CANDIDATES_SCRIPT = r"""
(args) => {
  const { selectors, maxElements, maxDepth } = args;
  const results = [];
  const stack = [{ root: document, depth: 0 }];
  while (stack.length && results.length < maxElements) {
    const { root, depth } = stack.pop();
    try {
      root.querySelectorAll(selectors).forEach((el) => {
        if (results.length >= maxElements) return;
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        if (rect.width === 0 || rect.height === 0 || style.display === 'none' || style.visibility === 'hidden') return;
        const text = (el.textContent || '').replace(/\s+/g, ' ').trim().substring(0, 150);
        const cls = (typeof el.className === 'string' && el.className.trim()) ? el.className.trim().split(/\s+/)[0] : null;
        results.push({
          tag: el.tagName.toLowerCase(),
          text: text || el.getAttribute('aria-label') || null,
          id: el.id || null,
          selector: el.id ? `#${el.id}` : (cls ? `${el.tagName.toLowerCase()}.${cls}` : el.tagName.toLowerCase()),
          href: el.getAttribute('href'),
          role: el.getAttribute('role'),
        });
      });
      if (depth < maxDepth) {
        root.querySelectorAll('*').forEach((el) => {
          if (el.shadowRoot) stack.push({ root: el.shadowRoot, depth: depth + 1 });
        });
      }
    } catch (e) {
      // skip this sub-tree
    }
  }
  return results;
}
"""


class PageAnalyzer:
    """
    Analyzes pages reached during exploration.

    Features:
    - Structural snapshot through a single page.evaluate call
    - Key elements (headings) for expected results
    - Shadow-aware notable element candidates
    """

    NOTABLE_SELECTORS = (
        "h1, h2, h3, main, form, button, [role='button'], [role='alert'], "
        "[role='status'], [role='main'], input, textarea, select, a[href], table, nav"
    )
    MAX_NOTABLE_CANDIDATES = 100
    MAX_SHADOW_DEPTH = 10

    async def analyze(self, page) -> PageInfo:
        """Snapshot the current page; returns an empty PageInfo if the page cannot be read"""
        try:
            data = await page.evaluate(ANALYZE_SCRIPT)
        except Exception as e:
            logger.warning(f"[ANALYZER] Could not analyze {page.url}: {e}")
            return PageInfo(url=page.url, title="")

        if not isinstance(data, dict):
            return PageInfo(url=page.url, title="")

        url = data.get("url") or page.url
        title = data.get("title") or ""
        info = PageInfo(
            url=url,
            title=title,
            buttons=list(data.get("buttons") or []),
            inputs=list(data.get("inputs") or []),
            links=list(data.get("links") or []),
            forms=list(data.get("forms") or []),
            headings=list(data.get("headings") or [])[:5],
        )
        logger.info(
            f"[ANALYZER] {title or url}: {len(info.buttons)} buttons, {len(info.links)} links, "
            f"{len(info.inputs)} inputs, {len(info.forms)} forms"
        )
        return info

    def key_elements(self, info: PageInfo) -> List[KeyElement]:
        """Headings of the page, used as expected results"""
        elements = []
        for heading in info.headings[:5]:
            text = (heading.get("text") or "").strip()
            if not text:
                continue
            element_id = heading.get("id") or None
            if has_random_hash_id(element_id):
                element_id = None
            elements.append(KeyElement(tag=heading.get("tag") or None, text=text, id=element_id))
        return elements

    async def collect_notable_candidates(self, page) -> List[Dict[str, Any]]:
        """Visible elements (shadow DOM included) the oracle may pick notable ones from"""
        try:
            raw = await page.evaluate(
                NOTABLE_CANDIDATES_SCRIPT,
                {
                    "selectors": self.NOTABLE_SELECTORS,
                    "maxElements": self.MAX_NOTABLE_CANDIDATES,
                    "maxDepth": self.MAX_SHADOW_DEPTH,
                },
            )
        except Exception as e:
            logger.warning(f"[ANALYZER] Could not collect notable candidates: {e}")
            return []

        candidates = []
        for item in raw or []:
            if not isinstance(item, dict):
                continue
            if has_random_hash_id(item.get("id")):
                item = dict(item, id=None)
                if (item.get("selector") or "").startswith("#"):
                    item["selector"] = item.get("tag")
            candidates.append(item)
        return candidates
