"""
Cookie consent handling.

Dismisses consent banners before the explorer looks for elements, so the
banner's own buttons are not mistaken for application features.
"""

import logging
import re

logger = logging.getLogger(__name__)


CONSENT_CONTAINER_SELECTORS = [
    '[id*="cookie" i]',
    '[class*="cookie" i]',
    '[id*="consent" i]',
    '[class*="consent" i]',
    '[id*="gdpr" i]',
    '[class*="gdpr" i]',
]

CONSENT_BUTTONS = 'button, [role="button"], input[type="button"], input[type="submit"]'

ACCEPT_PATTERN = re.compile(r"accept|agree|allow|got it|ok|continue|akzeptieren|zustimmen", re.I)


class CookieConsentHandler:
    """Clicks the accept button of a visible cookie/consent popup, if any"""

    def __init__(self, click_timeout_ms: int = 3000):
        self.click_timeout_ms = click_timeout_ms

    async def dismiss(self, page) -> bool:
        """
        Try to dismiss a consent popup.

        Returns:
            True if a popup button was clicked
        """
        for selector in CONSENT_CONTAINER_SELECTORS:
            try:
                popup = page.locator(selector).first
                if not await popup.is_visible():
                    continue

                buttons = await popup.locator(CONSENT_BUTTONS).all()
                if not buttons:
                    continue

                target = buttons[0]
                for button in buttons:
                    text = (await button.text_content()) or ""
                    if ACCEPT_PATTERN.search(text):
                        target = button
                        break

                await target.click(timeout=self.click_timeout_ms)
                await page.wait_for_timeout(300)
                logger.info(f"[CONSENT] Dismissed consent popup ({selector})")
                return True
            except Exception as e:
                logger.debug(f"[CONSENT] {selector}: {e}")
                continue

        return False
