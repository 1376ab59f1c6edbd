"""
Unit tests for CookieConsentHandler.
"""

import pytest
from unittest.mock import AsyncMock

from autoplanner.core.cookie_consent import CONSENT_CONTAINER_SELECTORS, CookieConsentHandler


def consent_button(text):
    button = AsyncMock()
    button.text_content = AsyncMock(return_value=text)
    button.click = AsyncMock()
    return button


class TestCookieConsent:
    """Test consent popup dismissal."""

    @pytest.mark.asyncio
    async def test_no_popup(self, mock_page, mock_locator):
        """Test nothing is clicked when no container is visible."""
        assert not await CookieConsentHandler().dismiss(mock_page)

        assert mock_page.locator.call_count == len(CONSENT_CONTAINER_SELECTORS)
        mock_locator.click.assert_not_called()

    @pytest.mark.asyncio
    async def test_clicks_accept_button(self, mock_page, mock_locator):
        """Test the accept button is preferred over other buttons."""
        settings = consent_button("Settings")
        accept = consent_button("Accept all")
        mock_locator.is_visible = AsyncMock(return_value=True)
        mock_locator.all = AsyncMock(return_value=[settings, accept])

        assert await CookieConsentHandler(click_timeout_ms=1000).dismiss(mock_page)

        accept.click.assert_called_once_with(timeout=1000)
        settings.click.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_button_without_accept_text(self, mock_page, mock_locator):
        """Test the first button is clicked when none reads like accept."""
        close = consent_button("X")
        mock_locator.is_visible = AsyncMock(return_value=True)
        mock_locator.all = AsyncMock(return_value=[close])

        assert await CookieConsentHandler().dismiss(mock_page)
        close.click.assert_called_once()

    @pytest.mark.asyncio
    async def test_click_failure_moves_on(self, mock_page, mock_locator):
        """Test a failing click is not raised."""
        broken = consent_button("Accept")
        broken.click = AsyncMock(side_effect=Exception("detached"))
        mock_locator.is_visible = AsyncMock(return_value=True)
        mock_locator.all = AsyncMock(return_value=[broken])

        assert not await CookieConsentHandler().dismiss(mock_page)
        assert broken.click.call_count == len(CONSENT_CONTAINER_SELECTORS)
