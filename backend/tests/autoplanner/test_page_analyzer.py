"""
Unit tests for PageAnalyzer.
"""

import pytest
from unittest.mock import AsyncMock

from autoplanner.explorer.page_analyzer import NOTABLE_CANDIDATES_SCRIPT, PageAnalyzer, PageInfo


def snapshot(**overrides):
    data = {
        "url": "https://example.com/products",
        "title": "All Products",
        "buttons": [{"text": "Add to cart", "selector": ".add"}],
        "inputs": [{"type": "search", "placeholder": "Search", "name": "q", "selector": "[name=\"q\"]"}],
        "links": [{"text": "Home", "href": "https://example.com/", "selector": ".home"}],
        "forms": [{"action": "/search", "method": "get", "inputs": 1}],
        "headings": [{"tag": "h1", "text": f"Heading {i}", "id": None} for i in range(7)],
    }
    data.update(overrides)
    return data


class TestAnalyze:
    """Test page snapshots."""

    @pytest.mark.asyncio
    async def test_analyze(self, mock_page):
        """Test the snapshot fields and page type."""
        mock_page.evaluate = AsyncMock(return_value=snapshot())

        info = await PageAnalyzer().analyze(mock_page)

        assert info.url == "https://example.com/products"
        assert info.title == "All Products"
        assert len(info.buttons) == 1
        assert len(info.forms) == 1
        assert len(info.headings) == 5
        assert not info.is_empty

    @pytest.mark.asyncio
    async def test_evaluate_failure(self, mock_page):
        """Test an unreadable page gives an empty snapshot."""
        mock_page.evaluate = AsyncMock(side_effect=Exception("Execution context was destroyed"))

        info = await PageAnalyzer().analyze(mock_page)

        assert info.url == "https://example.com"
        assert info.title == ""
        assert info.is_empty

    @pytest.mark.asyncio
    async def test_unexpected_result(self, mock_page):
        """Test a non-dict result gives an empty snapshot."""
        mock_page.evaluate = AsyncMock(return_value=None)

        assert (await PageAnalyzer().analyze(mock_page)).is_empty


class TestKeyElements:
    """Test expected-result headings."""

    def test_key_elements(self):
        """Test empty headings are skipped and random ids dropped."""
        info = PageInfo(
            url="https://example.com",
            title="Shop",
            headings=[
                {"tag": "h1", "text": "Welcome", "id": "welcome"},
                {"tag": "h2", "text": "  ", "id": None},
                {"tag": "h2", "text": "Offers", "id": "mat-4f9a8b7c6d"},
            ],
        )

        keys = PageAnalyzer().key_elements(info)

        assert [(k.tag, k.text, k.id) for k in keys] == [("h1", "Welcome", "welcome"), ("h2", "Offers", None)]

    def test_heading_texts(self):
        """Test heading text helper."""
        info = PageInfo(url="u", title="", headings=[{"text": "A"}, {"text": ""}, {"text": "B"}])

        assert info.heading_texts == ["A", "B"]


class TestNotableCandidates:
    """Test notable element candidate collection."""

    @pytest.mark.asyncio
    async def test_collect(self, mock_page):
        """Test random ids are scrubbed from candidates."""
        mock_page.evaluate = AsyncMock(return_value=[
            {"tag": "h1", "text": "Products", "id": "title", "selector": "#title"},
            {"tag": "button", "text": "Menu", "id": "invoker-x9y8z7", "selector": "#invoker-x9y8z7"},
            "garbage",
        ])

        candidates = await PageAnalyzer().collect_notable_candidates(mock_page)

        assert candidates[0]["selector"] == "#title"
        assert candidates[1]["id"] is None
        assert candidates[1]["selector"] == "button"
        assert len(candidates) == 2
        script, args = mock_page.evaluate.call_args.args
        assert script == NOTABLE_CANDIDATES_SCRIPT
        assert args["maxElements"] == 100
        assert args["maxDepth"] == 10

    @pytest.mark.asyncio
    async def test_collect_failure(self, mock_page):
        """Test script errors give no candidates."""
        mock_page.evaluate = AsyncMock(side_effect=Exception("boom"))

        assert await PageAnalyzer().collect_notable_candidates(mock_page) == []
