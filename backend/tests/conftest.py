"""
Pytest configuration and shared fixtures for autoplanner tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, AsyncMock
from typing import Any, Callable, Dict, List

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from autoplanner.config import PlannerConfig
from autoplanner.elements import BoundingBox, ElementKind, InteractiveElement


# ==================== Mock Locator Fixture ====================

@pytest.fixture
def mock_locator():
    """Create a mock Playwright locator (`.first` returns itself)."""
    locator = AsyncMock()
    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.hover = AsyncMock()
    locator.wait_for = AsyncMock()
    locator.is_visible = AsyncMock(return_value=False)
    locator.text_content = AsyncMock(return_value="Test Content")
    locator.select_option = AsyncMock()
    locator.scroll_into_view_if_needed = AsyncMock()
    locator.evaluate = AsyncMock(return_value=True)
    locator.all = AsyncMock(return_value=[])
    locator.locator = Mock(return_value=locator)
    locator.first = locator
    return locator


# ==================== Mock Page Fixture ====================

@pytest.fixture
def mock_page(mock_locator):
    """Create a mock Playwright page object."""
    page = AsyncMock()

    # Basic properties
    page.url = "https://example.com"

    # Navigation
    page.goto = AsyncMock(return_value=None)
    page.title = AsyncMock(return_value="Test Page")

    # Evaluation
    page.evaluate = AsyncMock(return_value={})

    # Locators
    page.locator = Mock(return_value=mock_locator)
    page.get_by_text = Mock(return_value=mock_locator)
    page.get_by_placeholder = Mock(return_value=mock_locator)
    page.get_by_role = Mock(return_value=mock_locator)

    # Wait
    page.wait_for_load_state = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.wait_for_function = AsyncMock()

    return page


# ==================== Mock Browser Fixture ====================

@pytest.fixture
def mock_browser(mock_page):
    """Create a mock Playwright browser object."""
    browser = AsyncMock()
    context = AsyncMock()

    context.new_page = AsyncMock(return_value=mock_page)
    context.add_init_script = AsyncMock()
    context.add_cookies = AsyncMock()
    context.close = AsyncMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    return browser


# ==================== Configuration ====================

@pytest.fixture
def fast_config(tmp_path) -> PlannerConfig:
    """Config with short waits and a temporary output directory."""
    return PlannerConfig(
        element_wait_timeout_ms=100,
        click_timeout_ms=100,
        navigation_wait_timeout_ms=100,
        page_settle_ms=0,
        page_load_timeout_ms=1000,
        empty_page_retry_ms=0,
        output_dir=str(tmp_path / "test-plans"),
    )


# ==================== Sample Elements ====================

@pytest.fixture
def element_factory() -> Callable[..., InteractiveElement]:
    """Build visible interactive elements with sensible defaults."""
    def make(kind: ElementKind = ElementKind.LINK, text: str = "Element", **kwargs) -> InteractiveElement:
        kwargs.setdefault("selector", f"{kind.value}.sample")
        kwargs.setdefault("tag", {"link": "a", "button": "button", "input": "input"}.get(kind.value, "div"))
        kwargs.setdefault("bounding_box", BoundingBox(x=10, y=10, width=100, height=20))
        return InteractiveElement(kind=kind, text=text, **kwargs)
    return make


@pytest.fixture
def sample_link(element_factory) -> InteractiveElement:
    """Same-origin link to an unvisited page."""
    return element_factory(ElementKind.LINK, "Products", href="https://example.com/products", selector="a.products")


@pytest.fixture
def sample_button(element_factory) -> InteractiveElement:
    """Action button."""
    return element_factory(ElementKind.BUTTON, "Search", selector="#search-button", stable_id="search-button")


@pytest.fixture
def sample_input(element_factory) -> InteractiveElement:
    """Text input."""
    return element_factory(
        ElementKind.INPUT,
        "",
        selector="#query",
        stable_id="query",
        name="q",
        placeholder="Search products",
        input_type="text",
    )


@pytest.fixture
def sample_raw_elements() -> List[Dict[str, Any]]:
    """Raw dictionaries as returned by the discovery script."""
    box = {"x": 10, "y": 20, "width": 120, "height": 30}
    return [
        {
            "kind": "link", "text": "Products", "selector": "a.products", "tag": "A",
            "href": "https://example.com/products", "id": None, "shadowPath": [],
            "boundingBox": box, "visible": True,
        },
        {
            "kind": "button", "text": "Add to cart", "selector": "#add-to-cart", "tag": "BUTTON",
            "id": "add-to-cart", "ariaLabel": "Add to cart", "shadowPath": [],
            "boundingBox": box, "visible": True,
        },
        {
            "kind": "input", "text": "", "selector": "#email", "tag": "INPUT", "id": "email",
            "name": "email", "placeholder": "Email", "inputType": "email", "shadowPath": [],
            "boundingBox": box, "visible": True,
        },
        {
            "kind": "button", "text": "Buy now", "selector": "button.buy", "tag": "BUTTON",
            "shadowPath": ["product-card#main", "buy-button"],
            "boundingBox": box, "visible": True,
        },
    ]


# ==================== Temp Directory Fixture ====================

@pytest.fixture
def temp_output_dir(tmp_path):
    """Create a temporary output directory for test plans."""
    output_dir = tmp_path / "data" / "test-plans"
    output_dir.mkdir(parents=True)
    return output_dir
