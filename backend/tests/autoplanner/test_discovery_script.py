"""
In-browser tests for the element discovery script.

These load small pages into a real Chromium instance, served from a routed
origin so that origin and path checks behave as on a live site.
"""

import pytest
import pytest_asyncio
from playwright.async_api import async_playwright

from autoplanner.config import PlannerConfig
from autoplanner.elements import ElementKind
from autoplanner.explorer.element_discovery import DISCOVERY_SCRIPT, ElementDiscovery


pytestmark = pytest.mark.browser

ORIGIN = "https://app.test"

SHADOW_PAGE = """
<nav><div id="menu-host"></div></nav>
<main>
  <div id="card-host"></div>
  <p>Light content</p>
</main>
<script>
  document.getElementById('menu-host').attachShadow({ mode: 'open' }).innerHTML =
    '<button>Menu item</button>';
  document.getElementById('card-host').attachShadow({ mode: 'open' }).innerHTML =
    '<button>Add to cart</button><footer><button>Legal</button></footer>';
</script>
"""


@pytest_asyncio.fixture
async def browser():
    """Headless Chromium; the test is skipped when it cannot be launched."""
    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=True)
        except Exception as e:
            pytest.skip(f"Chromium is not available: {e}")
        yield browser
        await browser.close()


@pytest.fixture
def open_page(browser):
    """Open `body` as the document served at ORIGIN + path."""

    async def _open(body: str, path: str = "/shop"):
        page = await browser.new_page()
        html = f"<!DOCTYPE html><html><head><title>Shop</title></head><body>{body}</body></html>"

        async def fulfill(route):
            await route.fulfill(status=200, content_type="text/html", body=html)

        await page.route(f"{ORIGIN}/**", fulfill)
        await page.goto(f"{ORIGIN}{path}")
        return page

    return _open


def texts(elements):
    return sorted(element.text for element in elements)


class TestShadowRoots:
    """Test traversal and exclusion across shadow boundaries."""

    @pytest.mark.asyncio
    async def test_shadow_content_is_found_with_host_path(self, open_page):
        """Test a button inside an open shadow root carries its host path."""
        page = await open_page(SHADOW_PAGE)

        elements = await ElementDiscovery().discover(page, ORIGIN)

        card = [element for element in elements if element.text == "Add to cart"]
        assert len(card) == 1
        assert card[0].kind == ElementKind.BUTTON
        assert card[0].shadow_path == ["div#card-host"]
        assert card[0].in_shadow_dom

    @pytest.mark.asyncio
    async def test_host_inside_ignored_region_is_skipped(self, open_page):
        """Test a shadow root whose host sits in <nav> is never entered."""
        page = await open_page(SHADOW_PAGE)

        elements = await ElementDiscovery().discover(page, ORIGIN)

        assert "Menu item" not in texts(elements)

    @pytest.mark.asyncio
    async def test_ignored_region_inside_shadow_root(self, open_page):
        """Test a <footer> inside a shadow root is excluded as well."""
        page = await open_page(SHADOW_PAGE)

        elements = await ElementDiscovery().discover(page, ORIGIN)

        assert "Legal" not in texts(elements)

    @pytest.mark.asyncio
    async def test_host_is_entered_when_nav_not_ignored(self, open_page):
        """Test the nav host is walked once nav is dropped from the ignore list."""
        page = await open_page(SHADOW_PAGE)
        config = PlannerConfig(ignored_tags=["header", "aside", "footer"])

        elements = await ElementDiscovery(config).discover(page, ORIGIN)

        menu = [element for element in elements if element.text == "Menu item"]
        assert len(menu) == 1
        assert menu[0].shadow_path == ["div#menu-host"]


class TestAnchors:
    """Test link filtering against the current location."""

    @pytest.mark.asyncio
    async def test_same_page_anchors(self, open_page):
        """Test bare and same-path anchors are dropped while a new fragment is kept."""
        page = await open_page("""
            <main>
              <a href="#">Top</a>
              <a href="/shop">Shop again</a>
              <a href="#reviews">Reviews</a>
              <a href="#specs">Specs</a>
              <a href="javascript:void(0)">Script</a>
            </main>
        """, path="/shop#reviews")

        elements = await ElementDiscovery().discover(page, ORIGIN)

        assert texts(elements) == ["Specs"]
        assert elements[0].href == f"{ORIGIN}/shop#specs"

    @pytest.mark.asyncio
    async def test_distinct_fragment_without_current_hash(self, open_page):
        """Test a fragment link on a page without a hash is kept."""
        page = await open_page('<main><a href="#reviews">Reviews</a><a href="">Empty</a></main>')

        elements = await ElementDiscovery().discover(page, ORIGIN)

        assert texts(elements) == ["Reviews"]

    @pytest.mark.asyncio
    async def test_cross_origin_anchor_is_dropped(self, open_page):
        """Test only same-origin links are returned, resolved to absolute URLs."""
        page = await open_page("""
            <main>
              <a href="https://partner.test/deals">Partner deals</a>
              <a href="http://app.test/about">Insecure about</a>
              <a href="/about">About</a>
            </main>
        """)

        elements = await ElementDiscovery().discover(page, ORIGIN)

        assert texts(elements) == ["About"]
        assert elements[0].kind == ElementKind.LINK
        assert elements[0].href == f"{ORIGIN}/about"


class TestVisibility:
    """Test layout and style based visibility."""

    @pytest.mark.asyncio
    async def test_hidden_elements_are_dropped(self, open_page):
        """Test visibility:hidden, opacity:0, display:none and empty boxes."""
        page = await open_page("""
            <main>
              <button style="visibility:hidden">Ghost</button>
              <button style="opacity:0">Faded</button>
              <button style="display:none">Gone</button>
              <button style="width:0;height:0;padding:0;border:0;overflow:hidden">Flat</button>
              <button>Checkout</button>
            </main>
        """)

        elements = await ElementDiscovery().discover(page, ORIGIN)

        assert texts(elements) == ["Checkout"]


class TestFallbackPass:
    """Test the broadened predicate of the fallback pass."""

    FALLBACK_PAGE = """
        <div style="cursor:pointer">Open drawer</div>
        <div onclick="void 0">Toggle filters</div>
        <div role="tab">Specs</div>
        <span tabindex="0">Focusable</span>
        <div>Plain text</div>
        <div tabindex="-1">Not focusable</div>
        <nav><div role="tab">Nav tab</div></nav>
    """

    async def _fallback(self, page):
        return await page.evaluate(DISCOVERY_SCRIPT, {
            "origin": ORIGIN,
            "ignoredTags": ["header", "nav", "aside", "footer"],
            "mode": "fallback",
            "maxFallback": 20,
        })

    @pytest.mark.asyncio
    async def test_fallback_predicate(self, open_page):
        """Test pointer cursor, onclick, role and tab index each qualify."""
        page = await open_page(self.FALLBACK_PAGE)

        raw = await self._fallback(page)

        found = sorted(item["text"] for item in raw)
        assert found == ["Focusable", "Open drawer", "Specs", "Toggle filters"]
        assert all(item["kind"] == "generic" for item in raw)

    @pytest.mark.asyncio
    async def test_fallback_is_capped(self, open_page):
        """Test the fallback pass stops at maxFallback results."""
        page = await open_page("".join(f'<div role="tab">Tab {i}</div>' for i in range(30)))

        raw = await page.evaluate(DISCOVERY_SCRIPT, {
            "origin": ORIGIN, "ignoredTags": [], "mode": "fallback", "maxFallback": 5,
        })

        assert len(raw) == 5

    @pytest.mark.asyncio
    async def test_discover_uses_fallback_when_primary_is_empty(self, open_page):
        """Test discover() returns fallback results for a page of role=tab widgets."""
        page = await open_page('<main><div role="tab">Overview</div><div role="tab">Specs</div></main>')

        elements = await ElementDiscovery().discover(page, ORIGIN)

        assert texts(elements) == ["Overview", "Specs"]
        assert all(element.kind == ElementKind.GENERIC for element in elements)
