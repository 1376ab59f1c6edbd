"""
Unit tests for TestPlanSynthesizer.
"""

from autoplanner.explorer.page_analyzer import PageInfo
from autoplanner.generation.test_plan_synthesizer import TestPlanSynthesizer
from autoplanner.models import KeyElement, NotableElement, StepElement, TestStep


def step(number, action="click", navigated=True, **kwargs):
    return TestStep(
        step_number=number,
        action=action,
        element=StepElement(tag="a", text="Products", selector="a.products"),
        url_before="https://example.com",
        url_after="https://example.com/products" if navigated else "https://example.com",
        navigated=navigated,
        timestamp="2024-01-01T00:00:00+00:00",
        page_title="Products",
        key_elements=[KeyElement(tag="h1", text="Products")],
        notable_elements=[NotableElement(selector="h1", reason="heading")],
        **kwargs,
    )


class TestOverview:
    """Test overview generation."""

    def test_no_pages(self):
        """Test the overview of an empty run."""
        assert TestPlanSynthesizer().generate_overview([]) == "No pages were explored."

    def test_counts_and_page_list(self):
        """Test totals across pages and the page list."""
        pages = [
            PageInfo(url="https://example.com", title="Shop", links=[{}, {}], buttons=[{}]),
            PageInfo(url="https://example.com/login", title="", forms=[{}], inputs=[{}, {}]),
        ]

        overview = TestPlanSynthesizer().generate_overview(pages)

        assert overview.startswith("The Shop application provides the following functionality:")
        assert "2 page(s) were analyzed" in overview
        assert "1 form(s)" in overview
        assert "1 button(s)" in overview
        assert "2 link(s)" in overview
        assert "2 input field(s)" in overview
        assert "1. Shop (https://example.com)" in overview
        assert "2. Untitled (https://example.com/login)" in overview

    def test_single_page_has_no_page_list(self):
        """Test the page list only appears for multi-page runs."""
        overview = TestPlanSynthesizer().generate_overview([PageInfo(url="https://example.com", title="")])

        assert "The https://example.com application" in overview
        assert "**Pages Explored:**" not in overview


class TestSynthesize:
    """Test plan assembly."""

    def test_steps_are_renumbered(self):
        """Test step numbers follow list order."""
        plan = TestPlanSynthesizer().synthesize("https://example.com", [], [step(7), step(3), step(9)])

        assert [s.step_number for s in plan.steps] == [1, 2, 3]

    def test_snapshot_dropped_without_navigation(self):
        """Test non-navigating steps carry no expected results."""
        plan = TestPlanSynthesizer().synthesize(
            "https://example.com", [], [step(1), step(2, navigated=False)]
        )

        assert plan.steps[0].page_title == "Products"
        assert plan.steps[1].page_title is None
        assert plan.steps[1].key_elements is None
        assert plan.steps[1].notable_elements is None
        assert plan.steps[1].element.text == "Products"

    def test_metadata(self):
        """Test run metadata is carried into the plan."""
        plan = TestPlanSynthesizer().synthesize(
            "https://example.com",
            [PageInfo(url="https://example.com", title="Shop")],
            [step(1)],
            base_origin="https://example.com",
            total_clicks=4,
            navigation_count=3,
            stop_reason="navigation_target",
            generated_at="2024-01-01T00:00:00+00:00",
        )

        assert plan.metadata.start_url == "https://example.com"
        assert plan.metadata.total_clicks == 4
        assert plan.metadata.navigation_count == 3
        assert plan.metadata.stop_reason == "navigation_target"
        assert not plan.metadata.partial
        assert plan.overview.startswith("The Shop application")

    def test_deterministic(self):
        """Test identical inputs give identical plans."""
        synthesizer = TestPlanSynthesizer()
        pages = [PageInfo(url="https://example.com", title="Shop")]
        steps = [step(1), step(2, navigated=False)]

        first = synthesizer.synthesize("https://example.com", pages, steps, generated_at="t")
        second = synthesizer.synthesize("https://example.com", pages, steps, generated_at="t")

        assert first.to_dict() == second.to_dict()

    def test_inputs_are_not_modified(self):
        """Test the recorded steps keep their original numbering."""
        original = [step(5, navigated=False)]

        TestPlanSynthesizer().synthesize("https://example.com", [], original)

        assert original[0].step_number == 5
        assert original[0].page_title == "Products"
