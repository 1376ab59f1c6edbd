"""
Unit tests for interaction keys and InteractionTracker.
"""

from autoplanner.core.interaction_tracker import InteractionTracker, make_interaction_key
from autoplanner.elements import ElementKind


class TestInteractionKey:
    """Test interaction key construction."""

    def test_key_format(self, sample_link):
        """Test kind, href, selector and text are joined with '|'."""
        assert make_interaction_key(sample_link) == "link|https://example.com/products|a.products|Products"

    def test_key_ignores_fragment_and_trailing_slash(self, element_factory):
        """Test that href fragment and trailing slash do not change the key."""
        a = element_factory(ElementKind.LINK, "Docs", href="https://example.com/docs/#intro", selector="a")
        b = element_factory(ElementKind.LINK, "Docs", href="https://example.com/docs", selector="a")

        assert make_interaction_key(a) == make_interaction_key(b)

    def test_key_truncates_selector_and_text(self, element_factory):
        """Test selector (80) and text (60) truncation."""
        element = element_factory(ElementKind.BUTTON, "x" * 200, selector="s" * 200)

        _, _, selector, text = make_interaction_key(element).split("|")

        assert len(selector) == 80
        assert len(text) == 60

    def test_key_is_deterministic(self, sample_button):
        """Test the same element always produces the same key."""
        assert make_interaction_key(sample_button) == make_interaction_key(sample_button)

    def test_key_keeps_case(self, element_factory):
        """Test that keys are case sensitive."""
        upper = element_factory(ElementKind.BUTTON, "Save", selector="#save")
        lower = element_factory(ElementKind.BUTTON, "save", selector="#save")

        assert make_interaction_key(upper) != make_interaction_key(lower)


class TestInteractionTracker:
    """Test the bounded interaction history."""

    def test_remember_and_recent(self, sample_link, sample_button):
        """Test that remembered keys come back in order."""
        tracker = InteractionTracker()
        tracker.remember(sample_link)
        tracker.remember(sample_button)

        assert tracker.recent_keys(2) == [make_interaction_key(sample_link), make_interaction_key(sample_button)]

    def test_history_is_bounded(self, element_factory):
        """Test that the oldest keys are evicted first."""
        tracker = InteractionTracker(history_size=3)
        elements = [element_factory(ElementKind.BUTTON, f"Button {i}", selector=f"#b{i}") for i in range(5)]
        for element in elements:
            tracker.remember(element)

        assert len(tracker) == 3
        assert not tracker.was_recent(elements[0])
        assert tracker.was_recent(elements[4])

    def test_was_recent_window(self, element_factory):
        """Test the window argument limits the lookback."""
        tracker = InteractionTracker()
        first = element_factory(ElementKind.BUTTON, "First", selector="#first")
        tracker.remember(first)
        for i in range(3):
            tracker.remember(element_factory(ElementKind.BUTTON, f"Other {i}", selector=f"#o{i}"))

        assert tracker.was_recent(first)
        assert not tracker.was_recent(first, window=3)
        assert tracker.was_recent(first, window=4)

    def test_recent_keys_non_positive(self, sample_link):
        """Test that a zero count returns nothing."""
        tracker = InteractionTracker()
        tracker.remember(sample_link)

        assert tracker.recent_keys(0) == []

    def test_clear(self, sample_link):
        """Test clearing the history."""
        tracker = InteractionTracker()
        tracker.remember(sample_link)
        tracker.clear()

        assert len(tracker) == 0
