"""
Element Selector

Chooses the next element to act on. Uses the decision oracle when enabled,
with de-duplication guardrails layered over its answer, and the
deterministic heuristic otherwise. Selection never fails because of the
oracle: every oracle problem falls back to the heuristic.
"""

import logging
import random
from dataclasses import dataclass, replace
from typing import AbstractSet, List, Optional, Sequence

from ..config import PlannerConfig
from ..core.interaction_tracker import InteractionTracker
from ..core.url_tracker import normalize_url
from ..elements import ElementKind, InteractiveElement
from .decision_oracle import DecisionOracle, PageContext
from .heuristic_selector import HeuristicSelector

logger = logging.getLogger(__name__)


class SelectionMethod:
    """Labels recorded on each step to explain how the element was chosen"""
    AI = "ai"
    AI_DEDUPED = "ai (de-duped)"
    HEURISTIC = "heuristic"
    HEURISTIC_AI_REPEATED = "heuristic (ai repeated)"
    HEURISTIC_NOT_FOUND = "heuristic (element not found)"
    HEURISTIC_UNAVAILABLE = "heuristic (oracle unavailable)"


@dataclass
class Selection:
    """The chosen element and how it was chosen"""
    element: InteractiveElement
    method: str
    reasoning: Optional[str] = None
    action: Optional[str] = None
    value: Optional[str] = None


class ElementSelector:
    """
    Heuristic or oracle-assisted element selection.

    Guardrails on oracle answers:
    - element interacted with in the last few iterations
    - "home"-like affordances
    - links back to the very first page of the run
    """

    RECENT_BLOCK_WINDOW = 10

    def __init__(
        self,
        base_origin: str,
        initial_url: str,
        config: Optional[PlannerConfig] = None,
        oracle: Optional[DecisionOracle] = None,
        heuristic: Optional[HeuristicSelector] = None,
        rng: Optional[random.Random] = None
    ):
        self.config = config or PlannerConfig()
        self.base_origin = base_origin
        self.initial_url = normalize_url(initial_url)
        self.oracle = oracle
        self.heuristic = heuristic or HeuristicSelector(base_origin)
        self.rng = rng or random.Random()

    @property
    def oracle_enabled(self) -> bool:
        return self.config.use_ai and self.oracle is not None

    async def select(
        self,
        candidates: Sequence[InteractiveElement],
        visited_urls: AbstractSet[str],
        max_navigations: int,
        tracker: InteractionTracker,
        page_context: Optional[PageContext] = None,
        navigation_count: int = 0
    ) -> Optional[Selection]:
        """
        Pick one element from `candidates`.

        Returns None only when there are no candidates.
        """
        if not candidates:
            return None

        if not self.oracle_enabled:
            return self._heuristic(candidates, visited_urls, tracker, SelectionMethod.HEURISTIC)

        sample = self.subsample(candidates)
        context = self._build_context(page_context, visited_urls, max_navigations, navigation_count, tracker)

        try:
            decision = await self.oracle.recommend(context, sample)
        except Exception as e:
            logger.warning(f"[SELECTOR] Oracle raised, using heuristic: {e}")
            decision = None

        if decision is None or not 0 <= decision.element_index < len(sample):
            return self._heuristic(candidates, visited_urls, tracker, SelectionMethod.HEURISTIC_UNAVAILABLE)

        proposed = sample[decision.element_index]
        matched = self.match_back(proposed, candidates)
        if matched is None:
            logger.info(f"[SELECTOR] Oracle pick '{proposed.label[:40]}' not found in candidates")
            return self._heuristic(candidates, visited_urls, tracker, SelectionMethod.HEURISTIC_NOT_FOUND)

        if self.is_blocked(matched, tracker):
            alternative = self.find_alternative(candidates, visited_urls, tracker)
            if alternative is not None:
                logger.info(
                    f"[SELECTOR] Oracle pick '{matched.label[:40]}' is blocked, "
                    f"using '{alternative.label[:40]}' instead"
                )
                return Selection(
                    element=alternative,
                    method=SelectionMethod.AI_DEDUPED,
                    reasoning=decision.reasoning,
                )
            return self._heuristic(candidates, visited_urls, tracker, SelectionMethod.HEURISTIC_AI_REPEATED)

        return Selection(
            element=matched,
            method=SelectionMethod.AI,
            reasoning=decision.reasoning,
            action=decision.action,
            value=decision.value,
        )

    # ==================== Oracle Input ====================

    def subsample(self, candidates: Sequence[InteractiveElement]) -> List[InteractiveElement]:
        """Random subset, capped so the oracle prompt stays small"""
        limit = max(1, self.config.max_elements_to_show_ai)
        if len(candidates) <= limit:
            sample = list(candidates)
            self.rng.shuffle(sample)
            return sample
        return self.rng.sample(list(candidates), limit)

    def _build_context(
        self,
        page_context: Optional[PageContext],
        visited_urls: AbstractSet[str],
        max_navigations: int,
        navigation_count: int,
        tracker: InteractionTracker
    ) -> PageContext:
        base = page_context or PageContext(url="")
        return replace(
            base,
            headings=list(base.headings)[:5],
            visited_urls=sorted(visited_urls),
            recent_keys=tracker.recent_keys(DecisionOracle.MAX_RECENT_KEYS),
            current_navigations=navigation_count,
            target_navigations=max_navigations,
        )

    # ==================== Guardrails ====================

    def match_back(
        self,
        proposed: InteractiveElement,
        candidates: Sequence[InteractiveElement]
    ) -> Optional[InteractiveElement]:
        """Find the oracle's element in the full list: by href, then text, then selector"""
        if proposed.href:
            target = normalize_url(proposed.href)
            for candidate in candidates:
                if candidate.href and normalize_url(candidate.href) == target:
                    return candidate

        text = (proposed.text or "").strip().lower()
        if text:
            for candidate in candidates:
                if (candidate.text or "").strip().lower() == text:
                    return candidate

        if proposed.selector:
            for candidate in candidates:
                if candidate.selector == proposed.selector:
                    return candidate

        return None

    def is_home_like(self, element: InteractiveElement) -> bool:
        return "home" in (element.text or "").lower()

    def is_blocked(self, element: InteractiveElement, tracker: InteractionTracker) -> bool:
        if tracker.was_recent(element, window=self.RECENT_BLOCK_WINDOW):
            return True
        if self.is_home_like(element):
            return True
        if element.kind == ElementKind.LINK and element.href:
            return normalize_url(element.href) == self.initial_url
        return False

    def find_alternative(
        self,
        candidates: Sequence[InteractiveElement],
        visited_urls: AbstractSet[str],
        tracker: InteractionTracker
    ) -> Optional[InteractiveElement]:
        """First unblocked link whose target has not been visited"""
        for candidate in candidates:
            if candidate.kind != ElementKind.LINK or not candidate.href:
                continue
            if self.is_blocked(candidate, tracker):
                continue
            if normalize_url(candidate.href) in visited_urls:
                continue
            return candidate
        return None

    def _heuristic(
        self,
        candidates: Sequence[InteractiveElement],
        visited_urls: AbstractSet[str],
        tracker: InteractionTracker,
        method: str
    ) -> Selection:
        element = self.heuristic.choose(candidates, visited_urls, tracker)
        return Selection(element=element, method=method)
