"""
Heuristic Selector

Deterministic scoring of candidates, used whenever the decision oracle is
disabled, unavailable, or overruled by a guardrail.
"""

import logging
import re
from dataclasses import dataclass
from typing import AbstractSet, List, Optional, Sequence

from ..core.interaction_tracker import InteractionTracker
from ..core.url_tracker import is_same_origin, normalize_url
from ..elements import ElementKind, InteractiveElement

logger = logging.getLogger(__name__)


ACTION_WORDS = frozenset((
    "submit", "search", "login", "next", "continue", "go", "view", "see",
    "explore", "browse", "shop", "add", "create", "start", "begin", "apply",
    "more", "details",
))


@dataclass
class ScoredElement:
    element: InteractiveElement
    score: int
    index: int


class HeuristicSelector:
    """
    Scores candidates and picks the best one.

    Scoring:
    - Same-origin link to an unvisited page: +100
    - Link with short meaningful text: +10
    - Button / clickable with an action word: +20
    - Inputs: +5
    - Link to an already visited page: -50
    - Recently interacted with: -200
    Ties are broken by discovery order.
    """

    UNVISITED_LINK = 100
    MEANINGFUL_TEXT = 10
    ACTION_WORD = 20
    INPUT = 5
    VISITED_LINK = -50
    RECENT = -200

    def __init__(self, base_origin: str = ""):
        self.base_origin = base_origin

    def score(
        self,
        element: InteractiveElement,
        visited_urls: AbstractSet[str],
        tracker: Optional[InteractionTracker] = None
    ) -> int:
        score = 0
        text = (element.text or "").strip()

        if element.kind == ElementKind.LINK and element.href:
            same_origin = not self.base_origin or is_same_origin(element.href, self.base_origin)
            if same_origin and normalize_url(element.href) not in visited_urls:
                score += self.UNVISITED_LINK
            else:
                score += self.VISITED_LINK
            if 0 < len(text) < 50:
                score += self.MEANINGFUL_TEXT
        elif element.kind in (ElementKind.BUTTON, ElementKind.GENERIC):
            words = set(re.findall(r"[a-z]+", text.lower()))
            if words & ACTION_WORDS:
                score += self.ACTION_WORD
        elif element.kind == ElementKind.INPUT:
            score += self.INPUT

        if tracker is not None and tracker.was_recent(element):
            score += self.RECENT

        return score

    def rank(
        self,
        candidates: Sequence[InteractiveElement],
        visited_urls: AbstractSet[str],
        tracker: Optional[InteractionTracker] = None
    ) -> List[ScoredElement]:
        scored = [
            ScoredElement(element=element, score=self.score(element, visited_urls, tracker), index=index)
            for index, element in enumerate(candidates)
        ]
        scored.sort(key=lambda item: (-item.score, item.index))
        return scored

    def choose(
        self,
        candidates: Sequence[InteractiveElement],
        visited_urls: AbstractSet[str],
        tracker: Optional[InteractionTracker] = None
    ) -> Optional[InteractiveElement]:
        """Best candidate, or None only when the list is empty"""
        ranked = self.rank(candidates, visited_urls, tracker)
        if not ranked:
            return None
        best = ranked[0]
        logger.debug(f"[HEURISTIC] Chose '{best.element.label[:40]}' (score {best.score})")
        return best.element
