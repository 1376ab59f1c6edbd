"""
Decision Oracle

Asks an LLM which element to interact with next, and which elements of a
freshly reached page are worth asserting on. Every failure degrades to
"no answer" so the caller can fall back to heuristics.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import PlannerConfig
from ..elements import InteractiveElement, has_random_hash_id
from ..models import NotableElement
from .ai_gateway import AIGateway, AIRequest

logger = logging.getLogger(__name__)


@dataclass
class PageContext:
    """What the oracle is told about the current page and run progress"""
    url: str
    title: str = ""
    headings: List[str] = field(default_factory=list)
    visited_urls: List[str] = field(default_factory=list)
    recent_keys: List[str] = field(default_factory=list)
    current_navigations: int = 0
    target_navigations: int = 0


@dataclass
class OracleDecision:
    """Parsed oracle answer; element_index points into the sample that was sent"""
    element_index: int
    action: str = "click"
    value: Optional[str] = None
    reasoning: str = ""


class OracleResponseError(ValueError):
    """The oracle answered with something that is not a usable decision"""


_FENCE = re.compile(r"```(?:json)?\s*", re.I)
_OBJECT = re.compile(r"\{[\s\S]*\}")
_ARRAY = re.compile(r"\[[\s\S]*\]")


class DecisionOracle:
    """
    LLM-backed element recommendation.

    Features:
    - Compact JSON-only prompts
    - Tolerant parsing (markdown fences, surrounding prose)
    - Index validation against the sample size
    - Notable element curation with unstable-id filtering
    """

    MAX_NOTABLE_CANDIDATES = 30
    MAX_RECENT_KEYS = 5

    def __init__(self, gateway: Optional[AIGateway] = None, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()
        self.gateway = gateway or AIGateway(config=self.config)

    def get_stats(self) -> Dict[str, Any]:
        """Request and token counters of the underlying gateway"""
        return self.gateway.get_stats()

    # ==================== Element Selection ====================

    def build_selection_prompt(self, context: PageContext, sample: Sequence[InteractiveElement]) -> str:
        lines = []
        for index, element in enumerate(sample):
            href = f" ({element.href})" if element.href else ""
            lines.append(f'{index}: {element.kind.value} - "{element.label[:60]}"{href}')

        recent = context.recent_keys[-self.MAX_RECENT_KEYS:]
        avoid = f"Avoid: {', '.join(recent)}\n" if recent else ""
        headings = f"Headings: {' | '.join(context.headings[:5])}\n" if context.headings else ""
        visited = f"Visited: {', '.join(context.visited_urls)}\n" if context.visited_urls else ""

        return (
            "You are a test automation assistant. Select the best interactive element "
            "to use next while exploring a web application.\n\n"
            f"Page: {context.title} ({context.url})\n"
            f"{headings}"
            f"Goal: {context.current_navigations}/{context.target_navigations} pages explored\n"
            f"{visited}"
            f"{avoid}\n"
            "Elements:\n"
            + "\n".join(lines)
            + "\n\nPriority: 1) Links to NEW pages 2) Main content actions 3) Forms\n"
            "Avoid: sidebar/nav menus, repeated clicks, already visited URLs\n\n"
            "Respond with ONLY valid JSON, no other text. Format:\n"
            f'{{"elementIndex": <number 0-{max(len(sample) - 1, 0)}>, "action": "click|fill|hover", '
            '"value": "<text for fill, optional>", "reasoning": "<brief explanation>"}'
        )

    def parse_decision(self, content: str, sample_size: int) -> OracleDecision:
        """Parse and validate an oracle answer; raises OracleResponseError"""
        data = self._extract_json(content, _OBJECT)
        if not isinstance(data, dict):
            raise OracleResponseError("response is not a JSON object")

        index = data.get("elementIndex")
        if isinstance(index, bool) or not isinstance(index, (int, float)) or int(index) != index:
            raise OracleResponseError(f"missing or non-integer elementIndex: {index!r}")
        index = int(index)
        if index < 0 or index >= sample_size:
            raise OracleResponseError(f"elementIndex {index} outside [0, {sample_size})")

        action = str(data.get("action") or "click").lower()
        value = data.get("value")
        return OracleDecision(
            element_index=index,
            action=action,
            value=str(value) if value is not None else None,
            reasoning=str(data.get("reasoning") or ""),
        )

    async def recommend(
        self,
        context: PageContext,
        sample: Sequence[InteractiveElement]
    ) -> Optional[OracleDecision]:
        """
        Ask the oracle for an element from `sample`.

        Returns:
            The decision, or None if the oracle is unavailable or answered badly
        """
        if not sample:
            return None

        response = await self.gateway.request(AIRequest(
            request_type="element_selection",
            prompt=self.build_selection_prompt(context, sample),
            max_tokens=self.config.ai_max_tokens,
            temperature=self.config.ai_temperature,
        ))
        if not response.success:
            logger.warning(f"[ORACLE] Unavailable: {response.error}")
            return None

        try:
            decision = self.parse_decision(response.content, len(sample))
        except OracleResponseError as e:
            logger.warning(f"[ORACLE] Unusable answer: {e}. Response: {response.content[:200]}")
            return None

        logger.info(f"[ORACLE] Picked #{decision.element_index}: {decision.reasoning}")
        return decision

    # ==================== Notable Elements ====================

    def build_notable_prompt(self, candidates: Sequence[Dict[str, Any]], title: str, url: str) -> str:
        lines = []
        for index, candidate in enumerate(candidates):
            parts = [f"[{index}]", candidate.get("tag") or "element"]
            if candidate.get("text"):
                parts.append(f'"{candidate["text"][:50]}"')
            for key in ("selector", "id", "href"):
                if candidate.get(key):
                    parts.append(f"{key}:{candidate[key]}")
            lines.append(" ".join(parts))

        return (
            "You are analyzing a web page to identify notable elements that should be "
            "tracked in a test plan.\n\n"
            f'Page Title: "{title}"\n'
            f"URL: {url}\n\n"
            "Available elements on the page:\n"
            + "\n".join(lines)
            + "\n\nIdentify 3-8 notable elements that verify the page loaded correctly: "
            "main headings, key content sections, primary buttons, form fields, "
            "status or error messages.\n"
            "Avoid elements whose ids look randomly generated; prefer text and stable selectors.\n\n"
            "Return only a JSON array of objects with keys: selector, text, tag, id, reason."
        )

    async def identify_notable_elements(
        self,
        candidates: Sequence[Dict[str, Any]],
        title: str,
        url: str
    ) -> List[NotableElement]:
        """Let the oracle pick notable elements; [] on any failure"""
        if not candidates:
            return []

        to_send = list(candidates)[:self.MAX_NOTABLE_CANDIDATES]
        response = await self.gateway.request(AIRequest(
            request_type="notable_elements",
            prompt=self.build_notable_prompt(to_send, title, url),
            max_tokens=max(self.config.ai_max_tokens, 800),
            temperature=self.config.ai_temperature,
        ))
        if not response.success:
            return []

        try:
            data = self._extract_json(response.content, _ARRAY)
        except OracleResponseError as e:
            logger.warning(f"[ORACLE] Could not parse notable elements: {e}")
            return []
        if not isinstance(data, list):
            return []

        notable = []
        for item in data:
            if not isinstance(item, dict):
                continue
            element = NotableElement(
                selector=_str_or_none(item.get("selector")),
                text=_str_or_none(item.get("text")),
                tag=_str_or_none(item.get("tag")),
                id=_str_or_none(item.get("id")),
                reason=_str_or_none(item.get("reason")),
            )
            if is_unstable(element):
                continue
            notable.append(element)

        logger.info(f"[ORACLE] Identified {len(notable)} notable elements on {url}")
        return notable

    # ==================== Helpers ====================

    @staticmethod
    def _extract_json(content: str, pattern: "re.Pattern") -> Any:
        text = _FENCE.sub("", (content or "").strip())
        match = pattern.search(text)
        if match:
            text = match.group(0)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise OracleResponseError(f"invalid JSON: {e}") from e


def is_unstable(element: NotableElement) -> bool:
    """Notable elements addressed only through a random-looking id are useless as assertions"""
    if element.id and has_random_hash_id(element.id):
        return True
    if element.selector:
        id_match = re.match(r"^#([a-z0-9_-]+)", element.selector, re.I)
        if id_match and has_random_hash_id(id_match.group(1)):
            return True
        if has_random_hash_id(element.selector):
            return True
    return False


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
