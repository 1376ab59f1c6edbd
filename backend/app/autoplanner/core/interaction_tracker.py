"""
Interaction Tracker

Rolling memory of recently attempted elements so the explorer does not
keep repeating the same action.
"""

import re
from collections import deque
from typing import Deque, List, Optional

from ..elements import InteractiveElement

_WHITESPACE = re.compile(r"\s+")


def make_interaction_key(element: InteractiveElement) -> str:
    """Stable signature: kind, href without fragment, truncated selector and text"""
    href = (element.href or "").split("#")[0].rstrip("/")
    selector = (element.selector or "").strip()[:80]
    text = (element.text or "").strip()[:60]
    return _WHITESPACE.sub(" ", f"{element.kind.value}|{href}|{selector}|{text}")


class InteractionTracker:
    """Bounded history of interaction keys (oldest evicted first)"""

    DEFAULT_HISTORY_SIZE = 50

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE):
        self.history_size = history_size
        self._keys: Deque[str] = deque(maxlen=history_size)

    def __len__(self) -> int:
        return len(self._keys)

    def key_for(self, element: InteractiveElement) -> str:
        return make_interaction_key(element)

    def remember(self, element: InteractiveElement) -> str:
        key = make_interaction_key(element)
        self._keys.append(key)
        return key

    def recent_keys(self, count: int = 20) -> List[str]:
        if count <= 0:
            return []
        return list(self._keys)[-count:]

    def was_recent(self, element: InteractiveElement, window: Optional[int] = None) -> bool:
        """True if the element's key is in the history (or in the last `window` keys)"""
        key = make_interaction_key(element)
        if window is None:
            return key in self._keys
        return key in self.recent_keys(window)

    def clear(self):
        self._keys.clear()
