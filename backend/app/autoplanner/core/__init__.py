"""
Core Exploration Mechanics

URL and interaction memory, page readiness, interaction execution and
same-origin guardrails shared by the explorer.
"""

from .url_tracker import NavigationTracker, NavigationCheck, normalize_url
from .interaction_tracker import InteractionTracker, make_interaction_key
from .interaction_executor import InteractionExecutor, InteractionResult, InteractionStatus
from .navigation_guardrail import NavigationGuardrail
from .page_loader import PageLoader
from .cookie_consent import CookieConsentHandler
from .cancellation import CancellationToken

__all__ = [
    "NavigationTracker",
    "NavigationCheck",
    "normalize_url",
    "InteractionTracker",
    "make_interaction_key",
    "InteractionExecutor",
    "InteractionResult",
    "InteractionStatus",
    "NavigationGuardrail",
    "PageLoader",
    "CookieConsentHandler",
    "CancellationToken"
]
