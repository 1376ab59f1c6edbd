"""
Planner Configuration

Tunable limits, timeouts and AI settings for an exploration run.
Values can be overridden from the environment (or a .env file).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


DEFAULT_IGNORED_TAGS = ["header", "nav", "aside", "footer"]
DEFAULT_ELEMENT_KINDS = ["link", "button", "input", "generic"]


@dataclass
class PlannerConfig:
    """Configuration for an exploration run"""
    # Budgets
    max_navigations: int = 3
    max_clicks: int = 50
    max_consecutive_failures: int = 10

    # Timeouts (milliseconds)
    element_wait_timeout_ms: int = 3000
    click_timeout_ms: int = 5000
    navigation_wait_timeout_ms: int = 5000
    page_settle_ms: int = 800
    page_load_timeout_ms: int = 30000
    empty_page_retry_ms: int = 3000

    # Discovery
    ignored_tags: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORED_TAGS))
    element_kinds: List[str] = field(default_factory=lambda: list(DEFAULT_ELEMENT_KINDS))

    # Interaction memory
    interaction_history_size: int = 50
    fill_value: str = "test data"

    # Decision oracle
    use_ai: bool = False
    max_elements_to_show_ai: int = 20
    collect_notable_elements: bool = True
    ai_provider: Optional[str] = None
    ai_model: Optional[str] = None
    ai_temperature: float = 0.2
    ai_max_tokens: int = 150

    # Browser
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    cookies: Dict[str, str] = field(default_factory=lambda: {"cookiesOptin": "true"})

    # Output
    output_dir: str = "data/test-plans"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides) -> "PlannerConfig":
        """
        Build a config from PLANNER_* environment variables.

        Args:
            env_file: Optional path to a .env file to load first
            **overrides: Explicit values that win over the environment
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        config = cls()
        config.max_navigations = _env_int("PLANNER_MAX_NAVIGATIONS", config.max_navigations)
        config.max_clicks = _env_int("PLANNER_MAX_CLICKS", config.max_clicks)
        config.max_consecutive_failures = _env_int(
            "PLANNER_MAX_CONSECUTIVE_FAILURES", config.max_consecutive_failures
        )
        config.element_wait_timeout_ms = _env_int("PLANNER_ELEMENT_WAIT_TIMEOUT", config.element_wait_timeout_ms)
        config.click_timeout_ms = _env_int("PLANNER_CLICK_TIMEOUT", config.click_timeout_ms)
        config.navigation_wait_timeout_ms = _env_int(
            "PLANNER_NAVIGATION_WAIT_TIMEOUT", config.navigation_wait_timeout_ms
        )
        config.page_settle_ms = _env_int("PLANNER_PAGE_SETTLE_TIMEOUT", config.page_settle_ms)
        config.interaction_history_size = _env_int(
            "PLANNER_INTERACTION_HISTORY_SIZE", config.interaction_history_size
        )
        config.max_elements_to_show_ai = _env_int("PLANNER_MAX_ELEMENTS_TO_SHOW_AI", config.max_elements_to_show_ai)
        config.use_ai = _env_bool("PLANNER_USE_AI", config.use_ai)
        config.headless = _env_bool("PLANNER_HEADLESS", config.headless)
        config.collect_notable_elements = _env_bool(
            "PLANNER_COLLECT_NOTABLE_ELEMENTS", config.collect_notable_elements
        )
        config.ignored_tags = _env_list("PLANNER_IGNORED_TAGS", config.ignored_tags)
        config.element_kinds = _env_list("PLANNER_ELEMENT_KINDS", config.element_kinds)
        config.output_dir = os.getenv("PLANNER_OUTPUT_DIR", config.output_dir)
        config.fill_value = os.getenv("PLANNER_FILL_VALUE", config.fill_value)
        config.ai_provider = resolve_ai_provider()
        config.ai_model = os.getenv("PLANNER_AI_MODEL") or config.ai_model

        for key, value in overrides.items():
            if not hasattr(config, key):
                raise ValueError(f"Unknown planner setting: {key}")
            setattr(config, key, value)

        return config


def resolve_ai_provider() -> str:
    """Pick the AI provider from explicit settings or available API keys"""
    explicit = os.getenv("PLANNER_AI_PROVIDER") or os.getenv("AI_PROVIDER")
    if explicit:
        return explicit.strip().lower()
    if os.getenv("OPENAI_API_KEY"):
        return "openai"
    if os.getenv("ANTHROPIC_API_KEY"):
        return "anthropic"
    return "ollama"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Ignoring non-integer {name}={raw!r}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]
