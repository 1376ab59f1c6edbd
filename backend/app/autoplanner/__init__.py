"""
Autonomous Test Planner

Explores a web application the way a tester clicking through it would and
records the run as a replayable test plan:
- Discovers interactive elements, shadow DOM included
- Picks the next element by heuristic or with an AI decision oracle
- Interacts through fallback chains that survive overlays and SPA routing
- Stays on the target origin and forces progress when stuck
- Writes the plan as JSON and Markdown for test generation
"""

from .config import PlannerConfig
from .errors import ExplorationError, ExplorationCancelled, FatalExplorationError
from .elements import ElementKind, InteractiveElement
from .models import TestPlan, TestStep, PlanMetadata
from .core.cancellation import CancellationToken
from .explorer.app_explorer import ApplicationExplorer, ExplorationResult, StopReason
from .generation.markdown_exporter import MarkdownExporter
from .generation.plan_store import PlanStore
from .generation.test_plan_synthesizer import TestPlanSynthesizer

__all__ = [
    # Configuration
    "PlannerConfig",
    # Errors
    "ExplorationError",
    "ExplorationCancelled",
    "FatalExplorationError",
    # Elements & Plans
    "ElementKind",
    "InteractiveElement",
    "TestPlan",
    "TestStep",
    "PlanMetadata",
    # Exploration
    "ApplicationExplorer",
    "ExplorationResult",
    "StopReason",
    "CancellationToken",
    # Output
    "TestPlanSynthesizer",
    "MarkdownExporter",
    "PlanStore"
]

__version__ = "1.0.0"
