"""
Test plan output: synthesis, Markdown export and persistence.
"""

from .test_plan_synthesizer import TestPlanSynthesizer
from .markdown_exporter import MarkdownExporter, plan_to_markdown
from .plan_store import PlanStore, SavedPlan

__all__ = [
    "TestPlanSynthesizer",
    "MarkdownExporter",
    "plan_to_markdown",
    "PlanStore",
    "SavedPlan"
]
