"""
Plan Store

Persists test plans (JSON + Markdown) to the output directory.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..models import TestPlan
from .markdown_exporter import MarkdownExporter

logger = logging.getLogger(__name__)


@dataclass
class SavedPlan:
    json_path: Path
    markdown_path: Path


class PlanStore:
    """Writes test-plan.json and test-plan.md into a directory"""

    JSON_FILENAME = "test-plan.json"
    MARKDOWN_FILENAME = "test-plan.md"

    def __init__(self, output_dir: Union[str, Path] = "data/test-plans", exporter: Optional[MarkdownExporter] = None):
        self.output_dir = Path(output_dir)
        self.exporter = exporter or MarkdownExporter()

    def save(self, plan: TestPlan) -> SavedPlan:
        self.output_dir.mkdir(parents=True, exist_ok=True)

        json_path = self.output_dir / self.JSON_FILENAME
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(plan.to_dict(), f, indent=2)

        markdown_path = self.exporter.save(plan, self.output_dir / self.MARKDOWN_FILENAME)

        label = "partial test plan" if plan.metadata.partial else "test plan"
        logger.info(f"[STORE] Saved {label} with {len(plan.steps)} steps to {self.output_dir}")
        return SavedPlan(json_path=json_path, markdown_path=markdown_path)

    def load(self) -> Optional[TestPlan]:
        json_path = self.output_dir / self.JSON_FILENAME
        if not json_path.exists():
            return None
        with open(json_path, "r", encoding="utf-8") as f:
            return TestPlan.from_dict(json.load(f))
