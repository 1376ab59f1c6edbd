"""
Exploration errors.

Only these ever escape a call to ApplicationExplorer.explore().
"""

from typing import Optional


class ExplorationError(Exception):
    """Base class for exploration failures"""


class ExplorationCancelled(ExplorationError):
    """Raised when the caller's cancellation token fires. Callers treat it as a clean stop."""

    def __init__(self, stage: str = ""):
        self.stage = stage
        message = f"Exploration cancelled ({stage})" if stage else "Exploration cancelled"
        super().__init__(message)


class FatalExplorationError(ExplorationError):
    """The run could not start (no browser context or initial navigation failed)"""

    def __init__(self, message: str, partial_plan_path: Optional[str] = None):
        self.partial_plan_path = partial_plan_path
        super().__init__(message)
