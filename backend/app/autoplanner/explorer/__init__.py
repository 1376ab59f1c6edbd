"""
Application Explorer Module

Drives a browser through a web application, discovering elements,
analyzing the pages reached and recording each step.
"""

from .app_explorer import ApplicationExplorer, ExplorationResult, StopReason
from .browser_session import BrowserSession
from .element_discovery import ElementDiscovery
from .page_analyzer import PageAnalyzer, PageInfo

__all__ = [
    "ApplicationExplorer",
    "ExplorationResult",
    "StopReason",
    "BrowserSession",
    "ElementDiscovery",
    "PageAnalyzer",
    "PageInfo"
]
