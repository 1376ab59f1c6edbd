"""
Element selection: deterministic heuristic scoring and the optional AI
decision oracle behind a provider-agnostic gateway.
"""

from .ai_gateway import AIGateway, AIProvider, AIRequest, AIResponse
from .decision_oracle import DecisionOracle, OracleDecision, PageContext
from .heuristic_selector import HeuristicSelector
from .element_selector import ElementSelector, Selection, SelectionMethod

__all__ = [
    "AIGateway",
    "AIProvider",
    "AIRequest",
    "AIResponse",
    "DecisionOracle",
    "OracleDecision",
    "PageContext",
    "HeuristicSelector",
    "ElementSelector",
    "Selection",
    "SelectionMethod"
]
