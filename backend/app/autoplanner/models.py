"""
Test plan models.

The TestPlan is the artifact handed to the test-code generator and the
Markdown exporter. Field names are serialized in camelCase and optional
fields are omitted instead of being written as null.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PlanModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StepElement(PlanModel):
    """The element a step acted on"""
    tag: Optional[str] = None
    selector: Optional[str] = None
    text: Optional[str] = None
    href: Optional[str] = None
    id: Optional[str] = None
    aria_label: Optional[str] = None
    role: Optional[str] = None
    kind: Optional[str] = None
    shadow_path: Optional[List[str]] = None
    is_in_shadow_dom: bool = Field(default=False, alias="isInShadowDOM")


class KeyElement(PlanModel):
    """A heading that identifies the page"""
    tag: Optional[str] = None
    text: Optional[str] = None
    id: Optional[str] = None


class NotableElement(PlanModel):
    """An element worth asserting on, with the reason it was picked"""
    selector: Optional[str] = None
    text: Optional[str] = None
    tag: Optional[str] = None
    id: Optional[str] = None
    reason: Optional[str] = None


class TestStep(PlanModel):
    """One explorer iteration: what was done and what the page looked like afterwards"""
    __test__ = False

    step_number: int
    action: str
    element: Optional[StepElement] = None
    url_before: str
    url_after: str
    navigated: bool = False
    value: Optional[str] = None
    timestamp: str
    page_title: Optional[str] = None
    key_elements: Optional[List[KeyElement]] = None
    notable_elements: Optional[List[NotableElement]] = None
    method: Optional[str] = None
    reasoning: Optional[str] = None


class PlanMetadata(PlanModel):
    start_url: str
    base_origin: Optional[str] = None
    generated_at: Optional[str] = None
    total_clicks: Optional[int] = None
    navigation_count: Optional[int] = None
    stop_reason: Optional[str] = None
    partial: bool = False


class TestPlan(PlanModel):
    """Ordered steps plus run metadata"""
    __test__ = False

    metadata: PlanMetadata
    overview: Optional[str] = None
    steps: List[TestStep] = Field(default_factory=list)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestPlan":
        return cls.model_validate(data)
