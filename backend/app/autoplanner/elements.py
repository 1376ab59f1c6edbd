"""
Interactive Elements

Value objects describing candidates found by element discovery.
They are re-derived on every scan and never hold live page handles.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ElementKind(Enum):
    """Kinds of interactive elements the explorer acts on"""
    LINK = "link"
    BUTTON = "button"
    INPUT = "input"
    GENERIC = "generic"


# Ids generated by component libraries change between renders
RANDOM_ID_PATTERNS = [
    re.compile(r"^invoker-[a-z0-9]{6,}$", re.I),
    re.compile(r"^[a-z]+-(?=[a-z]*\d)[a-z0-9]{8,}$", re.I),
    re.compile(r"-(?=[a-z]*\d)[a-z0-9]{10,}", re.I),
    re.compile(r"^(?=[a-z]*\d)[a-z0-9]{12,}$", re.I),
]


def has_random_hash_id(value: Optional[str]) -> bool:
    """True if an id (or '#id' selector) looks randomly generated"""
    if not value:
        return False
    if value.startswith("#"):
        value = value[1:]
    return any(pattern.search(value) for pattern in RANDOM_ID_PATTERNS)


@dataclass
class BoundingBox:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)


@dataclass
class InteractiveElement:
    """A discovered candidate for interaction"""
    kind: ElementKind
    text: str
    selector: str
    tag: str = ""
    accessible_name: Optional[str] = None
    href: Optional[str] = None
    stable_id: Optional[str] = None
    name: Optional[str] = None
    placeholder: Optional[str] = None
    role: Optional[str] = None
    input_type: Optional[str] = None
    shadow_path: List[str] = field(default_factory=list)
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    visible: bool = True

    @property
    def in_shadow_dom(self) -> bool:
        return bool(self.shadow_path)

    @property
    def label(self) -> str:
        """Best human-readable name for logs and locators"""
        return (self.text or self.accessible_name or self.placeholder or self.selector or "").strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractiveElement":
        """Build from the raw dictionary returned by the discovery script"""
        box = data.get("boundingBox") or {}
        try:
            kind = ElementKind(data.get("kind", "generic"))
        except ValueError:
            kind = ElementKind.GENERIC

        stable_id = data.get("id") or None
        if has_random_hash_id(stable_id):
            stable_id = None

        return cls(
            kind=kind,
            text=(data.get("text") or "").strip()[:100],
            selector=data.get("selector") or "",
            tag=(data.get("tag") or "").lower(),
            accessible_name=data.get("ariaLabel") or None,
            href=data.get("href") or None,
            stable_id=stable_id,
            name=data.get("name") or None,
            placeholder=data.get("placeholder") or None,
            role=data.get("role") or None,
            input_type=data.get("inputType") or None,
            shadow_path=list(data.get("shadowPath") or []),
            bounding_box=BoundingBox(
                x=float(box.get("x", 0) or 0),
                y=float(box.get("y", 0) or 0),
                width=float(box.get("width", 0) or 0),
                height=float(box.get("height", 0) or 0),
            ),
            visible=bool(data.get("visible", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "text": self.text,
            "selector": self.selector,
            "tag": self.tag,
            "accessible_name": self.accessible_name,
            "href": self.href,
            "stable_id": self.stable_id,
            "name": self.name,
            "placeholder": self.placeholder,
            "role": self.role,
            "shadow_path": list(self.shadow_path),
        }
